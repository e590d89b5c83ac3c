"""
계정 이력 서비스

위험도 평가에 필요한 계정 이력(로그인 접속지, 주문 이력)을 조회합니다.
로그인 기록 자체는 인증 서비스가 남기며, record_login 은 같은 형식으로 기록하는 진입점입니다.
"""

import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from shopguard.config import get_settings
from shopguard.models.base import utc_now
from shopguard.models.order import Order
from shopguard.models.user import LoginHistory
from shopguard.utils.client_info import ClientContext


class AccountHistoryService:
    """계정 이력 조회"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def login_origins(
        self, user_id: uuid.UUID, now: Optional[datetime] = None
    ) -> List[str]:
        """
        최근 로그인 접속지 (IP 해시) 목록

        최근 LOGIN_HISTORY_WINDOW_DAYS 일 이내의 로그인 중
        최신 LOGIN_HISTORY_MAX_ENTRIES 건만 사용합니다.
        """
        now = now or utc_now()
        since = now - timedelta(days=self.settings.LOGIN_HISTORY_WINDOW_DAYS)

        result = await self.db.execute(
            select(LoginHistory.ip_hash)
            .where(
                LoginHistory.user_id == user_id,
                LoginHistory.logged_in_at >= since,
            )
            .order_by(LoginHistory.logged_in_at.desc())
            .limit(self.settings.LOGIN_HISTORY_MAX_ENTRIES)
        )
        return list(result.scalars().all())

    async def previous_order_count(self, user_id: uuid.UUID) -> int:
        """사용자의 전체 주문 수"""
        result = await self.db.execute(
            select(func.count(Order.id)).where(Order.user_id == user_id)
        )
        return result.scalar_one()

    async def recent_order_times(
        self, user_id: uuid.UUID, now: Optional[datetime] = None
    ) -> List[datetime]:
        """최근 RISK_FREQUENCY_WINDOW_HOURS 시간 이내 주문 생성 시각"""
        now = now or utc_now()
        since = now - timedelta(hours=self.settings.RISK_FREQUENCY_WINDOW_HOURS)

        result = await self.db.execute(
            select(Order.created_at)
            .where(Order.user_id == user_id, Order.created_at >= since)
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    async def record_login(
        self,
        user_id: uuid.UUID,
        client: ClientContext,
        logged_in_at: Optional[datetime] = None,
    ) -> LoginHistory:
        """로그인 기록 추가 (원본 IP 대신 해시 저장)"""
        entry = LoginHistory(
            user_id=user_id,
            ip_hash=client.ip_hash,
            user_agent=client.user_agent,
            logged_in_at=logged_in_at or utc_now(),
        )
        self.db.add(entry)
        await self.db.flush()
        return entry
