"""
방문 세션 추적 서비스 (Session Tracker)

클라이언트가 전달한 세션 ID 단위로 방문 세션을 기록하고,
같은 접속지(IP 해시)에서 짧은 시간 동안 세션이 과도하게 생성되면 봇 의심 플래그를 남깁니다.

분석 이벤트 수집은 사용자 요청을 막아서는 안 되므로, record_* 메서드는 예외를 발생시키지 않고
실패 시 로그를 남긴 뒤 False 를 반환합니다.
"""

import uuid
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shopguard.config import get_settings
from shopguard.models.analytics import (
    AnalyticsEvent,
    FlagSeverity,
    LandingEventType,
    LandingPageEvent,
    PublicEventType,
    SessionModule,
    TrafficFlag,
    VisitorSession,
)
from shopguard.models.base import utc_now
from shopguard.models.landing_page import LandingPage
from shopguard.utils.client_info import ClientContext, parse_user_agent
from shopguard.utils.logging import audit_logger, get_logger
from shopguard.utils.prometheus_metrics import (
    record_analytics_event,
    record_traffic_flag,
)

logger = get_logger(__name__)

BOT_FLAG_REASON = "High session frequency (potential bot)"


class SessionTracker:
    """방문 세션 및 분석 이벤트 기록"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    # ===== 세션 =====

    async def get_or_create_session(
        self,
        session_id: str,
        client: ClientContext,
        module: SessionModule = SessionModule.PUBLIC,
        user_id: Optional[uuid.UUID] = None,
    ) -> VisitorSession:
        """
        세션 조회 또는 생성

        - 기존 세션: last_activity 만 갱신 (봇 탐지 없음)
        - 신규 세션: 접속지 해시와 User-Agent 추정값을 저장한 뒤 봇 탐지 수행
        - 동시에 같은 세션 ID로 생성 요청이 들어오면 unique 제약 위반을 감지하여
          먼저 저장된 세션을 기존 세션으로 취급합니다.

        트랜잭션 충돌 시 롤백하므로, 같은 트랜잭션의 첫 쓰기 작업으로 호출해야 합니다.
        """
        existing = await self._find(session_id)
        if existing is not None:
            return await self._touch(existing)

        device, browser, os_name = parse_user_agent(client.user_agent)
        session = VisitorSession(
            session_id=session_id,
            user_id=user_id,
            ip_hash=client.ip_hash,
            user_agent=client.user_agent,
            device=device,
            browser=browser,
            os=os_name,
            start_time=utc_now(),
            last_activity=utc_now(),
            is_bot=False,
            module=module.value,
        )
        self.db.add(session)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            logger.info(f"동시 생성된 세션 병합: session_id={session_id}")
            winner = await self._find(session_id)
            if winner is None:
                raise
            return await self._touch(winner)

        await self._detect_burst(session)
        return session

    async def _find(self, session_id: str) -> Optional[VisitorSession]:
        result = await self.db.execute(
            select(VisitorSession)
            .where(VisitorSession.session_id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def _touch(self, session: VisitorSession) -> VisitorSession:
        session.last_activity = utc_now()
        await self.db.flush()
        return session

    async def _detect_burst(self, session: VisitorSession) -> None:
        """
        같은 접속지에서 최근 윈도우 안에 시작된 세션 수가 임계값을 넘으면 플래그 기록

        방금 생성한 세션도 개수에 포함됩니다.
        """
        window_start = session.start_time - timedelta(
            minutes=self.settings.BOT_DETECTION_WINDOW_MINUTES
        )
        result = await self.db.execute(
            select(func.count(VisitorSession.id)).where(
                VisitorSession.ip_hash == session.ip_hash,
                VisitorSession.start_time > window_start,
                VisitorSession.start_time <= session.start_time,
            )
        )
        recent_sessions = result.scalar_one()

        if recent_sessions <= self.settings.BOT_SESSION_THRESHOLD:
            return

        flag = TrafficFlag(
            ip_hash=session.ip_hash,
            session_id=session.session_id,
            reason=BOT_FLAG_REASON,
            severity=FlagSeverity.MEDIUM.value,
            timestamp=utc_now(),
        )
        self.db.add(flag)
        session.is_bot = True
        await self.db.flush()

        record_traffic_flag(FlagSeverity.MEDIUM.value)
        logger.warning(
            f"봇 의심 세션 탐지: session_id={session.session_id}, "
            f"ip_hash={session.ip_hash[:12]}, recent_sessions={recent_sessions}"
        )
        audit_logger.log_event(
            event_type="traffic.flagged",
            resource_type="session",
            resource_id=session.session_id,
            action="flag",
            details={
                "reason": BOT_FLAG_REASON,
                "severity": FlagSeverity.MEDIUM.value,
                "recent_sessions": recent_sessions,
            },
        )

    # ===== 이벤트 =====

    async def record_public_event(
        self,
        session_id: str,
        event_type: str,
        client: ClientContext,
        url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> bool:
        """
        공개 사이트 이벤트 기록

        Returns:
            bool: 기록 성공 여부 (예외를 발생시키지 않음)
        """
        try:
            event = PublicEventType(event_type)
            await self.get_or_create_session(
                session_id, client, SessionModule.PUBLIC, user_id
            )
            self.db.add(
                AnalyticsEvent(
                    session_id=session_id,
                    event_type=event.value,
                    url=url,
                    event_metadata=metadata,
                    timestamp=utc_now(),
                )
            )
            await self.db.commit()
        except Exception as e:
            await self._discard(e, session_id, SessionModule.PUBLIC)
            return False

        record_analytics_event(SessionModule.PUBLIC.value, success=True)
        return True

    async def record_landing_event(
        self,
        session_id: str,
        landing_page_id: uuid.UUID,
        event_type: str,
        client: ClientContext,
        campaign: Optional[str] = None,
        source: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> bool:
        """
        랜딩 페이지 이벤트 기록

        VISIT 은 페이지 조회수, LEAD/CONVERSION 은 전환수를 함께 증가시킵니다.
        등록되지 않은 페이지라면 이벤트만 기록하고 집계 카운터는 건너뜁니다.

        Returns:
            bool: 기록 성공 여부 (예외를 발생시키지 않음)
        """
        try:
            event = LandingEventType(event_type)
            page_id = (
                landing_page_id
                if isinstance(landing_page_id, uuid.UUID)
                else uuid.UUID(str(landing_page_id))
            )
            await self.get_or_create_session(
                session_id, client, SessionModule.LANDING, user_id
            )
            self.db.add(
                LandingPageEvent(
                    landing_page_id=page_id,
                    session_id=session_id,
                    event_type=event.value,
                    campaign=campaign,
                    source=source,
                    event_metadata=metadata,
                    timestamp=utc_now(),
                )
            )
            await self._bump_counters(page_id, event)
            await self.db.commit()
        except Exception as e:
            await self._discard(e, session_id, SessionModule.LANDING)
            return False

        record_analytics_event(SessionModule.LANDING.value, success=True)
        return True

    async def _bump_counters(self, page_id: uuid.UUID, event: LandingEventType) -> None:
        if event == LandingEventType.VISIT:
            values = {"views": LandingPage.views + 1}
        elif event in (LandingEventType.LEAD, LandingEventType.CONVERSION):
            values = {"conversions": LandingPage.conversions + 1}
        else:
            return

        await self.db.execute(
            update(LandingPage)
            .where(LandingPage.id == page_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def _discard(
        self, error: Exception, session_id: str, module: SessionModule
    ) -> None:
        """실패한 이벤트 기록 정리 (롤백 후 로그)"""
        await self.db.rollback()
        record_analytics_event(module.value, success=False)
        logger.error(
            f"분석 이벤트 기록 실패: module={module.value}, "
            f"session_id={session_id}, error={str(error)}"
        )
