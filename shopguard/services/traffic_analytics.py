"""
트래픽 분석 집계 서비스

관리자 대시보드용 집계를 제공합니다.

- 공개 사이트: 활성 세션 수, 고유 접속지 수, 전환 퍼널 (조회 → 장바구니 → 결제 시작 → 구매)
- 랜딩 페이지: 방문, CTA 클릭, 리드, 전환율, 유입 경로별 이벤트 수
- 트래픽 플래그: 최신순 목록
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shopguard.config import get_settings
from shopguard.models.analytics import (
    FUNNEL_STAGES,
    AnalyticsEvent,
    LandingEventType,
    LandingPageEvent,
    TrafficFlag,
    VisitorSession,
)
from shopguard.models.base import utc_now
from shopguard.models.landing_page import LandingPage
from shopguard.utils.exceptions import (
    LandingPageNotFoundException,
    ValidationException,
)

# 퍼널 단계별 응답 키
FUNNEL_KEYS = {
    "VIEW": "views",
    "ADD_TO_CART": "add_to_carts",
    "CHECKOUT_INIT": "checkouts",
    "PURCHASE": "purchases",
}


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def resolve_date_range(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
    default_days: Optional[int] = None,
) -> Tuple[datetime, datetime]:
    """
    조회 기간 결정

    - 둘 다 없음: 최근 default_days 일
    - 시작만 있음: 시작 ~ 현재
    - 종료만 있음: 종료 - default_days 일 ~ 종료

    Raises:
        ValidationException: 시작이 종료보다 늦을 때
    """
    days = default_days or get_settings().DASHBOARD_DEFAULT_DAYS
    now = now or utc_now()

    end = _to_naive_utc(end) if end is not None else now
    start = _to_naive_utc(start) if start is not None else end - timedelta(days=days)

    if start > end:
        raise ValidationException("조회 시작일이 종료일보다 늦습니다", field="start_date")
    return start, end


class TrafficAnalyticsService:
    """트래픽 분석 집계"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def get_dashboard(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        공개 사이트 대시보드

        Returns:
            {
                "start", "end",
                "sessions": 기간 내 이벤트가 있는 세션 수,
                "unique_origins": 그 세션들의 고유 접속지 수,
                "funnel": {"views", "add_to_carts", "checkouts", "purchases"}
            }
        """
        start, end = resolve_date_range(start, end)
        in_range = (AnalyticsEvent.timestamp >= start, AnalyticsEvent.timestamp <= end)

        active_sessions = (
            select(AnalyticsEvent.session_id).where(*in_range).distinct().subquery()
        )

        sessions = (
            await self.db.execute(select(func.count()).select_from(active_sessions))
        ).scalar_one()

        unique_origins = (
            await self.db.execute(
                select(func.count(distinct(VisitorSession.ip_hash))).where(
                    VisitorSession.session_id.in_(select(active_sessions.c.session_id))
                )
            )
        ).scalar_one()

        stage_values = [stage.value for stage in FUNNEL_STAGES]
        rows = await self.db.execute(
            select(AnalyticsEvent.event_type, func.count(AnalyticsEvent.id))
            .where(*in_range, AnalyticsEvent.event_type.in_(stage_values))
            .group_by(AnalyticsEvent.event_type)
        )
        counts = dict(rows.all())

        return {
            "start": start,
            "end": end,
            "sessions": sessions,
            "unique_origins": unique_origins,
            "funnel": {FUNNEL_KEYS[stage]: counts.get(stage, 0) for stage in stage_values},
        }

    async def get_landing_dashboard(
        self,
        landing_page_id: uuid.UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        랜딩 페이지 대시보드

        - clicks: CTA_CLICK 수
        - leads: LEAD + CONVERSION 수
        - conversion_rate: leads / visits * 100 (소수점 둘째 자리, 방문이 없으면 0)
        - sources: 유입 경로(source)가 있는 이벤트의 경로별 수

        Raises:
            LandingPageNotFoundException: 랜딩 페이지가 없을 때
        """
        page = await self.db.get(LandingPage, landing_page_id)
        if page is None:
            raise LandingPageNotFoundException(str(landing_page_id))

        start, end = resolve_date_range(start, end)
        filters = (
            LandingPageEvent.landing_page_id == landing_page_id,
            LandingPageEvent.timestamp >= start,
            LandingPageEvent.timestamp <= end,
        )

        rows = await self.db.execute(
            select(LandingPageEvent.event_type, func.count(LandingPageEvent.id))
            .where(*filters)
            .group_by(LandingPageEvent.event_type)
        )
        counts = dict(rows.all())

        visits = counts.get(LandingEventType.VISIT.value, 0)
        clicks = counts.get(LandingEventType.CTA_CLICK.value, 0)
        leads = counts.get(LandingEventType.LEAD.value, 0) + counts.get(
            LandingEventType.CONVERSION.value, 0
        )
        conversion_rate = round(leads / visits * 100, 2) if visits > 0 else 0

        source_rows = await self.db.execute(
            select(LandingPageEvent.source, func.count(LandingPageEvent.id))
            .where(*filters, LandingPageEvent.source.is_not(None))
            .group_by(LandingPageEvent.source)
        )

        return {
            "landing_page": {"id": page.id, "title": page.title, "slug": page.slug},
            "start": start,
            "end": end,
            "visits": visits,
            "clicks": clicks,
            "leads": leads,
            "conversion_rate": conversion_rate,
            "sources": dict(source_rows.all()),
        }

    async def list_traffic_flags(self, limit: Optional[int] = None) -> List[TrafficFlag]:
        """
        트래픽 플래그 목록 (최신순)

        Raises:
            ValidationException: limit 이 1 ~ TRAFFIC_FLAG_MAX_LIMIT 범위를 벗어날 때
        """
        if limit is None:
            limit = self.settings.TRAFFIC_FLAG_DEFAULT_LIMIT
        if limit < 1 or limit > self.settings.TRAFFIC_FLAG_MAX_LIMIT:
            raise ValidationException(
                f"limit 은 1 ~ {self.settings.TRAFFIC_FLAG_MAX_LIMIT} 사이여야 합니다",
                field="limit",
            )

        result = await self.db.execute(
            select(TrafficFlag).order_by(TrafficFlag.timestamp.desc()).limit(limit)
        )
        return list(result.scalars().all())
