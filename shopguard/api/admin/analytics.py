"""
관리자 트래픽 분석 API

공개 사이트 대시보드, 랜딩 페이지 대시보드, 봇 의심 트래픽 플래그 조회
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from shopguard.middleware.auth import require_admin
from shopguard.models.base import get_db
from shopguard.services.traffic_analytics import TrafficAnalyticsService


router = APIRouter(prefix="/v1/admin/analytics", tags=["Admin - Analytics"])


# ===== Response 스키마 =====


class FunnelResponse(BaseModel):
    views: int
    add_to_carts: int
    checkouts: int
    purchases: int


class DashboardResponse(BaseModel):
    """공개 사이트 대시보드"""

    start: datetime
    end: datetime
    sessions: int
    unique_origins: int
    funnel: FunnelResponse


class LandingPageSummary(BaseModel):
    id: uuid.UUID
    title: str
    slug: str


class LandingDashboardResponse(BaseModel):
    """랜딩 페이지 대시보드"""

    landing_page: LandingPageSummary
    start: datetime
    end: datetime
    visits: int
    clicks: int
    leads: int
    conversion_rate: float
    sources: Dict[str, int]


class TrafficFlagResponse(BaseModel):
    id: uuid.UUID
    ip_hash: str
    session_id: Optional[str] = None
    reason: str
    severity: str
    timestamp: datetime

    class Config:
        from_attributes = True


class TrafficFlagListResponse(BaseModel):
    count: int
    flags: List[TrafficFlagResponse]


# ===== API 엔드포인트 =====


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    start_date: Optional[datetime] = Query(None, description="시작 시각 (ISO 8601)"),
    end_date: Optional[datetime] = Query(None, description="종료 시각 (ISO 8601)"),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
):
    """
    공개 사이트 대시보드

    기간을 지정하지 않으면 최근 30일을 집계합니다.
    """
    return await TrafficAnalyticsService(db).get_dashboard(start_date, end_date)


@router.get("/landing/{landing_page_id}", response_model=LandingDashboardResponse)
async def get_landing_dashboard(
    landing_page_id: uuid.UUID,
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
):
    """랜딩 페이지 대시보드 (방문, 클릭, 리드, 전환율, 유입 경로)"""
    return await TrafficAnalyticsService(db).get_landing_dashboard(
        landing_page_id, start_date, end_date
    )


@router.get("/flags", response_model=TrafficFlagListResponse)
async def list_traffic_flags(
    limit: Optional[int] = Query(None, description="최대 개수 (기본 50, 최대 500)"),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
):
    """봇 의심 트래픽 플래그 (최신순)"""
    flags = await TrafficAnalyticsService(db).list_traffic_flags(limit)
    return TrafficFlagListResponse(
        count=len(flags),
        flags=[TrafficFlagResponse.model_validate(flag) for flag in flags],
    )
