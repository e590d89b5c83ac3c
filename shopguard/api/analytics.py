"""
분석 이벤트 수집 API

공개 사이트 / 랜딩 페이지의 프론트엔드가 호출하는 이벤트 수집 엔드포인트.
이벤트 기록 실패가 사용자 화면을 막지 않도록, 요청 형식이 올바르면 항상 200을 반환합니다.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from shopguard.middleware.auth import get_optional_user
from shopguard.models.base import get_db
from shopguard.services.session_tracker import SessionTracker
from shopguard.utils.client_info import ClientContext


router = APIRouter(prefix="/v1/analytics", tags=["Analytics"])


class TrackEventRequest(BaseModel):
    """공개 사이트 이벤트"""

    session_id: str = Field(..., min_length=1, max_length=128)
    event_type: str = Field(
        ...,
        description="VIEW | CLICK | SCROLL | ADD_TO_CART | CHECKOUT_INIT | PURCHASE | SEARCH",
    )
    url: Optional[str] = Field(None, max_length=2000)
    metadata: Optional[Dict[str, Any]] = None


class TrackLandingEventRequest(BaseModel):
    """랜딩 페이지 이벤트"""

    session_id: str = Field(..., min_length=1, max_length=128)
    landing_page_id: str
    event_type: str = Field(
        ..., description="VISIT | SCROLL | CTA_CLICK | FORM_START | LEAD | CONVERSION"
    )
    campaign: Optional[str] = Field(None, max_length=200)
    source: Optional[str] = Field(None, max_length=200)
    metadata: Optional[Dict[str, Any]] = None


class TrackResponse(BaseModel):
    success: bool = True


@router.post("/track", response_model=TrackResponse)
async def track_public_event(
    body: TrackEventRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_optional_user),
):
    """공개 사이트 이벤트 기록"""
    await SessionTracker(db).record_public_event(
        session_id=body.session_id,
        event_type=body.event_type,
        client=ClientContext.from_request(request),
        url=body.url,
        metadata=body.metadata,
        user_id=current_user.id if current_user else None,
    )
    return TrackResponse()


@router.post("/landing/track", response_model=TrackResponse)
async def track_landing_event(
    body: TrackLandingEventRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_optional_user),
):
    """랜딩 페이지 이벤트 기록 (VISIT → 조회수, LEAD/CONVERSION → 전환수 증가)"""
    await SessionTracker(db).record_landing_event(
        session_id=body.session_id,
        landing_page_id=body.landing_page_id,
        event_type=body.event_type,
        client=ClientContext.from_request(request),
        campaign=body.campaign,
        source=body.source,
        metadata=body.metadata,
        user_id=current_user.id if current_user else None,
    )
    return TrackResponse()
