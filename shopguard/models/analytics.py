"""
트래픽 분석 모델

- VisitorSession: 클라이언트가 전달한 세션 ID 단위의 방문 세션
- AnalyticsEvent: 공개 사이트 이벤트 (조회, 장바구니 담기, 결제 등)
- LandingPageEvent: 랜딩 페이지 이벤트 (방문, CTA 클릭, 리드 등)
- TrafficFlag: 의심 세션 탐지 기록 (추가 전용, 수정/삭제하지 않음)
"""

import uuid
from enum import Enum

from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    JSON,
    Uuid,
)

from .base import Base, utc_now


class SessionModule(str, Enum):
    """세션이 시작된 사이트 영역"""

    PUBLIC = "public"
    LANDING = "landing"


class PublicEventType(str, Enum):
    """공개 사이트 이벤트 유형"""

    VIEW = "VIEW"
    CLICK = "CLICK"
    SCROLL = "SCROLL"
    ADD_TO_CART = "ADD_TO_CART"
    CHECKOUT_INIT = "CHECKOUT_INIT"
    PURCHASE = "PURCHASE"
    SEARCH = "SEARCH"


# 전환 퍼널 단계 (순서 고정)
FUNNEL_STAGES = (
    PublicEventType.VIEW,
    PublicEventType.ADD_TO_CART,
    PublicEventType.CHECKOUT_INIT,
    PublicEventType.PURCHASE,
)


class LandingEventType(str, Enum):
    """랜딩 페이지 이벤트 유형"""

    VISIT = "VISIT"
    SCROLL = "SCROLL"
    CTA_CLICK = "CTA_CLICK"
    FORM_START = "FORM_START"
    LEAD = "LEAD"
    CONVERSION = "CONVERSION"


class FlagSeverity(str, Enum):
    """트래픽 플래그 심각도"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class VisitorSession(Base):
    """방문 세션 (원본 IP 대신 해시만 저장)"""

    __tablename__ = "visitor_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(String(128), unique=True, nullable=False)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    ip_hash = Column(String(64), nullable=False)
    user_agent = Column(String(500), nullable=True)

    # User-Agent 기반 추정값 (참고용)
    device = Column(String(20), nullable=False, default="desktop")
    browser = Column(String(50), nullable=True)
    os = Column(String(50), nullable=True)

    start_time = Column(DateTime, nullable=False, default=utc_now)
    last_activity = Column(DateTime, nullable=False, default=utc_now)
    is_bot = Column(Boolean, nullable=False, default=False)
    module = Column(String(20), nullable=False, default=SessionModule.PUBLIC.value)

    __table_args__ = (
        Index("idx_visitor_sessions_ip_start", "ip_hash", "start_time"),
    )

    def __repr__(self):
        return f"<VisitorSession(session_id={self.session_id}, is_bot={self.is_bot})>"


class AnalyticsEvent(Base):
    """공개 사이트 이벤트"""

    __tablename__ = "analytics_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(String(128), nullable=False, index=True)
    event_type = Column(String(30), nullable=False)
    url = Column(String(2000), nullable=True)
    event_metadata = Column("metadata", JSON, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_analytics_events_type_time", "event_type", "timestamp"),
    )

    def __repr__(self):
        return f"<AnalyticsEvent(session_id={self.session_id}, event_type={self.event_type})>"


class LandingPageEvent(Base):
    """랜딩 페이지 이벤트"""

    __tablename__ = "landing_page_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    landing_page_id = Column(Uuid, nullable=False, index=True)
    session_id = Column(String(128), nullable=False, index=True)
    event_type = Column(String(30), nullable=False)
    campaign = Column(String(200), nullable=True)
    source = Column(String(200), nullable=True)  # UTM source
    event_metadata = Column("metadata", JSON, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utc_now)

    def __repr__(self):
        return f"<LandingPageEvent(landing_page_id={self.landing_page_id}, event_type={self.event_type})>"


class TrafficFlag(Base):
    """의심 트래픽 탐지 기록 (추가 전용)"""

    __tablename__ = "traffic_flags"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    ip_hash = Column(String(64), nullable=False, index=True)
    session_id = Column(String(128), nullable=True)
    reason = Column(String(255), nullable=False)
    severity = Column(String(20), nullable=False, default=FlagSeverity.LOW.value)
    timestamp = Column(DateTime, nullable=False, default=utc_now, index=True)

    def __repr__(self):
        return f"<TrafficFlag(ip_hash={self.ip_hash[:8]}..., severity={self.severity})>"
