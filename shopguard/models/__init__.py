"""
데이터베이스 모델 패키지

이 패키지는 모든 SQLAlchemy 모델을 관리합니다.
새로운 모델을 추가할 때는 이 파일에서 import하여 Alembic이 자동으로 감지할 수 있도록 합니다.
"""

from .base import Base, get_db, close_db, utc_now
from .user import User, UserRole, UserStatus, LoginHistory
from .product import Product
from .cart import Cart, CartItem
from .order import Order, OrderItem, OrderStatus, PaymentStatus, PaymentMethod
from .landing_page import LandingPage
from .analytics import (
    VisitorSession,
    AnalyticsEvent,
    LandingPageEvent,
    TrafficFlag,
    SessionModule,
    PublicEventType,
    LandingEventType,
    FlagSeverity,
    FUNNEL_STAGES,
)

__all__ = [
    "Base",
    "get_db",
    "close_db",
    "utc_now",
    "User",
    "UserRole",
    "UserStatus",
    "LoginHistory",
    "Product",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "PaymentMethod",
    "LandingPage",
    "VisitorSession",
    "AnalyticsEvent",
    "LandingPageEvent",
    "TrafficFlag",
    "SessionModule",
    "PublicEventType",
    "LandingEventType",
    "FlagSeverity",
    "FUNNEL_STAGES",
]
