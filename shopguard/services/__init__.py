"""
비즈니스 로직 서비스 패키지
"""

from shopguard.services.account_history import AccountHistoryService
from shopguard.services.cart_service import CartService
from shopguard.services.inventory_ledger import InventoryLedger
from shopguard.services.order_service import OrderService
from shopguard.services.session_tracker import SessionTracker
from shopguard.services.traffic_analytics import (
    TrafficAnalyticsService,
    resolve_date_range,
)

__all__ = [
    "AccountHistoryService",
    "CartService",
    "InventoryLedger",
    "OrderService",
    "SessionTracker",
    "TrafficAnalyticsService",
    "resolve_date_range",
]
