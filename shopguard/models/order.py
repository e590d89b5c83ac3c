"""
주문(Order) 및 주문 항목(OrderItem) 모델

목적: 고객의 구매 주문 (감사 추적을 위해 삭제하지 않음)

- 상품명/단가는 주문 시점에 스냅샷되어 이후 상품 수정의 영향을 받지 않습니다.
- 상태(status)는 전진만 가능하며, 취소(cancelled)는 종료되지 않은 모든 상태에서 가능합니다.
- is_stock_deducted 는 false -> true 로만 변경됩니다.
- fraud_score / fraud_reason 은 생성 시 한 번만 기록됩니다.
"""

import uuid
from enum import Enum
from typing import Set

from sqlalchemy import (
    Column,
    String,
    Text,
    DECIMAL,
    Integer,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
    JSON,
    Uuid,
)
from sqlalchemy.orm import relationship, validates

from .base import Base, utc_now


class OrderStatus(str, Enum):
    """주문 상태"""

    PENDING = "pending"  # 주문 접수
    PROCESSING = "processing"  # 주문 확정 (재고 차감 시점)
    SHIPPED = "shipped"  # 배송 중
    DELIVERED = "delivered"  # 배송 완료
    CANCELLED = "cancelled"  # 취소됨

    @property
    def is_terminal(self) -> bool:
        """더 이상 전이할 수 없는 상태인지"""
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)

    @property
    def deducts_stock(self) -> bool:
        """이 상태로의 첫 전이 시 재고를 차감하는지"""
        return self in (
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        )

    @classmethod
    def allowed_sources(cls, target: "OrderStatus") -> Set["OrderStatus"]:
        """
        target 상태로 전이할 수 있는 현재 상태 집합

        현재 상태와 같은 상태를 다시 요청하는 것은 멱등 처리를 위해 허용합니다.
        """
        if target == cls.CANCELLED:
            return {s for s in cls if not s.is_terminal} | {cls.CANCELLED}

        target_rank = _FORWARD_RANK[target]
        return {
            status
            for status, rank in _FORWARD_RANK.items()
            if rank < target_rank and not status.is_terminal
        } | {target}


# 전진 전이 순서 (cancelled 제외)
_FORWARD_RANK = {
    OrderStatus.PENDING: 0,
    OrderStatus.PROCESSING: 1,
    OrderStatus.SHIPPED: 2,
    OrderStatus.DELIVERED: 3,
}


class PaymentStatus(str, Enum):
    """결제 상태 (주문 상태와 독립된 축)"""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    """결제 수단"""

    CASH_ON_DELIVERY = "Cash on Delivery"
    ONLINE_PAYMENT = "Online Payment"


class Order(Base):
    """주문 모델"""

    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number = Column(String(30), unique=True, nullable=False, index=True)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,  # 비회원 주문은 NULL
        index=True,
    )

    # 금액
    delivery_charge = Column(DECIMAL(10, 2), nullable=False, default=60)
    total_amount = Column(DECIMAL(12, 2), nullable=False)
    payment_method = Column(
        String(30), nullable=False, default=PaymentMethod.CASH_ON_DELIVERY.value
    )

    # 상태
    status = Column(
        String(20),
        nullable=False,
        default=OrderStatus.PENDING.value,
        index=True,
    )
    payment_status = Column(
        String(20), nullable=False, default=PaymentStatus.PENDING.value
    )
    is_stock_deducted = Column(Boolean, nullable=False, default=False)

    # 배송 정보
    shipping_full_name = Column(String(100), nullable=False)
    shipping_phone = Column(String(30), nullable=False)
    shipping_address = Column(Text, nullable=False)
    shipping_city = Column(String(100), nullable=False)
    shipping_postal_code = Column(String(20), nullable=False)
    shipping_country = Column(String(100), nullable=False)

    # 위험도 평가 (생성 시 한 번만 기록)
    fraud_score = Column(Float, nullable=False, default=0.0)
    fraud_reason = Column(String(100), nullable=False, default="Low risk")

    # 감사 정보
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    # 타임스탬프
    created_at = Column(DateTime, nullable=False, default=utc_now, index=True)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    # 관계
    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    # 제약 조건
    __table_args__ = (
        CheckConstraint(
            "total_amount >= delivery_charge", name="check_total_covers_delivery"
        ),
        CheckConstraint("delivery_charge >= 0", name="check_delivery_non_negative"),
        CheckConstraint(
            "fraud_score >= 0 AND fraud_score <= 1", name="check_fraud_score_range"
        ),
        CheckConstraint(
            "status IN ('pending', 'processing', 'shipped', 'delivered', 'cancelled')",
            name="check_order_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed')",
            name="check_payment_status",
        ),
        Index("idx_orders_ip_address", "ip_address"),
    )

    def __repr__(self):
        return f"<Order(id={self.id}, order_number={self.order_number}, status={self.status})>"

    @staticmethod
    def generate_order_number() -> str:
        """주문 번호 생성: ORD-YYYYMMDD-XXXXXX"""
        date_str = utc_now().strftime("%Y%m%d")
        return f"ORD-{date_str}-{uuid.uuid4().hex[:6].upper()}"

    @validates("fraud_score", "fraud_reason")
    def _validate_write_once(self, key, value):
        """위험도 평가 결과는 한 번만 기록 가능"""
        if getattr(self, key) is not None:
            raise ValueError(f"{key} 는 주문 생성 후 변경할 수 없습니다")
        return value

    @validates("is_stock_deducted")
    def _validate_stock_flag(self, key, value):
        """재고 차감 플래그는 true -> false 로 되돌릴 수 없음"""
        if self.is_stock_deducted and not value:
            raise ValueError("재고 차감 플래그는 초기화할 수 없습니다")
        return value


class OrderItem(Base):
    """주문 항목 모델 (주문 시점의 상품명/가격 기록)"""

    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)  # 요청 순서 유지
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)
    product_name = Column(String(255), nullable=False)  # 주문 시점의 상품명
    quantity = Column(Integer, nullable=False)
    unit_price = Column(DECIMAL(10, 2), nullable=False)  # 주문 시점의 가격

    # 상품 옵션
    size = Column(String(50), nullable=True)
    color = Column(String(50), nullable=True)
    material = Column(String(100), nullable=True)
    custom_design = Column(JSON, nullable=True)  # {"image_url", "position": {"x", "y"}}

    # 관계
    order = relationship("Order", back_populates="items")

    # 제약 조건
    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_order_item_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="check_order_item_price_non_negative"),
    )

    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"

    def get_subtotal(self):
        """이 항목의 소계 계산"""
        return self.unit_price * self.quantity
