"""
장바구니(Cart) 및 장바구니 항목(CartItem) 모델

목적: 사용자별 구매 예정 상품 목록 (장바구니 관리는 외부 서비스 담당,
주문 코어는 주문 생성 시 비우기만 수행)
"""

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, utc_now


class Cart(Base):
    """장바구니 모델 (사용자당 1개)"""

    __tablename__ = "carts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    # 관계
    user = relationship("User", back_populates="cart")
    items = relationship(
        "CartItem", back_populates="cart", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Cart(id={self.id}, user_id={self.user_id})>"


class CartItem(Base):
    """장바구니 항목 모델"""

    __tablename__ = "cart_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    cart_id = Column(Uuid, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    quantity = Column(Integer, nullable=False, default=1)
    added_at = Column(DateTime, nullable=False, default=utc_now)

    # 관계
    cart = relationship("Cart", back_populates="items")

    # 제약 조건
    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_cart_quantity_positive"),
        UniqueConstraint("cart_id", "product_id", name="uq_cart_product"),
    )

    def __repr__(self):
        return f"<CartItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
