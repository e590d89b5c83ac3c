"""
상품(Product) 모델

목적: 카탈로그 상품 정보 (카탈로그 관리는 외부 서비스 담당)

주문 코어가 변경할 수 있는 필드는 재고(stock) 하나뿐이며,
그마저도 InventoryLedger의 조건부 차감을 통해서만 변경합니다.
"""

import uuid

from sqlalchemy import (
    Column,
    String,
    Text,
    DECIMAL,
    Integer,
    DateTime,
    CheckConstraint,
    Uuid,
)

from .base import Base, utc_now


class Product(Base):
    """상품 모델"""

    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(DECIMAL(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    # 제약 조건 (재고 음수 방지의 최종 방어선)
    __table_args__ = (
        CheckConstraint("base_price >= 0", name="check_base_price_non_negative"),
        CheckConstraint("stock >= 0", name="check_stock_non_negative"),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name={self.name}, stock={self.stock})>"

    def has_stock_for(self, quantity: int) -> bool:
        """지정된 수량만큼 재고가 있는지 확인 (시점 확인일 뿐 예약하지 않음)"""
        return self.stock >= quantity
