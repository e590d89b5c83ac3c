"""
재고 원장 (Inventory Ledger)

상품 재고 조회와 주문 확정 시 재고 차감을 담당합니다.

재고 차감 규칙:
1. 주문당 한 번만 차감: orders.is_stock_deducted 를 false → true 로 바꾸는 조건부 UPDATE
   (compare-and-set) 에 성공한 요청만 차감을 진행합니다.
2. 상품별 음수 방지: "stock = stock - q WHERE stock >= q" 조건부 UPDATE.
   일치하는 행이 없으면 재고 부족으로 보고 예외를 발생시킵니다.
3. 모든 UPDATE는 호출자의 트랜잭션 안에서 실행되며, 예외 발생 시 호출자가 롤백합니다.
"""

import uuid
from collections import OrderedDict
from typing import Dict, Iterable, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shopguard.models.order import Order, OrderItem
from shopguard.models.product import Product
from shopguard.utils.exceptions import (
    InsufficientStockException,
    ProductNotFoundException,
)
from shopguard.utils.logging import get_logger
from shopguard.utils.prometheus_metrics import record_stock_deduction

logger = get_logger(__name__)


class InventoryLedger:
    """재고 조회 및 차감"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_product(self, product_id: uuid.UUID) -> Product:
        """
        상품 조회 (세션 캐시가 아닌 DB의 최신 재고 반영)

        Raises:
            ProductNotFoundException: 상품이 없을 때
        """
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        product = result.scalars().first()
        if product is None:
            raise ProductNotFoundException(str(product_id))
        return product

    @staticmethod
    def ensure_available(product: Product, quantity: int) -> None:
        """
        재고 확인 (시점 확인일 뿐 예약하지 않음)

        Raises:
            InsufficientStockException: 재고가 요청 수량보다 적을 때
        """
        if not product.has_stock_for(quantity):
            raise InsufficientStockException(
                product_name=product.name,
                available=product.stock,
                required=quantity,
                product_id=str(product.id),
            )

    async def claim_deduction(self, order_id: uuid.UUID) -> bool:
        """
        주문의 재고 차감 권한 획득 (is_stock_deducted: false → true)

        Returns:
            bool: 이번 호출이 차감 권한을 얻었으면 True, 이미 차감된 주문이면 False
        """
        result = await self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.is_stock_deducted.is_(False))
            .values(is_stock_deducted=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def deduct_for_order(
        self, order_id: uuid.UUID, items: Iterable[OrderItem]
    ) -> bool:
        """
        주문 항목만큼 재고 차감 (주문당 최대 1회)

        같은 상품이 여러 항목에 있으면 수량을 합산하여 한 번에 차감하며,
        상품 ID 순서로 처리하여 동시 트랜잭션 간 잠금 순서를 고정합니다.

        Args:
            order_id: 주문 ID
            items: 주문 항목

        Returns:
            bool: 이번 호출에서 차감했으면 True, 이미 차감된 주문이면 False

        Raises:
            ProductNotFoundException: 상품이 삭제된 경우
            InsufficientStockException: 재고가 부족한 경우 (호출자가 전체 롤백해야 함)
        """
        if not await self.claim_deduction(order_id):
            logger.info(f"재고 이미 차감됨, 건너뜀: order_id={order_id}")
            record_stock_deduction("already_deducted")
            return False

        for product_id, (product_name, quantity) in self._aggregate(items).items():
            result = await self.db.execute(
                update(Product)
                .where(Product.id == product_id, Product.stock >= quantity)
                .values(stock=Product.stock - quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                continue

            current = await self.db.execute(
                select(Product.name, Product.stock).where(Product.id == product_id)
            )
            row = current.first()
            if row is None:
                record_stock_deduction("product_missing")
                logger.warning(
                    f"재고 차감 실패 (상품 없음): order_id={order_id}, product_id={product_id}"
                )
                raise ProductNotFoundException(str(product_id))

            record_stock_deduction("insufficient_stock")
            logger.warning(
                f"재고 차감 실패 (재고 부족): order_id={order_id}, "
                f"product_id={product_id}, available={row.stock}, required={quantity}"
            )
            raise InsufficientStockException(
                product_name=row.name,
                available=row.stock,
                required=quantity,
                product_id=str(product_id),
            )

        record_stock_deduction("deducted")
        logger.info(f"재고 차감 완료: order_id={order_id}")
        return True

    @staticmethod
    def _aggregate(
        items: Iterable[OrderItem],
    ) -> "OrderedDict[uuid.UUID, Tuple[str, int]]":
        """상품별 (상품명 스냅샷, 합계 수량), 상품 ID 순 정렬"""
        totals: Dict[uuid.UUID, Tuple[str, int]] = {}
        for item in items:
            name, quantity = totals.get(item.product_id, (item.product_name, 0))
            totals[item.product_id] = (name, quantity + item.quantity)
        return OrderedDict(sorted(totals.items(), key=lambda entry: str(entry[0])))
