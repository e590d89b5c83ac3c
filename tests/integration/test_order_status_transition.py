"""
주문 상태 변경 통합 테스트

- 처음으로 processing/shipped/delivered 로 전이될 때 재고 1회 차감
- 재고 부족 시 상태 변경을 포함한 모든 변경 롤백
- 전진만 가능, delivered/cancelled 는 종료 상태
"""

import uuid

import pytest

from shopguard.services.order_service import OrderService
from shopguard.utils.exceptions import (
    InsufficientStockException,
    InvalidStatusTransitionException,
    OrderNotFoundException,
    ProductNotFoundException,
    ValidationException,
)

pytestmark = pytest.mark.integration


class TestStockDeductionOnConfirm:
    """주문 확정 시 재고 차감"""

    @pytest.fixture
    def service(self, db_session):
        return OrderService(db_session)

    @pytest.fixture
    def place_order(self, service, shipping_address):
        async def _place(*lines):
            return await service.create_guest_order(
                items=[{"product_id": p.id, "quantity": q} for p, q in lines],
                shipping_address=shipping_address,
            )

        return _place

    @pytest.mark.asyncio
    async def test_confirm_deducts_stock_once(self, db_session, service, make_product, place_order):
        """pending → processing → shipped: 재고는 처음 한 번만 차감"""
        product = await make_product(stock=10)
        order = await place_order((product, 2))

        confirmed = await service.update_order_status(order.id, status="processing")
        assert confirmed.status == "processing"
        assert confirmed.is_stock_deducted is True
        await db_session.refresh(product)
        assert product.stock == 8

        shipped = await service.update_order_status(order.id, status="shipped")
        assert shipped.status == "shipped"
        await db_session.refresh(product)
        assert product.stock == 8

    @pytest.mark.asyncio
    async def test_skip_to_shipped_deducts(self, db_session, service, make_product, place_order):
        """pending → shipped 직접 전이도 재고 차감"""
        product = await make_product(stock=5)
        order = await place_order((product, 5))

        shipped = await service.update_order_status(order.id, status="shipped")

        assert shipped.is_stock_deducted is True
        await db_session.refresh(product)
        assert product.stock == 0

    @pytest.mark.asyncio
    async def test_same_product_lines_are_summed(self, db_session, service, make_product, place_order):
        """같은 상품의 여러 항목은 합산하여 차감"""
        product = await make_product(stock=5)
        order = await place_order((product, 2), (product, 3))

        await service.update_order_status(order.id, status="processing")

        await db_session.refresh(product)
        assert product.stock == 0

    @pytest.mark.asyncio
    async def test_insufficient_stock_rolls_back_everything(
        self, db_session, service, make_product, place_order
    ):
        """다른 주문이 재고를 소진한 경우: 상태/플래그/다른 상품 재고 모두 그대로"""
        tee = await make_product(name="Tee", stock=10)
        hoodie = await make_product(name="Hoodie", stock=2)
        order = await place_order((tee, 2), (hoodie, 2))
        order_id = order.id

        hoodie.stock = 0
        await db_session.commit()

        with pytest.raises(InsufficientStockException) as exc_info:
            await service.update_order_status(order_id, status="processing")

        error = exc_info.value
        assert error.product_name == "Hoodie"
        assert error.available == 0
        assert error.required == 2

        reloaded = await service.get_order_by_id(order_id)
        assert reloaded.status == "pending"
        assert reloaded.is_stock_deducted is False

        await db_session.refresh(tee)
        await db_session.refresh(hoodie)
        assert tee.stock == 10
        assert hoodie.stock == 0

    @pytest.mark.asyncio
    async def test_retry_after_restock(self, db_session, service, make_product, place_order):
        """재고 부족으로 실패한 뒤 재입고되면 다시 확정 가능"""
        product = await make_product(stock=1)
        order = await place_order((product, 1))
        order_id = order.id

        product.stock = 0
        await db_session.commit()

        with pytest.raises(InsufficientStockException):
            await service.update_order_status(order_id, status="processing")

        await db_session.refresh(product)
        product.stock = 3
        await db_session.commit()

        confirmed = await service.update_order_status(order_id, status="processing")
        assert confirmed.is_stock_deducted is True
        await db_session.refresh(product)
        assert product.stock == 2

    @pytest.mark.asyncio
    async def test_deleted_product(self, db_session, service, make_product, place_order):
        """주문 후 상품이 삭제된 경우"""
        product = await make_product(stock=5)
        order = await place_order((product, 1))
        order_id = order.id

        await db_session.delete(product)
        await db_session.commit()

        with pytest.raises(ProductNotFoundException):
            await service.update_order_status(order_id, status="processing")

        reloaded = await service.get_order_by_id(order_id)
        assert reloaded.status == "pending"
        assert reloaded.is_stock_deducted is False


class TestStatusTransitionRules:
    """상태 전이 규칙"""

    @pytest.fixture
    async def order(self, db_session, make_product, shipping_address):
        product = await make_product(stock=10)
        return await OrderService(db_session).create_guest_order(
            items=[{"product_id": product.id, "quantity": 1}],
            shipping_address=shipping_address,
        )

    @pytest.mark.asyncio
    async def test_backward_transition_rejected(self, db_session, order):
        service = OrderService(db_session)
        order_id = order.id
        await service.update_order_status(order_id, status="shipped")

        with pytest.raises(InvalidStatusTransitionException) as exc_info:
            await service.update_order_status(order_id, status="processing")

        error = exc_info.value
        assert error.status_code == 409
        assert error.current_status == "shipped"
        assert error.requested_status == "processing"

        reloaded = await service.get_order_by_id(order_id)
        assert reloaded.status == "shipped"

    @pytest.mark.asyncio
    async def test_cannot_return_to_pending(self, db_session, order):
        service = OrderService(db_session)
        await service.update_order_status(order.id, status="processing")

        with pytest.raises(InvalidStatusTransitionException):
            await service.update_order_status(order.id, status="pending")

    @pytest.mark.asyncio
    async def test_delivered_is_terminal(self, db_session, order):
        service = OrderService(db_session)
        await service.update_order_status(order.id, status="delivered")

        with pytest.raises(InvalidStatusTransitionException):
            await service.update_order_status(order.id, status="cancelled")

    @pytest.mark.asyncio
    async def test_cancelled_is_terminal(self, db_session, order):
        service = OrderService(db_session)
        cancelled = await service.update_order_status(order.id, status="cancelled")
        assert cancelled.status == "cancelled"
        assert cancelled.is_stock_deducted is False

        with pytest.raises(InvalidStatusTransitionException):
            await service.update_order_status(order.id, status="processing")

    @pytest.mark.asyncio
    async def test_cancel_after_confirm_keeps_deduction(self, db_session, order):
        """확정 후 취소해도 재고는 복구하지 않음"""
        service = OrderService(db_session)
        await service.update_order_status(order.id, status="processing")

        cancelled = await service.update_order_status(order.id, status="cancelled")

        assert cancelled.status == "cancelled"
        assert cancelled.is_stock_deducted is True

    @pytest.mark.asyncio
    async def test_same_status_is_idempotent(self, db_session, order):
        """같은 상태를 다시 요청해도 오류 없이 재고는 한 번만 차감"""
        service = OrderService(db_session)
        first = await service.update_order_status(order.id, status="processing")
        second = await service.update_order_status(order.id, status="processing")

        assert first.status == second.status == "processing"
        assert second.is_stock_deducted is True

    @pytest.mark.asyncio
    async def test_payment_status_only(self, db_session, order):
        """결제 상태만 변경 (주문 상태/재고 영향 없음)"""
        service = OrderService(db_session)

        updated = await service.update_order_status(order.id, payment_status="paid")

        assert updated.payment_status == "paid"
        assert updated.status == "pending"
        assert updated.is_stock_deducted is False

    @pytest.mark.asyncio
    async def test_status_and_payment_together(self, db_session, order):
        service = OrderService(db_session)

        updated = await service.update_order_status(
            order.id, status="processing", payment_status="paid"
        )

        assert updated.status == "processing"
        assert updated.payment_status == "paid"

    @pytest.mark.asyncio
    async def test_fraud_assessment_unchanged_by_updates(self, db_session, order):
        service = OrderService(db_session)
        before = (order.fraud_score, order.fraud_reason)

        updated = await service.update_order_status(order.id, status="delivered")

        assert (updated.fraud_score, updated.fraud_reason) == before

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs,field",
        [
            ({}, "status"),
            ({"status": "lost"}, "status"),
            ({"payment_status": "refunded"}, "payment_status"),
        ],
    )
    async def test_invalid_requests(self, db_session, order, kwargs, field):
        with pytest.raises(ValidationException) as exc_info:
            await OrderService(db_session).update_order_status(order.id, **kwargs)

        assert exc_info.value.details["field"] == field

    @pytest.mark.asyncio
    async def test_unknown_order(self, db_session):
        with pytest.raises(OrderNotFoundException):
            await OrderService(db_session).update_order_status(
                uuid.uuid4(), status="processing"
            )
