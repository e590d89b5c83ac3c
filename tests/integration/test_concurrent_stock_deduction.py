"""
동시성 통합 테스트

세션마다 별도 DB 연결을 사용하는 파일 기반 SQLite 로 실제 트랜잭션 경합을 재현합니다.

- 같은 주문을 동시에 여러 번 확정해도 재고는 한 번만 차감
- 같은 상품을 주문한 여러 주문을 동시에 확정해도 재고가 음수가 되지 않음
- 같은 세션 ID 로 동시에 이벤트가 들어와도 세션은 하나만 생성
"""

import asyncio
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from shopguard.models import AnalyticsEvent, Order, Product, VisitorSession
from shopguard.services.order_service import OrderService
from shopguard.services.session_tracker import SessionTracker
from shopguard.utils.client_info import ClientContext
from shopguard.utils.exceptions import InsufficientStockException

pytestmark = pytest.mark.integration

SHIPPING = {
    "full_name": "Concurrent Buyer",
    "phone": "01700000000",
    "address": "House 1, Road 1",
    "city": "Dhaka",
    "postal_code": "1000",
    "country": "Bangladesh",
}


async def seed_product(factory, stock: int) -> uuid.UUID:
    async with factory() as session:
        product = Product(name="Race Tee", base_price=Decimal("100.00"), stock=stock)
        session.add(product)
        await session.commit()
        return product.id


async def seed_order(factory, product_id: uuid.UUID, quantity: int) -> uuid.UUID:
    async with factory() as session:
        order = await OrderService(session).create_guest_order(
            items=[{"product_id": product_id, "quantity": quantity}],
            shipping_address=SHIPPING,
        )
        return order.id


async def confirm(factory, order_id: uuid.UUID) -> str:
    async with factory() as session:
        order = await OrderService(session).update_order_status(
            order_id, status="processing"
        )
        return order.status


async def current_stock(factory, product_id: uuid.UUID) -> int:
    async with factory() as session:
        result = await session.execute(select(Product.stock).where(Product.id == product_id))
        return result.scalar_one()


class TestConcurrentConfirmation:
    """동시 주문 확정"""

    @pytest.mark.asyncio
    async def test_same_order_confirmed_concurrently_deducts_once(self, file_session_factory):
        product_id = await seed_product(file_session_factory, stock=10)
        order_id = await seed_order(file_session_factory, product_id, quantity=2)

        results = await asyncio.gather(
            *(confirm(file_session_factory, order_id) for _ in range(8)),
            return_exceptions=True,
        )

        assert all(result == "processing" for result in results), results
        assert await current_stock(file_session_factory, product_id) == 8

        async with file_session_factory() as session:
            order = await OrderService(session).get_order_by_id(order_id)
            assert order.is_stock_deducted is True

    @pytest.mark.asyncio
    async def test_competing_orders_never_oversell(self, file_session_factory):
        """재고 10개에 3개씩 5건: 3건만 확정, 남은 재고 1개"""
        product_id = await seed_product(file_session_factory, stock=10)
        order_ids = [
            await seed_order(file_session_factory, product_id, quantity=3)
            for _ in range(5)
        ]

        results = await asyncio.gather(
            *(confirm(file_session_factory, order_id) for order_id in order_ids),
            return_exceptions=True,
        )

        confirmed = [r for r in results if r == "processing"]
        rejected = [r for r in results if isinstance(r, InsufficientStockException)]
        assert len(confirmed) == 3, results
        assert len(rejected) == 2, results
        assert await current_stock(file_session_factory, product_id) == 1

        async with file_session_factory() as session:
            deducted = await session.execute(
                select(func.count(Order.id)).where(Order.is_stock_deducted.is_(True))
            )
            pending = await session.execute(
                select(func.count(Order.id)).where(Order.status == "pending")
            )
            assert deducted.scalar_one() == 3
            assert pending.scalar_one() == 2


class TestConcurrentSessions:
    """동시 세션 생성"""

    @pytest.mark.asyncio
    async def test_duplicate_session_id_collapses(self, file_session_factory):
        client = ClientContext(ip_address="203.0.113.5", user_agent="pytest")

        async def track(index: int) -> bool:
            async with file_session_factory() as session:
                return await SessionTracker(session).record_public_event(
                    "shared-session", "VIEW", client, url=f"/products/{index}"
                )

        results = await asyncio.gather(*(track(i) for i in range(5)))

        assert all(results)
        async with file_session_factory() as session:
            sessions = await session.execute(
                select(func.count(VisitorSession.id)).where(
                    VisitorSession.session_id == "shared-session"
                )
            )
            events = await session.execute(select(func.count(AnalyticsEvent.id)))
            assert sessions.scalar_one() == 1
            assert events.scalar_one() == 5
