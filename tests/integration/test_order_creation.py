"""
주문 생성 통합 테스트

- 회원/비회원 주문 생성 (가격 스냅샷, 배송비, 위험도 기록)
- 재고 확인은 참고용이며 생성 시 재고는 변하지 않음
- 입력 검증 실패 시 아무것도 저장되지 않음
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from shopguard.engines.risk_scorer import RiskScoreConfig
from shopguard.models import Cart, CartItem, Order, Product
from shopguard.services.account_history import AccountHistoryService
from shopguard.services.order_service import OrderService
from shopguard.utils.client_info import ClientContext
from shopguard.utils.exceptions import (
    InsufficientStockException,
    ProductNotFoundException,
    ValidationException,
)

pytestmark = pytest.mark.integration


async def count_orders(db_session) -> int:
    result = await db_session.execute(select(func.count(Order.id)))
    return result.scalar_one()


class TestGuestOrderCreation:
    """비회원 주문 생성"""

    @pytest.mark.asyncio
    async def test_guest_order_totals_and_risk(self, db_session, make_product, shipping_address):
        """상품 2개(100원) + 기본 배송비 60원 = 260원, 위험도 낮음"""
        product = await make_product(price="100.00", stock=10)
        service = OrderService(db_session)

        order = await service.create_guest_order(
            items=[{"product_id": product.id, "quantity": 2}],
            shipping_address=shipping_address,
            client=ClientContext(ip_address="203.0.113.5", user_agent="pytest"),
        )

        assert order.user_id is None
        assert order.total_amount == Decimal("260")
        assert order.delivery_charge == Decimal("60")
        assert order.status == "pending"
        assert order.payment_status == "pending"
        assert order.payment_method == "Cash on Delivery"
        assert order.is_stock_deducted is False
        assert order.fraud_score == pytest.approx(0.29)
        assert order.fraud_reason == RiskScoreConfig.REASON_LOW
        assert order.ip_address == "203.0.113.5"
        assert order.order_number.startswith("ORD-")

        assert len(order.items) == 1
        assert order.items[0].product_name == product.name
        assert order.items[0].unit_price == Decimal("100")
        assert order.items[0].quantity == 2

        # 생성 시점에는 재고가 변하지 않음
        await db_session.refresh(product)
        assert product.stock == 10

    @pytest.mark.asyncio
    async def test_high_amount_guest_order_is_high_risk(
        self, db_session, make_product, shipping_address
    ):
        """신규 접속지에서 고액 주문"""
        product = await make_product(name="Premium Jacket", price="15000.00", stock=3)
        service = OrderService(db_session)

        order = await service.create_guest_order(
            items=[{"product_id": product.id, "quantity": 1}],
            shipping_address=shipping_address,
        )

        assert order.fraud_score == pytest.approx(0.82)
        assert order.fraud_reason == RiskScoreConfig.REASON_HIGH

    @pytest.mark.asyncio
    async def test_price_snapshot_survives_product_update(
        self, db_session, make_product, shipping_address
    ):
        """주문 후 상품 가격이 바뀌어도 주문 항목 가격은 그대로"""
        product = await make_product(price="100.00")
        service = OrderService(db_session)

        order = await service.create_guest_order(
            items=[{"product_id": product.id, "quantity": 1}],
            shipping_address=shipping_address,
        )

        product.base_price = Decimal("150.00")
        product.name = "Renamed Tee"
        await db_session.commit()

        reloaded = await service.get_order_by_id(order.id)
        assert reloaded.items[0].unit_price == Decimal("100")
        assert reloaded.items[0].product_name == "Classic Tee"
        assert reloaded.total_amount == Decimal("160")

    @pytest.mark.asyncio
    async def test_custom_delivery_charge_and_payment_method(
        self, db_session, make_product, shipping_address
    ):
        """배송비 0 허용, 결제 수단 지정"""
        product = await make_product(price="100.00")
        service = OrderService(db_session)

        order = await service.create_guest_order(
            items=[{"product_id": product.id, "quantity": 2}],
            shipping_address=shipping_address,
            delivery_charge=0,
            payment_method="Online Payment",
        )

        assert order.total_amount == Decimal("200")
        assert order.delivery_charge == Decimal("0")
        assert order.payment_method == "Online Payment"

    @pytest.mark.asyncio
    async def test_item_order_and_options_preserved(
        self, db_session, make_product, shipping_address
    ):
        """요청 순서와 상품 옵션이 그대로 저장됨"""
        tee = await make_product(name="Tee", price="100.00")
        mug = await make_product(name="Mug", price="50.00")
        service = OrderService(db_session)

        design = {"image_url": "https://cdn.example.com/d.png", "position": {"x": 10, "y": 20}}
        order = await service.create_guest_order(
            items=[
                {"product_id": mug.id, "quantity": 1},
                {
                    "product_id": tee.id,
                    "quantity": 3,
                    "size": "L",
                    "color": "Black",
                    "custom_design": design,
                },
            ],
            shipping_address=shipping_address,
        )

        assert [item.product_name for item in order.items] == ["Mug", "Tee"]
        assert order.items[1].size == "L"
        assert order.items[1].custom_design == design
        assert order.total_amount == Decimal("410")


class TestOrderCreationFailures:
    """주문 생성 실패 (부수 효과 없음)"""

    @pytest.mark.asyncio
    async def test_unknown_product(self, db_session, shipping_address):
        service = OrderService(db_session)

        with pytest.raises(ProductNotFoundException) as exc_info:
            await service.create_guest_order(
                items=[{"product_id": uuid.uuid4(), "quantity": 1}],
                shipping_address=shipping_address,
            )

        assert exc_info.value.status_code == 404
        assert await count_orders(db_session) == 0

    @pytest.mark.asyncio
    async def test_insufficient_stock_at_creation(
        self, db_session, make_product, shipping_address
    ):
        product = await make_product(name="Limited Hoodie", stock=1)
        service = OrderService(db_session)

        with pytest.raises(InsufficientStockException) as exc_info:
            await service.create_guest_order(
                items=[{"product_id": product.id, "quantity": 2}],
                shipping_address=shipping_address,
            )

        error = exc_info.value
        assert error.status_code == 422
        assert error.product_name == "Limited Hoodie"
        assert error.available == 1
        assert error.required == 2
        assert await count_orders(db_session) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "items,shipping_override,extra,field",
        [
            ([], None, {}, "items"),
            ([{"quantity": 0}], None, {}, "items[0].quantity"),
            ([{"quantity": "2"}], None, {}, "items[0].quantity"),
            ([{"quantity": True}], None, {}, "items[0].quantity"),
            ([{"quantity": 1}], {"city": ""}, {}, "shipping_address.city"),
            ([{"quantity": 1}], None, {"delivery_charge": "-5"}, "delivery_charge"),
            ([{"quantity": 1}], None, {"payment_method": "Bitcoin"}, "payment_method"),
        ],
    )
    async def test_validation_errors(
        self,
        db_session,
        make_product,
        shipping_address,
        items,
        shipping_override,
        extra,
        field,
    ):
        product = await make_product()
        service = OrderService(db_session)
        items = [{"product_id": product.id, **item} for item in items]
        address = {**shipping_address, **(shipping_override or {})}

        with pytest.raises(ValidationException) as exc_info:
            await service.create_guest_order(
                items=items, shipping_address=address, **extra
            )

        assert exc_info.value.status_code == 400
        assert exc_info.value.details["field"] == field
        assert await count_orders(db_session) == 0

    @pytest.mark.asyncio
    async def test_malformed_product_id(self, db_session, shipping_address):
        service = OrderService(db_session)

        with pytest.raises(ValidationException) as exc_info:
            await service.create_guest_order(
                items=[{"product_id": "not-a-uuid", "quantity": 1}],
                shipping_address=shipping_address,
            )

        assert exc_info.value.details["field"] == "items[0].product_id"


class TestMemberOrderCreation:
    """회원 주문 생성 (계정 이력 반영, 장바구니 비우기)"""

    @pytest.mark.asyncio
    async def test_member_order_clears_cart(
        self, db_session, test_user, make_product, shipping_address
    ):
        product = await make_product(stock=10)
        cart = Cart(user_id=test_user.id)
        db_session.add(cart)
        await db_session.flush()
        db_session.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=2))
        await db_session.commit()

        service = OrderService(db_session)
        order = await service.create_order(
            user_id=test_user.id,
            items=[{"product_id": product.id, "quantity": 2}],
            shipping_address=shipping_address,
        )

        assert order.user_id == test_user.id
        remaining = await db_session.execute(
            select(func.count(CartItem.id)).where(CartItem.cart_id == cart.id)
        )
        assert remaining.scalar_one() == 0

    @pytest.mark.asyncio
    async def test_member_without_cart(self, db_session, test_user, make_product, shipping_address):
        """장바구니가 없어도 주문 생성 성공"""
        product = await make_product()
        service = OrderService(db_session)

        order = await service.create_order(
            user_id=test_user.id,
            items=[{"product_id": product.id, "quantity": 1}],
            shipping_address=shipping_address,
        )

        assert order.status == "pending"

    @pytest.mark.asyncio
    async def test_known_origin_lowers_risk(
        self, db_session, test_user, make_product, shipping_address
    ):
        """최근 로그인한 접속지에서의 주문은 신규 접속지로 보지 않음"""
        product = await make_product(price="100.00")
        home = ClientContext(ip_address="203.0.113.5", user_agent="pytest")
        await AccountHistoryService(db_session).record_login(test_user.id, home)
        await db_session.commit()

        order = await OrderService(db_session).create_order(
            user_id=test_user.id,
            items=[{"product_id": product.id, "quantity": 2}],
            shipping_address=shipping_address,
            client=home,
        )

        assert order.fraud_score == 0.0
        assert order.fraud_reason == RiskScoreConfig.REASON_LOW

    @pytest.mark.asyncio
    async def test_unknown_origin_raises_risk(
        self, db_session, test_user, make_product, shipping_address
    ):
        """로그인 이력에 없는 접속지"""
        product = await make_product(price="100.00")
        await AccountHistoryService(db_session).record_login(
            test_user.id, ClientContext(ip_address="203.0.113.5")
        )
        await db_session.commit()

        order = await OrderService(db_session).create_order(
            user_id=test_user.id,
            items=[{"product_id": product.id, "quantity": 2}],
            shipping_address=shipping_address,
            client=ClientContext(ip_address="198.51.100.77"),
        )

        assert order.fraud_score == pytest.approx(0.16)

    @pytest.mark.asyncio
    async def test_recent_orders_raise_frequency(
        self, db_session, test_user, make_product, shipping_address
    ):
        """최근 주문이 많을수록 다음 주문의 위험도가 높아짐"""
        product = await make_product(price="100.00", stock=100)
        service = OrderService(db_session)
        home = ClientContext(ip_address="203.0.113.5")
        await AccountHistoryService(db_session).record_login(test_user.id, home)
        await db_session.commit()

        scores = []
        for _ in range(3):
            order = await service.create_order(
                user_id=test_user.id,
                items=[{"product_id": product.id, "quantity": 1}],
                shipping_address=shipping_address,
                client=home,
            )
            scores.append(order.fraud_score)

        assert scores[0] < scores[1] < scores[2]

    @pytest.mark.asyncio
    async def test_history_failure_falls_back_to_low_risk(
        self, db_session, test_user, make_product, shipping_address, monkeypatch
    ):
        """계정 이력 조회 실패 시에도 주문은 생성됨"""
        product = await make_product()
        service = OrderService(db_session)

        async def broken(*args, **kwargs):
            raise RuntimeError("history store unavailable")

        monkeypatch.setattr(service.history, "login_origins", broken)

        order = await service.create_order(
            user_id=test_user.id,
            items=[{"product_id": product.id, "quantity": 1}],
            shipping_address=shipping_address,
        )

        assert order.fraud_score == 0.0
        assert order.fraud_reason == RiskScoreConfig.REASON_LOW


class TestOrderQueries:
    """주문 조회"""

    @pytest.mark.asyncio
    async def test_user_orders_newest_first(
        self, db_session, test_user, make_product, shipping_address
    ):
        product = await make_product(stock=10)
        service = OrderService(db_session)

        first = await service.create_order(
            user_id=test_user.id,
            items=[{"product_id": product.id, "quantity": 1}],
            shipping_address=shipping_address,
        )
        second = await service.create_order(
            user_id=test_user.id,
            items=[{"product_id": product.id, "quantity": 2}],
            shipping_address=shipping_address,
        )
        await service.create_guest_order(
            items=[{"product_id": product.id, "quantity": 1}],
            shipping_address=shipping_address,
        )

        orders = await service.get_user_orders(test_user.id)
        assert {o.id for o in orders} == {first.id, second.id}
        assert orders[0].created_at >= orders[1].created_at

    @pytest.mark.asyncio
    async def test_all_orders_with_revenue(self, db_session, make_product, shipping_address):
        product = await make_product(price="100.00", stock=10)
        service = OrderService(db_session)

        for quantity in (1, 2, 3):
            await service.create_guest_order(
                items=[{"product_id": product.id, "quantity": quantity}],
                shipping_address=shipping_address,
            )

        orders, total_count, total_revenue = await service.get_all_orders(limit=2)

        assert len(orders) == 2
        assert total_count == 3
        # (100 + 60) + (200 + 60) + (300 + 60)
        assert total_revenue == Decimal("780")

        pending, pending_count, _ = await service.get_all_orders(status="shipped")
        assert pending == []
        assert pending_count == 0

    @pytest.mark.asyncio
    async def test_all_orders_unknown_status_filter(self, db_session):
        with pytest.raises(ValidationException):
            await OrderService(db_session).get_all_orders(status="lost")
