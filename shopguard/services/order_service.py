"""
주문 서비스

주문 생성, 주문 상태 관리, 주문 조회 등 주문 관련 비즈니스 로직

- 주문 생성 시점의 재고 확인은 참고용이며 재고를 변경하지 않습니다.
- 재고는 주문이 처음으로 processing/shipped/delivered 로 전이될 때 한 번만 차감됩니다.
- 상태 전이, 차감 플래그, 재고 차감은 하나의 트랜잭션으로 처리되어 전부 반영되거나 전부 롤백됩니다.
"""

import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shopguard.config import get_settings
from shopguard.engines.risk_scorer import RiskAssessment, RiskScorer
from shopguard.engines.signal_normalizer import RiskContext
from shopguard.models.base import utc_now
from shopguard.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from shopguard.services.account_history import AccountHistoryService
from shopguard.services.cart_service import CartService
from shopguard.services.inventory_ledger import InventoryLedger
from shopguard.utils.client_info import ClientContext
from shopguard.utils.exceptions import (
    InsufficientStockException,
    InvalidStatusTransitionException,
    OrderNotFoundException,
    ValidationException,
)
from shopguard.utils.logging import audit_logger, get_logger
from shopguard.utils.prometheus_metrics import (
    record_order_created,
    record_risk_assessment,
    record_risk_fallback,
    record_status_transition,
)

logger = get_logger(__name__)

SHIPPING_FIELDS = ("full_name", "phone", "address", "city", "postal_code", "country")


class OrderService:
    """주문 관련 비즈니스 로직"""

    def __init__(self, db: AsyncSession, risk_scorer: Optional[RiskScorer] = None):
        self.db = db
        self.settings = get_settings()
        self.ledger = InventoryLedger(db)
        self.history = AccountHistoryService(db)
        self.carts = CartService(db)
        self.risk_scorer = risk_scorer or RiskScorer()

    # ===== 주문 생성 =====

    async def create_order(
        self,
        user_id: uuid.UUID,
        items: Sequence[Dict[str, Any]],
        shipping_address: Dict[str, Any],
        delivery_charge: Optional[Any] = None,
        payment_method: Optional[str] = None,
        client: Optional[ClientContext] = None,
    ) -> Order:
        """
        회원 주문 생성

        계정 이력(로그인 접속지, 최근 주문)을 위험도 평가에 반영하고,
        같은 트랜잭션에서 장바구니를 비웁니다.

        Args:
            user_id: 주문자 ID
            items: [{"product_id", "quantity", "size", "color", "material", "custom_design"}]
            shipping_address: {"full_name", "phone", "address", "city", "postal_code", "country"}
            delivery_charge: 배송비 (None이면 기본 배송비)
            payment_method: 결제 수단 (None이면 Cash on Delivery)
            client: 요청 클라이언트 정보 (IP, User-Agent)

        Returns:
            Order: 생성된 주문 (pending, 재고 미차감)

        Raises:
            ValidationException: 입력값 오류
            ProductNotFoundException: 상품이 없을 때
            InsufficientStockException: 현재 재고가 요청 수량보다 적을 때
        """
        return await self._create(
            user_id, items, shipping_address, delivery_charge, payment_method, client
        )

    async def create_guest_order(
        self,
        items: Sequence[Dict[str, Any]],
        shipping_address: Dict[str, Any],
        delivery_charge: Optional[Any] = None,
        payment_method: Optional[str] = None,
        client: Optional[ClientContext] = None,
    ) -> Order:
        """
        비회원 주문 생성

        이력이 없으므로 신규 접속지로 간주하고 주문 빈도는 기본값을 사용합니다.
        """
        return await self._create(
            None, items, shipping_address, delivery_charge, payment_method, client
        )

    async def _create(
        self,
        user_id: Optional[uuid.UUID],
        items: Sequence[Dict[str, Any]],
        shipping_address: Dict[str, Any],
        delivery_charge: Optional[Any],
        payment_method: Optional[str],
        client: Optional[ClientContext],
    ) -> Order:
        client = client or ClientContext()

        # 1. 입력 검증 (부수 효과 없음)
        requested = self._validate_items(items)
        shipping = self._validate_shipping(shipping_address)
        method = self._validate_payment_method(payment_method)
        charge = self._validate_delivery_charge(delivery_charge)

        try:
            # 2. 상품 확인 및 가격 스냅샷
            order_items: List[OrderItem] = []
            subtotal = Decimal("0")
            for position, item in enumerate(requested):
                product = await self.ledger.get_product(item["product_id"])
                self.ledger.ensure_available(product, item["quantity"])

                unit_price = Decimal(product.base_price)
                subtotal += unit_price * item["quantity"]
                order_items.append(
                    OrderItem(
                        position=position,
                        product_id=product.id,
                        product_name=product.name,
                        quantity=item["quantity"],
                        unit_price=unit_price,
                        size=item.get("size"),
                        color=item.get("color"),
                        material=item.get("material"),
                        custom_design=item.get("custom_design"),
                    )
                )

            total_amount = subtotal + charge

            # 3. 위험도 평가 (실패해도 주문은 계속 진행)
            assessment = await self._assess_risk(user_id, total_amount, client)

            # 4. 주문 저장
            order = Order(
                order_number=Order.generate_order_number(),
                user_id=user_id,
                delivery_charge=charge,
                total_amount=total_amount,
                payment_method=method.value,
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                is_stock_deducted=False,
                shipping_full_name=shipping["full_name"],
                shipping_phone=shipping["phone"],
                shipping_address=shipping["address"],
                shipping_city=shipping["city"],
                shipping_postal_code=shipping["postal_code"],
                shipping_country=shipping["country"],
                fraud_score=assessment.score,
                fraud_reason=assessment.reason,
                ip_address=client.ip_address,
                user_agent=client.user_agent,
                items=order_items,
            )
            self.db.add(order)
            await self.db.flush()

            # 5. 장바구니 비우기 (회원 주문만)
            if user_id is not None:
                cleared = await self.carts.clear_cart(user_id)
                logger.debug(f"장바구니 비움: user_id={user_id}, items={cleared}")

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        record_order_created(is_guest=user_id is None)
        logger.info(
            f"주문 생성 완료: order_id={order.id}, order_number={order.order_number}, "
            f"total={total_amount}, fraud_score={assessment.score}"
        )
        audit_logger.log_event(
            event_type="order.created",
            user_id=str(user_id) if user_id else None,
            resource_type="order",
            resource_id=str(order.id),
            action="create",
            details={
                "order_number": order.order_number,
                "total_amount": str(total_amount),
                "fraud_score": assessment.score,
                "fraud_reason": assessment.reason,
                "guest": user_id is None,
            },
        )

        return await self.get_order_by_id(order.id)

    async def _assess_risk(
        self,
        user_id: Optional[uuid.UUID],
        total_amount: Decimal,
        client: ClientContext,
    ) -> RiskAssessment:
        """계정 이력을 모아 위험도 평가 (이력 조회 실패 시 기본값)"""
        now = utc_now()
        try:
            if user_id is None:
                context = RiskContext.for_guest(float(total_amount), client.ip_hash)
            else:
                context = RiskContext(
                    total_amount=float(total_amount),
                    origin_hash=client.ip_hash,
                    login_origins=await self.history.login_origins(user_id, now),
                    previous_order_count=await self.history.previous_order_count(
                        user_id
                    ),
                    recent_order_times=await self.history.recent_order_times(
                        user_id, now
                    ),
                    evaluated_at=now,
                )
        except Exception as e:
            logger.warning(f"계정 이력 조회 실패, 기본 위험도 사용: user_id={user_id}, error={str(e)}")
            record_risk_fallback("history")
            return RiskAssessment(
                score=0.0,
                reason=self.risk_scorer.config.REASON_LOW,
                degraded=True,
            )

        assessment = self.risk_scorer.assess(context)
        if assessment.degraded:
            record_risk_fallback("scoring")
        record_risk_assessment(assessment.score, assessment.reason)
        return assessment

    # ===== 입력 검증 =====

    @staticmethod
    def _validate_items(items: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not items:
            raise ValidationException("주문 항목이 비어있습니다", field="items")

        validated = []
        for index, item in enumerate(items):
            quantity = item.get("quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise ValidationException(
                    "수량은 1 이상의 정수여야 합니다",
                    field=f"items[{index}].quantity",
                )

            product_id = item.get("product_id")
            if not isinstance(product_id, uuid.UUID):
                try:
                    product_id = uuid.UUID(str(product_id))
                except ValueError:
                    raise ValidationException(
                        "상품 ID 형식이 올바르지 않습니다",
                        field=f"items[{index}].product_id",
                    )

            validated.append({**item, "product_id": product_id, "quantity": quantity})
        return validated

    @staticmethod
    def _validate_shipping(shipping_address: Dict[str, Any]) -> Dict[str, str]:
        if not shipping_address:
            raise ValidationException("배송지 정보가 필요합니다", field="shipping_address")

        shipping = {}
        for name in SHIPPING_FIELDS:
            value = shipping_address.get(name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationException(
                    "배송지 정보가 누락되었습니다",
                    field=f"shipping_address.{name}",
                )
            shipping[name] = value.strip()
        return shipping

    @staticmethod
    def _validate_payment_method(payment_method: Optional[str]) -> PaymentMethod:
        if payment_method is None:
            return PaymentMethod.CASH_ON_DELIVERY
        try:
            return PaymentMethod(payment_method)
        except ValueError:
            raise ValidationException(
                f"지원하지 않는 결제 수단입니다: {payment_method}",
                field="payment_method",
            )

    def _validate_delivery_charge(self, delivery_charge: Optional[Any]) -> Decimal:
        if delivery_charge is None:
            return Decimal(self.settings.DEFAULT_DELIVERY_CHARGE)
        try:
            charge = Decimal(str(delivery_charge))
        except InvalidOperation:
            raise ValidationException(
                "배송비 형식이 올바르지 않습니다", field="delivery_charge"
            )
        if not charge.is_finite() or charge < 0:
            raise ValidationException(
                "배송비는 0 이상이어야 합니다", field="delivery_charge"
            )
        return charge

    # ===== 상태 변경 =====

    async def update_order_status(
        self,
        order_id: uuid.UUID,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> Order:
        """
        주문 상태 / 결제 상태 변경 (관리자)

        처음으로 processing/shipped/delivered 로 전이될 때 재고를 차감합니다.
        동시에 같은 주문을 확정하는 요청이 여러 개 와도 재고는 한 번만 차감되며,
        재고가 부족하면 상태 변경을 포함한 모든 변경이 롤백됩니다.

        Args:
            order_id: 주문 ID
            status: 변경할 주문 상태
            payment_status: 변경할 결제 상태

        Returns:
            Order: 변경된 주문

        Raises:
            ValidationException: 변경할 값이 없거나 알 수 없는 상태값
            OrderNotFoundException: 주문이 없을 때
            InvalidStatusTransitionException: 허용되지 않는 상태 전이
            InsufficientStockException: 재고 부족 (변경 사항 없음)
            ProductNotFoundException: 주문 상품이 삭제된 경우 (변경 사항 없음)
        """
        if status is None and payment_status is None:
            raise ValidationException("변경할 상태가 없습니다", field="status")

        target = self._parse_enum(OrderStatus, status, "status")
        target_payment = self._parse_enum(PaymentStatus, payment_status, "payment_status")

        order = await self.get_order_by_id(order_id)
        previous_status = order.status
        deducted = False

        try:
            if target is not None:
                await self._apply_status(order, target)
                if target.deducts_stock:
                    deducted = await self.ledger.deduct_for_order(order.id, order.items)

            if target_payment is not None:
                await self.db.execute(
                    update(Order)
                    .where(Order.id == order.id)
                    .values(payment_status=target_payment.value, updated_at=utc_now())
                    .execution_options(synchronize_session=False)
                )

            await self.db.commit()
        except InsufficientStockException:
            await self.db.rollback()
            record_status_transition(target.value, "insufficient_stock")
            raise
        except InvalidStatusTransitionException:
            await self.db.rollback()
            record_status_transition(target.value, "rejected")
            raise
        except Exception:
            await self.db.rollback()
            raise

        if target is not None:
            record_status_transition(target.value, "applied")

        logger.info(
            f"주문 상태 변경: order_id={order_id}, status={previous_status}->{status}, "
            f"payment_status={payment_status}, stock_deducted={deducted}"
        )
        audit_logger.log_event(
            event_type="order.status_changed",
            resource_type="order",
            resource_id=str(order_id),
            action="update",
            details={
                "previous_status": previous_status,
                "status": status,
                "payment_status": payment_status,
                "stock_deducted": deducted,
            },
        )

        return await self.get_order_by_id(order_id)

    async def _apply_status(self, order: Order, target: OrderStatus) -> None:
        """허용된 현재 상태에서만 target 으로 변경 (조건부 UPDATE)"""
        sources = [s.value for s in OrderStatus.allowed_sources(target)]
        result = await self.db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status.in_(sources))
            .values(status=target.value, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        current = await self.db.execute(select(Order.status).where(Order.id == order.id))
        raise InvalidStatusTransitionException(
            order_id=str(order.id),
            current_status=current.scalar_one(),
            requested_status=target.value,
        )

    @staticmethod
    def _parse_enum(enum_cls, value: Optional[str], field: str):
        if value is None:
            return None
        try:
            return enum_cls(value)
        except ValueError:
            raise ValidationException(f"알 수 없는 값입니다: {value}", field=field)

    # ===== 조회 =====

    async def get_order_by_id(self, order_id: uuid.UUID) -> Order:
        """
        주문 조회 (항목 포함, 항상 DB의 최신 상태 반영)

        Raises:
            OrderNotFoundException: 주문이 없을 때
        """
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.items))
            .execution_options(populate_existing=True)
        )
        order = result.scalars().first()
        if order is None:
            raise OrderNotFoundException(str(order_id))
        return order

    async def get_user_orders(self, user_id: uuid.UUID) -> List[Order]:
        """사용자 주문 목록 (최신순)"""
        result = await self.db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .options(selectinload(Order.items))
            .order_by(Order.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_all_orders(
        self,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Order], int, Decimal]:
        """
        전체 주문 목록 (관리자)

        Args:
            status: 주문 상태 필터
            limit: 페이지 크기
            offset: 건너뛸 개수

        Returns:
            (주문 목록, 필터에 해당하는 전체 주문 수, 필터에 해당하는 주문 총액 합계)
        """
        target = self._parse_enum(OrderStatus, status, "status")

        filters = []
        if target is not None:
            filters.append(Order.status == target.value)

        summary = await self.db.execute(
            select(func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
            .where(*filters)
        )
        total_count, total_revenue = summary.one()

        result = await self.db.execute(
            select(Order)
            .where(*filters)
            .options(selectinload(Order.items))
            .order_by(Order.created_at.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all()), total_count, Decimal(str(total_revenue))
