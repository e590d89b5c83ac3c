"""
주문 API 엔드포인트

주문 생성(회원/비회원)과 내 주문 조회 REST API
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from shopguard.middleware.auth import get_current_user
from shopguard.models.base import get_db
from shopguard.models.order import Order
from shopguard.models.user import User
from shopguard.services.order_service import OrderService
from shopguard.utils.client_info import ClientContext
from shopguard.utils.exceptions import ForbiddenException


router = APIRouter(prefix="/v1/orders", tags=["주문"])


# ===== Request/Response 스키마 =====


class DesignPosition(BaseModel):
    x: float
    y: float


class CustomDesign(BaseModel):
    """커스텀 디자인 (이미지는 외부 저장소 URL)"""

    image_url: Optional[str] = None
    position: Optional[DesignPosition] = None


class OrderItemRequest(BaseModel):
    """주문 항목 요청"""

    product_id: uuid.UUID
    quantity: int = Field(..., description="수량 (1 이상)")
    size: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=50)
    material: Optional[str] = Field(None, max_length=100)
    custom_design: Optional[CustomDesign] = None


class ShippingAddressSchema(BaseModel):
    """배송지"""

    full_name: str
    phone: str
    address: str
    city: str
    postal_code: str
    country: str


class CreateOrderRequest(BaseModel):
    """주문 생성 요청"""

    items: List[OrderItemRequest]
    shipping_address: ShippingAddressSchema
    delivery_charge: Optional[Decimal] = Field(None, description="배송비 (생략 시 60)")
    payment_method: Optional[str] = Field(
        None, description="Cash on Delivery | Online Payment"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "items": [
                    {
                        "product_id": "550e8400-e29b-41d4-a716-446655440000",
                        "quantity": 2,
                        "size": "L",
                        "color": "black",
                    }
                ],
                "shipping_address": {
                    "full_name": "Rahim Uddin",
                    "phone": "01712345678",
                    "address": "House 12, Road 5",
                    "city": "Dhaka",
                    "postal_code": "1207",
                    "country": "Bangladesh",
                },
                "payment_method": "Cash on Delivery",
            }
        }

    def items_payload(self) -> List[Dict[str, Any]]:
        return [item.model_dump() for item in self.items]


class OrderItemResponse(BaseModel):
    """주문 항목 응답 (주문 시점 스냅샷)"""

    product_id: uuid.UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    size: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    custom_design: Optional[Dict[str, Any]] = None


class OrderResponse(BaseModel):
    """주문 응답"""

    id: uuid.UUID
    order_number: str
    user_id: Optional[uuid.UUID] = None
    items: List[OrderItemResponse]
    delivery_charge: Decimal
    total_amount: Decimal
    payment_method: str
    status: str
    payment_status: str
    is_stock_deducted: bool
    shipping_address: ShippingAddressSchema
    fraud_score: float
    fraud_reason: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            items=[
                OrderItemResponse(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    subtotal=item.get_subtotal(),
                    size=item.size,
                    color=item.color,
                    material=item.material,
                    custom_design=item.custom_design,
                )
                for item in order.items
            ],
            delivery_charge=order.delivery_charge,
            total_amount=order.total_amount,
            payment_method=order.payment_method,
            status=order.status,
            payment_status=order.payment_status,
            is_stock_deducted=order.is_stock_deducted,
            shipping_address=ShippingAddressSchema(
                full_name=order.shipping_full_name,
                phone=order.shipping_phone,
                address=order.shipping_address,
                city=order.shipping_city,
                postal_code=order.shipping_postal_code,
                country=order.shipping_country,
            ),
            fraud_score=order.fraud_score,
            fraud_reason=order.fraud_reason,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListResponse(BaseModel):
    """주문 목록 응답"""

    count: int
    orders: List[OrderResponse]


# ===== API 엔드포인트 =====


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: CreateOrderRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    회원 주문 생성

    주문은 pending 상태로 생성되며 재고는 관리자가 주문을 확정할 때 차감됩니다.
    주문 생성 후 장바구니는 비워집니다.
    """
    order = await OrderService(db).create_order(
        user_id=current_user.id,
        items=body.items_payload(),
        shipping_address=body.shipping_address.model_dump(),
        delivery_charge=body.delivery_charge,
        payment_method=body.payment_method,
        client=ClientContext.from_request(request),
    )
    return OrderResponse.from_order(order)


@router.post("/guest", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_guest_order(
    body: CreateOrderRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """비회원 주문 생성 (인증 불필요)"""
    order = await OrderService(db).create_guest_order(
        items=body.items_payload(),
        shipping_address=body.shipping_address.model_dump(),
        delivery_charge=body.delivery_charge,
        payment_method=body.payment_method,
        client=ClientContext.from_request(request),
    )
    return OrderResponse.from_order(order)


@router.get("", response_model=OrderListResponse)
async def get_my_orders(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """내 주문 목록 (최신순)"""
    orders = await OrderService(db).get_user_orders(current_user.id)
    return OrderListResponse(
        count=len(orders), orders=[OrderResponse.from_order(o) for o in orders]
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    주문 상세 조회

    본인 주문 또는 관리자만 조회할 수 있습니다.
    """
    order = await OrderService(db).get_order_by_id(order_id)
    if order.user_id != current_user.id and not current_user.is_admin:
        raise ForbiddenException("이 주문을 조회할 권한이 없습니다.")
    return OrderResponse.from_order(order)
