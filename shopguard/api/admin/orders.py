"""
관리자 주문 관리 API

관리자가 주문 목록을 조회하고 주문 상태를 변경하는 API 엔드포인트.
주문 확정(processing/shipped/delivered)으로의 첫 전이 시 재고가 차감됩니다.
"""

import uuid
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from shopguard.api.orders import OrderResponse
from shopguard.middleware.auth import require_admin
from shopguard.models.base import get_db
from shopguard.services.order_service import OrderService


router = APIRouter(prefix="/v1/admin/orders", tags=["Admin - Orders"])


# ===== Request/Response 스키마 =====


class AdminOrderListResponse(BaseModel):
    """주문 목록 응답"""

    orders: List[OrderResponse]
    count: int
    total_count: int
    total_revenue: Decimal
    limit: int
    offset: int

    class Config:
        json_schema_extra = {
            "example": {
                "orders": [],
                "count": 0,
                "total_count": 120,
                "total_revenue": "845200.00",
                "limit": 50,
                "offset": 0,
            }
        }


class OrderStatusUpdateRequest(BaseModel):
    """주문 상태 수정 요청 (둘 중 하나 이상 필요)"""

    status: Optional[str] = Field(
        None, description="pending | processing | shipped | delivered | cancelled"
    )
    payment_status: Optional[str] = Field(None, description="pending | paid | failed")

    class Config:
        json_schema_extra = {"example": {"status": "processing", "payment_status": "paid"}}


# ===== API 엔드포인트 =====


@router.get(
    "",
    response_model=AdminOrderListResponse,
    summary="주문 목록 조회",
    description="관리자가 전체 주문 목록과 매출 합계를 조회합니다.",
)
async def get_orders(
    status: Optional[str] = Query(None, description="주문 상태 필터"),
    limit: int = Query(50, ge=1, le=200, description="페이지 크기"),
    offset: int = Query(0, ge=0, description="건너뛸 개수"),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
):
    """
    모든 주문 목록을 조회합니다 (최신순).

    **반환**:
    - orders: 주문 목록
    - total_count: 필터에 해당하는 전체 주문 수
    - total_revenue: 필터에 해당하는 주문의 총액 합계
    """
    orders, total_count, total_revenue = await OrderService(db).get_all_orders(
        status=status, limit=limit, offset=offset
    )
    return AdminOrderListResponse(
        orders=[OrderResponse.from_order(o) for o in orders],
        count=len(orders),
        total_count=total_count,
        total_revenue=total_revenue,
        limit=limit,
        offset=offset,
    )


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="주문 상태 변경",
    description="관리자가 주문 상태 또는 결제 상태를 변경합니다.",
)
async def update_order_status(
    order_id: uuid.UUID,
    body: OrderStatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
):
    """
    주문 상태를 변경합니다.

    **허용되는 상태 전환**:
    - pending → processing → shipped → delivered (단계 건너뛰기 허용)
    - 종료되지 않은 모든 상태 → cancelled
    - 현재와 같은 상태 요청은 변경 없이 성공

    **재고 차감**:
    - processing/shipped/delivered 로의 첫 전이 시 주문 항목만큼 차감
    - 재고 부족 시 422, 주문은 변경되지 않음

    **에러**:
    - 400: 변경할 값 없음 / 알 수 없는 상태값
    - 404: 주문 또는 상품을 찾을 수 없음
    - 409: 허용되지 않는 상태 전환
    - 422: 재고 부족
    """
    order = await OrderService(db).update_order_status(
        order_id, status=body.status, payment_status=body.payment_status
    )
    return OrderResponse.from_order(order)
