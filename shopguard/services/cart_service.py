"""
장바구니 서비스

장바구니 관리는 외부 서비스 담당이며, 주문 코어는 주문 생성 시 비우기만 수행합니다.
"""

import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from shopguard.models.cart import Cart, CartItem


class CartService:
    """장바구니 비우기"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def clear_cart(self, user_id: uuid.UUID) -> int:
        """
        사용자 장바구니 비우기 (호출자 트랜잭션 안에서 실행)

        Returns:
            int: 삭제된 항목 수 (장바구니가 없으면 0)
        """
        result = await self.db.execute(
            delete(CartItem)
            .where(CartItem.cart_id.in_(select(Cart.id).where(Cart.user_id == user_id)))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
