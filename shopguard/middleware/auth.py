"""
JWT 인증 의존성

FastAPI 의존성 주입을 활용한 Bearer 토큰 검증을 제공합니다.
토큰 발급은 인증 서비스가 담당하며, 여기서는 검증과 사용자 조회만 수행합니다.
"""

import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shopguard.models.base import get_db
from shopguard.models.user import User, UserRole
from shopguard.utils.exceptions import ForbiddenException, UnauthorizedException
from shopguard.utils.security import JWTManager


# HTTP Bearer 토큰 스킴 (Authorization: Bearer <token>)
security = HTTPBearer(auto_error=False)


def _user_id_from_token(token: str) -> uuid.UUID:
    """토큰 검증 후 sub 클레임의 사용자 ID 반환"""
    try:
        payload = JWTManager.decode_token(token)
    except ValueError as e:
        raise UnauthorizedException(str(e))

    # 토큰 타입 검증 (access token만 허용)
    if not JWTManager.verify_token_type(payload, "access"):
        raise UnauthorizedException("잘못된 토큰 타입입니다.")

    subject = payload.get("sub")
    if subject is None:
        raise UnauthorizedException("토큰에서 사용자 정보를 찾을 수 없습니다.")

    try:
        return uuid.UUID(str(subject))
    except ValueError:
        raise UnauthorizedException("잘못된 사용자 ID 형식입니다.")


async def _load_active_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise UnauthorizedException("사용자를 찾을 수 없습니다.")

    if not user.is_active:
        raise UnauthorizedException("비활성화된 계정입니다.")

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    현재 요청의 사용자 객체 조회

    Raises:
        UnauthorizedException: 토큰이 없거나 유효하지 않은 경우, 사용자가 없거나 정지된 경우

    Example:
        ```python
        @router.get("/v1/orders")
        async def list_orders(current_user: User = Depends(get_current_user)):
            ...
        ```
    """
    if credentials is None:
        raise UnauthorizedException("인증 토큰이 필요합니다.")

    user_id = _user_id_from_token(credentials.credentials)
    return await _load_active_user(db, user_id)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    선택적 인증 (토큰이 있으면 사용자 반환, 없거나 유효하지 않으면 None)

    분석 이벤트 수집처럼 비회원도 호출하는 공개 API에서 사용합니다.
    """
    if credentials is None:
        return None

    try:
        user_id = _user_id_from_token(credentials.credentials)
        return await _load_active_user(db, user_id)
    except UnauthorizedException:
        return None


def require_role(*allowed_roles: str):
    """
    특정 역할을 가진 사용자만 접근 허용하는 의존성 팩토리

    Example:
        ```python
        @router.get("/v1/admin/orders")
        async def admin_orders(current_user: User = Depends(require_admin)):
            ...
        ```
    """

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise ForbiddenException(
                f"이 기능은 {', '.join(allowed_roles)} 역할만 사용할 수 있습니다."
            )
        return current_user

    return role_checker


require_admin = require_role(UserRole.ADMIN.value)
