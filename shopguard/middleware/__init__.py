"""
미들웨어 / 인증 의존성 패키지
"""

from shopguard.middleware.auth import (
    get_current_user,
    get_optional_user,
    require_admin,
    require_role,
)

__all__ = [
    "get_current_user",
    "get_optional_user",
    "require_admin",
    "require_role",
]
