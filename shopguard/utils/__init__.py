"""
유틸리티 패키지

보안, 로깅, 예외 처리, 클라이언트 정보 추출 등의 공통 유틸리티를 제공합니다.
"""

from shopguard.utils.security import JWTManager

from shopguard.utils.logging import (
    setup_logging,
    get_logger,
    AuditLogger,
    audit_logger,
)

from shopguard.utils.client_info import (
    ClientContext,
    hash_ip,
    get_client_ip,
    parse_user_agent,
)

from shopguard.utils.exceptions import (
    AppException,
    ValidationException,
    NotFoundException,
    UnauthorizedException,
    ForbiddenException,
    ConflictException,
    BusinessRuleException,
    DatabaseException,
    # 주문/재고 전용
    ProductNotFoundException,
    OrderNotFoundException,
    LandingPageNotFoundException,
    InsufficientStockException,
    InvalidStatusTransitionException,
)

__all__ = [
    # 보안
    "JWTManager",
    # 로깅
    "setup_logging",
    "get_logger",
    "AuditLogger",
    "audit_logger",
    # 클라이언트 정보
    "ClientContext",
    "hash_ip",
    "get_client_ip",
    "parse_user_agent",
    # 예외
    "AppException",
    "ValidationException",
    "NotFoundException",
    "UnauthorizedException",
    "ForbiddenException",
    "ConflictException",
    "BusinessRuleException",
    "DatabaseException",
    "ProductNotFoundException",
    "OrderNotFoundException",
    "LandingPageNotFoundException",
    "InsufficientStockException",
    "InvalidStatusTransitionException",
]
