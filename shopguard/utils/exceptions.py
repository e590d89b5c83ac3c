"""
커스텀 예외 클래스 정의

애플리케이션 전역에서 사용하는 예외 클래스를 정의합니다.
"""

from typing import Optional, Any

from fastapi import status


class AppException(Exception):
    """
    애플리케이션 기본 예외 클래스

    모든 커스텀 예외는 이 클래스를 상속받습니다.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "app_error",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(AppException):
    """
    입력 검증 실패 예외

    필수 필드 누락 또는 형식 오류 시 발생하며, 부수 효과는 없습니다.
    """

    def __init__(
        self,
        message: str = "입력 데이터가 유효하지 않습니다.",
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        if field:
            details = details or {}
            details["field"] = field

        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="validation_error",
            details=details,
        )


class NotFoundException(AppException):
    """
    리소스를 찾을 수 없을 때 발생하는 예외
    """

    def __init__(
        self,
        resource: str = "리소스",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            if resource_id:
                message = f"{resource}를 찾을 수 없습니다 (ID: {resource_id})"
            else:
                message = f"{resource}를 찾을 수 없습니다."

        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="not_found",
            details={"resource": resource, "resource_id": resource_id},
        )


class UnauthorizedException(AppException):
    """
    인증 실패 예외 (401 Unauthorized)
    """

    def __init__(self, message: str = "인증에 실패했습니다."):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="unauthorized",
        )


class ForbiddenException(AppException):
    """
    권한 부족 예외 (403 Forbidden)
    """

    def __init__(self, message: str = "접근 권한이 없습니다."):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="forbidden",
        )


class ConflictException(AppException):
    """
    리소스 충돌 예외 (409 Conflict)
    """

    def __init__(
        self,
        message: str = "요청이 현재 서버 상태와 충돌합니다.",
        error_code: str = "conflict",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
            details=details,
        )


class BusinessRuleException(AppException):
    """
    비즈니스 규칙 위반 예외

    예: 재고 부족
    """

    def __init__(
        self,
        message: str,
        rule: Optional[str] = None,
        error_code: str = "business_rule_violation",
        details: Optional[dict[str, Any]] = None,
    ):
        if rule:
            details = details or {}
            details["rule"] = rule

        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
            details=details,
        )


class DatabaseException(AppException):
    """
    데이터베이스 오류 예외
    """

    def __init__(
        self,
        message: str = "데이터베이스 오류가 발생했습니다.",
        operation: Optional[str] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="database_error",
            details=details,
        )


# 주문/재고 전용 예외 클래스


class ProductNotFoundException(NotFoundException):
    """상품을 찾을 수 없을 때"""

    def __init__(self, product_id: str):
        super().__init__(resource="상품", resource_id=str(product_id))


class OrderNotFoundException(NotFoundException):
    """주문을 찾을 수 없을 때"""

    def __init__(self, order_id: str):
        super().__init__(resource="주문", resource_id=str(order_id))


class LandingPageNotFoundException(NotFoundException):
    """랜딩 페이지를 찾을 수 없을 때"""

    def __init__(self, landing_page_id: str):
        super().__init__(resource="랜딩 페이지", resource_id=str(landing_page_id))


class InsufficientStockException(BusinessRuleException):
    """재고 부족 예외 (상품명, 가용 수량, 요청 수량 포함)"""

    def __init__(
        self,
        product_name: str,
        available: int,
        required: int,
        product_id: Optional[str] = None,
    ):
        self.product_name = product_name
        self.available = available
        self.required = required
        super().__init__(
            message=(
                f"'{product_name}' 상품의 재고가 부족합니다 "
                f"(가용 {available}개, 요청 {required}개)"
            ),
            rule="stock_available",
            error_code="insufficient_stock",
            details={
                "product": product_name,
                "product_id": product_id,
                "available_stock": available,
                "required_quantity": required,
            },
        )


class InvalidStatusTransitionException(ConflictException):
    """허용되지 않는 주문 상태 전이"""

    def __init__(self, order_id: str, current_status: str, requested_status: str):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            message=(
                f"주문 상태를 '{current_status}'에서 '{requested_status}'(으)로 "
                f"변경할 수 없습니다."
            ),
            error_code="invalid_status_transition",
            details={
                "order_id": str(order_id),
                "current_status": current_status,
                "requested_status": requested_status,
            },
        )

