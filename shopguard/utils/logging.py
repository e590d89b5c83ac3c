"""
로깅 설정 및 민감 데이터 자동 마스킹

개인정보보호법 준수를 위해 로그에 남는 이메일, 전화번호, 원본 IP 주소를 마스킹합니다.
(접속지 정보는 해시로만 저장하며, 로그에도 원본이 남지 않아야 합니다)
"""

import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Optional


# LogRecord 기본 속성 (extra 필드 추출 시 제외)
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class SensitiveDataFilter(logging.Filter):
    """
    민감 데이터 자동 마스킹 필터

    로그에 출력되는 민감 정보를 자동으로 마스킹합니다.
    """

    SENSITIVE_PATTERNS = {
        # 이메일 일부 마스킹: user@example.com → u***@example.com
        "email": (
            r"\b([a-zA-Z0-9._%+-])[a-zA-Z0-9._%+-]*@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b",
            r"\1***@\2",
        ),
        # IPv4 주소: 203.0.113.42 → 203.0.*.*
        "ipv4": (
            r"\b(\d{1,3})\.(\d{1,3})\.\d{1,3}\.\d{1,3}\b",
            r"\1.\2.*.*",
        ),
        # 전화번호: 010-1234-5678 → 010-****-5678, +880 1712-345678 → +880 ****-345678
        "phone": (
            r"(\+?\d{2,4})[\s\-](\d{3,4})[\s\-](\d{4,6})\b",
            r"\1-****-\3",
        ),
        # 토큰: "access_token": "eyJ..." → "access_token": "***"
        "token": (
            r'"(token|access_token|refresh_token)"\s*:\s*"[^"]*"',
            r'"\1": "***"',
        ),
    }

    def filter(self, record: logging.LogRecord) -> bool:
        """
        로그 레코드를 필터링하여 민감 데이터 마스킹

        메시지 포맷팅을 먼저 수행한 뒤 마스킹하므로 %d 등의 포맷 인자도 안전합니다.

        Returns:
            bool: 항상 True (필터 통과)
        """
        if isinstance(record.msg, str):
            record.msg = self.mask_sensitive_data(record.getMessage())
            record.args = None

        return True

    def mask_sensitive_data(self, text: str) -> str:
        """
        민감 데이터 마스킹

        Args:
            text: 마스킹할 텍스트

        Returns:
            str: 마스킹된 텍스트
        """
        for pattern, replacement in self.SENSITIVE_PATTERNS.values():
            text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)

        return text


class JSONFormatter(logging.Formatter):
    """
    JSON 형식 로그 포맷터

    구조화된 로그를 위해 JSON 형식으로 출력합니다.
    logger.info(..., extra={...}) 로 전달한 필드는 최상위 키로 포함됩니다.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # 추가 컨텍스트 정보
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        # 예외 정보
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    전역 로깅 설정

    Args:
        log_level: 로그 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: 로그 포맷 ("json" 또는 "text")
        log_file: 로그 파일 경로 (None이면 콘솔만)
    """
    log_level = log_level or os.getenv("LOG_LEVEL", "INFO")
    log_format = log_format or os.getenv("LOG_FORMAT", "json")
    log_file = log_file or os.getenv("LOG_FILE")

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # 기존 핸들러 제거
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.addFilter(SensitiveDataFilter())
        root_logger.addHandler(file_handler)

    # 써드파티 라이브러리 로그 레벨 조정
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    로거 인스턴스 생성

    Args:
        name: 로거 이름 (보통 __name__ 사용)

    Example:
        ```python
        logger = get_logger(__name__)
        logger.info("서버 시작")
        logger.warning("재고 부족", extra={"product_id": "..."})
        ```
    """
    return logging.getLogger(name)


class AuditLogger:
    """
    감사 로그 (Audit Log)

    중요한 비즈니스 이벤트를 기록합니다 (주문 생성, 상태 변경, 트래픽 플래그).
    """

    def __init__(self):
        self.logger = get_logger("audit")

    def log_event(
        self,
        event_type: str,
        user_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """
        감사 이벤트 로깅

        Args:
            event_type: 이벤트 유형 (order.created, order.status_changed, traffic.flagged)
            user_id: 사용자 ID (비회원/시스템 이벤트는 None)
            resource_type: 리소스 유형 (order, session 등)
            resource_id: 리소스 ID
            action: 수행된 작업 (create, update, flag 등)
            details: 추가 상세 정보
        """
        self.logger.info(
            f"[AUDIT] {event_type}",
            extra={
                "event_type": event_type,
                "user_id": user_id,
                "resource_type": resource_type,
                "resource_id": resource_id,
                "action": action,
                "details": details or {},
            },
        )


# 전역 감사 로거 인스턴스
audit_logger = AuditLogger()
