"""
클라이언트 정보 추출 유틸리티

- 요청에서 클라이언트 IP 추출 (프록시 헤더 우선)
- IP 해시 (SHA-256 hex, 원본 IP는 저장하지 않음)
- User-Agent 기반 기기/브라우저/OS 추정
"""

import hashlib
from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import Request


UNKNOWN_IP = "unknown"


@dataclass(frozen=True)
class ClientContext:
    """요청 클라이언트 정보 (주문 감사 정보 및 세션 추적에 사용)"""

    ip_address: str = UNKNOWN_IP
    user_agent: Optional[str] = None

    @property
    def ip_hash(self) -> str:
        return hash_ip(self.ip_address)

    @classmethod
    def from_request(cls, request: Request) -> "ClientContext":
        return cls(
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )


def hash_ip(ip_address: str) -> str:
    """
    IP 주소 해시

    동일한 IP는 항상 같은 해시가 되므로 접속지 비교에 사용할 수 있습니다.

    Returns:
        str: 64자리 SHA-256 hex 문자열
    """
    return hashlib.sha256((ip_address or UNKNOWN_IP).encode("utf-8")).hexdigest()


def get_client_ip(request: Request) -> str:
    """
    클라이언트 IP 추출

    X-Forwarded-For 헤더 우선 (프록시/로드밸런서 뒤에 있을 경우),
    다음으로 X-Real-IP, 마지막으로 직접 연결된 주소를 사용합니다.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        # 첫 번째 IP 사용 (원본 클라이언트 IP)
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else UNKNOWN_IP


# (부분 문자열, 이름) 순서대로 검사 (Edge/Opera UA에는 Chrome 문자열도 포함됨)
_BROWSER_RULES = (
    ("Edg/", "Edge"),
    ("OPR/", "Opera"),
    ("SamsungBrowser", "Samsung Internet"),
    ("Firefox/", "Firefox"),
    ("Chrome/", "Chrome"),
    ("CriOS", "Chrome"),
    ("Safari/", "Safari"),
)

_OS_RULES = (
    ("Windows", "Windows"),
    ("Android", "Android"),
    ("iPhone", "iOS"),
    ("iPad", "iOS"),
    ("Mac OS X", "Mac OS"),
    ("CrOS", "Chrome OS"),
    ("Linux", "Linux"),
)


def parse_user_agent(user_agent: Optional[str]) -> Tuple[str, Optional[str], Optional[str]]:
    """
    User-Agent 문자열에서 (기기, 브라우저, OS) 추정

    기기 유형을 알 수 없으면 "desktop" 으로 간주합니다.

    Returns:
        Tuple[str, Optional[str], Optional[str]]: (device, browser, os)
    """
    if not user_agent:
        return "desktop", None, None

    if "iPad" in user_agent or "Tablet" in user_agent:
        device = "tablet"
    elif "Mobi" in user_agent or "iPhone" in user_agent or "Android" in user_agent:
        device = "mobile"
    else:
        device = "desktop"

    browser = next((name for token, name in _BROWSER_RULES if token in user_agent), None)
    os_name = next((name for token, name in _OS_RULES if token in user_agent), None)

    return device, browser, os_name
