"""
위험 신호 정규화 (Signal Normalizer)

주문 금액, 접속지, 주문 이력을 [0, 1] 범위의 위험 신호로 변환합니다.

- amount_ratio: 주문 금액 / 금액 상한 (0~1로 고정)
- is_new_origin: 최근 로그인 접속지에 없는 IP 해시면 1 (비회원은 항상 1)
- order_frequency: 최근 N시간 주문 수를 최근일수록 크게 가중하여 합산 후 포화값으로 나눈 값.
  윈도우 밖의 누적 주문이 많은 계정일수록 포화값이 커집니다 (최대 2배).
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Sequence

from shopguard.config import get_settings
from shopguard.models.base import utc_now


@dataclass
class RiskContext:
    """
    위험도 평가 입력

    login_origins / recent_order_times 가 None 이면 이력이 없는 요청(비회원)으로 간주합니다.
    """

    total_amount: float
    origin_hash: str
    login_origins: Optional[Sequence[str]] = None
    previous_order_count: int = 0
    recent_order_times: Optional[Sequence[datetime]] = None
    evaluated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def for_guest(cls, total_amount: float, origin_hash: str) -> "RiskContext":
        return cls(total_amount=total_amount, origin_hash=origin_hash)


@dataclass(frozen=True)
class RiskSignals:
    """정규화된 위험 신호 (모두 0~1)"""

    amount_ratio: float
    is_new_origin: int
    order_frequency: float


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class SignalNormalizer:
    """
    위험 신호 정규화기

    임계값은 설정(RISK_*)에서 읽으며, 테스트를 위해 생성자에서 덮어쓸 수 있습니다.
    """

    def __init__(
        self,
        amount_cap: Optional[float] = None,
        frequency_window_hours: Optional[int] = None,
        frequency_saturation: Optional[float] = None,
        default_order_frequency: Optional[float] = None,
        history_cap: Optional[int] = None,
    ):
        settings = get_settings()
        self.amount_cap = amount_cap or settings.RISK_AMOUNT_CAP
        self.frequency_window = timedelta(
            hours=frequency_window_hours or settings.RISK_FREQUENCY_WINDOW_HOURS
        )
        self.frequency_saturation = (
            frequency_saturation or settings.RISK_FREQUENCY_SATURATION
        )
        self.default_order_frequency = (
            default_order_frequency
            if default_order_frequency is not None
            else settings.RISK_DEFAULT_ORDER_FREQUENCY
        )
        self.history_cap = history_cap or settings.RISK_FREQUENCY_HISTORY_CAP

    def normalize(self, context: RiskContext) -> RiskSignals:
        """
        평가 입력을 위험 신호로 변환

        Args:
            context: 위험도 평가 입력

        Returns:
            RiskSignals: 정규화된 신호
        """
        return RiskSignals(
            amount_ratio=self.amount_ratio(context.total_amount),
            is_new_origin=self.is_new_origin(context.origin_hash, context.login_origins),
            order_frequency=self.order_frequency(
                context.recent_order_times,
                context.evaluated_at,
                context.previous_order_count,
            ),
        )

    def amount_ratio(self, total_amount: float) -> float:
        return _clamp(float(total_amount) / self.amount_cap)

    @staticmethod
    def is_new_origin(
        origin_hash: str, login_origins: Optional[Sequence[str]]
    ) -> int:
        if not login_origins:
            return 1
        return 0 if origin_hash in login_origins else 1

    def order_frequency(
        self,
        recent_order_times: Optional[Sequence[datetime]],
        now: datetime,
        previous_order_count: int = 0,
    ) -> float:
        """
        최근 주문 빈도

        윈도우 안의 각 주문은 (1 - 경과시간/윈도우) 만큼 기여합니다.
        윈도우 밖에서 쌓인 주문(previous_order_count - 윈도우 내 주문 수)이
        history_cap 에 가까울수록 포화값이 최대 2배까지 커져 빈도가 낮게 평가됩니다.
        이력 자체가 없으면(비회원) 기본값을 사용합니다.
        """
        if recent_order_times is None:
            return self.default_order_frequency

        window_seconds = self.frequency_window.total_seconds()
        weighted = 0.0
        in_window = 0
        for placed_at in recent_order_times:
            age = (now - placed_at).total_seconds()
            if 0 <= age < window_seconds:
                weighted += 1.0 - age / window_seconds
                in_window += 1

        established = min(max(0, previous_order_count - in_window), self.history_cap)
        saturation = self.frequency_saturation * (1.0 + established / self.history_cap)
        return _clamp(weighted / saturation)
