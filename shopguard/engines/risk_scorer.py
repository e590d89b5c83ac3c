"""
위험 점수 산정 엔진 (Risk Scorer)

정규화된 세 신호(금액 비율, 신규 접속지, 주문 빈도)의 가중 합에
신호 쌍의 상호작용 항을 더해 0~1 범위의 위험 점수를 계산합니다.

모든 가중치가 양수이므로 점수는 각 신호에 대해 단조 증가하며,
여러 신호가 동시에 높을 때는 개별 기여의 합보다 크게 올라갑니다.
"""

from dataclasses import dataclass, field
from typing import Optional

from shopguard.engines.signal_normalizer import (
    RiskContext,
    RiskSignals,
    SignalNormalizer,
)
from shopguard.utils.logging import get_logger

logger = get_logger(__name__)


class RiskScoreConfig:
    """
    위험 점수 산정 설정

    신호별 가중치, 상호작용 가중치, 판정 임계값을 정의합니다.
    """

    # 단일 신호 가중치
    AMOUNT_WEIGHT = 0.25
    NEW_ORIGIN_WEIGHT = 0.15
    FREQUENCY_WEIGHT = 0.55

    # 상호작용 가중치
    AMOUNT_X_NEW_ORIGIN = 0.40  # 고액 + 신규 접속지
    AMOUNT_X_FREQUENCY = 0.35  # 고액 + 잦은 주문
    NEW_ORIGIN_X_FREQUENCY = 0.10

    # 판정 임계값 (초과 기준)
    HIGH_RISK_THRESHOLD = 0.8
    MEDIUM_RISK_THRESHOLD = 0.5
    HIGH_AMOUNT_RATIO = 0.5

    # 판정 사유
    REASON_HIGH = "High Risk: Unusual pattern detected"
    REASON_MEDIUM = "Medium Risk: Monitor activity"
    REASON_NEW_ORIGIN_HIGH_AMOUNT = "New IP with high amount"
    REASON_LOW = "Low risk"


@dataclass(frozen=True)
class RiskAssessment:
    """위험도 평가 결과"""

    score: float
    reason: str
    signals: Optional[RiskSignals] = field(default=None)
    degraded: bool = False  # 내부 오류로 기본값을 사용했는지


class RiskScorer:
    """
    위험 점수 산정 엔진

    score() 는 신호만으로 계산되는 순수 함수이므로, 학습된 모델로 교체할 때는
    같은 시그니처를 가진 객체로 바꾸면 됩니다.
    """

    def __init__(
        self,
        config: Optional[RiskScoreConfig] = None,
        normalizer: Optional[SignalNormalizer] = None,
    ):
        self.config = config or RiskScoreConfig()
        self.normalizer = normalizer or SignalNormalizer()

    def raw_score(self, signals: RiskSignals) -> float:
        """반올림 전 위험 점수 (0~1 로 고정)"""
        cfg = self.config
        a = signals.amount_ratio
        n = float(signals.is_new_origin)
        f = signals.order_frequency

        raw = (
            cfg.AMOUNT_WEIGHT * a
            + cfg.NEW_ORIGIN_WEIGHT * n
            + cfg.FREQUENCY_WEIGHT * f
            + cfg.AMOUNT_X_NEW_ORIGIN * a * n
            + cfg.AMOUNT_X_FREQUENCY * a * f
            + cfg.NEW_ORIGIN_X_FREQUENCY * n * f
        )
        return max(0.0, min(1.0, raw))

    def score(self, signals: RiskSignals) -> float:
        """
        위험 점수 계산

        Returns:
            float: 0~1 범위, 소수점 둘째 자리 반올림
        """
        return round(self.raw_score(signals), 2)

    def determine_reason(
        self, score: float, is_new_origin: int, amount_ratio: float
    ) -> str:
        """점수와 신호로 판정 사유 결정 (위에서부터 먼저 일치하는 사유)"""
        cfg = self.config
        if score > cfg.HIGH_RISK_THRESHOLD:
            return cfg.REASON_HIGH
        if score > cfg.MEDIUM_RISK_THRESHOLD:
            return cfg.REASON_MEDIUM
        if is_new_origin and amount_ratio > cfg.HIGH_AMOUNT_RATIO:
            return cfg.REASON_NEW_ORIGIN_HIGH_AMOUNT
        return cfg.REASON_LOW

    def assess(self, context: RiskContext) -> RiskAssessment:
        """
        주문 위험도 평가

        예외를 발생시키지 않습니다. 내부 오류 시 (0.0, "Low risk") 를 반환하여
        주문 생성이 위험도 평가 때문에 실패하지 않도록 합니다.

        Args:
            context: 위험도 평가 입력

        Returns:
            RiskAssessment: 점수, 사유, 사용된 신호
        """
        try:
            signals = self.normalizer.normalize(context)
            raw = self.raw_score(signals)
            # 판정은 반올림 전 점수 기준, 저장은 둘째 자리 반올림
            reason = self.determine_reason(
                raw, signals.is_new_origin, signals.amount_ratio
            )
            score = round(raw, 2)
            return RiskAssessment(score=score, reason=reason, signals=signals)
        except Exception as e:
            logger.error(f"위험도 평가 실패, 기본값 사용: {str(e)}", exc_info=True)
            return RiskAssessment(
                score=0.0, reason=self.config.REASON_LOW, degraded=True
            )
