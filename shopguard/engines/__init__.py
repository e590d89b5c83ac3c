"""
위험도 평가 엔진 패키지

- SignalNormalizer: 주문 정보를 [0, 1] 위험 신호로 변환
- RiskScorer: 신호로부터 위험 점수와 판정 사유 계산
"""

from shopguard.engines.signal_normalizer import (
    RiskContext,
    RiskSignals,
    SignalNormalizer,
)
from shopguard.engines.risk_scorer import (
    RiskAssessment,
    RiskScoreConfig,
    RiskScorer,
)

__all__ = [
    "RiskContext",
    "RiskSignals",
    "SignalNormalizer",
    "RiskAssessment",
    "RiskScoreConfig",
    "RiskScorer",
]
