"""
위험 점수 산정 엔진 유닛 테스트
"""

import itertools

import pytest

from shopguard.engines.risk_scorer import RiskScoreConfig, RiskScorer
from shopguard.engines.signal_normalizer import RiskContext, RiskSignals


@pytest.fixture
def scorer():
    return RiskScorer()


class TestRiskScore:
    """점수 계산"""

    def test_guest_order_is_low_risk(self, scorer):
        """비회원 260원 주문: 신규 접속지 + 기본 주문 빈도"""
        assessment = scorer.assess(RiskContext.for_guest(260.0, "origin-hash"))

        assert assessment.score == 0.29
        assert assessment.reason == RiskScoreConfig.REASON_LOW
        assert assessment.degraded is False
        assert assessment.signals.is_new_origin == 1
        assert assessment.signals.order_frequency == pytest.approx(0.2)

    def test_high_amount_new_origin_is_high_risk(self, scorer):
        """고액 + 신규 접속지 → High"""
        signals = RiskSignals(amount_ratio=0.9, is_new_origin=1, order_frequency=0.1)
        score = scorer.score(signals)

        assert score == 0.83
        assert scorer.determine_reason(score, 1, 0.9) == RiskScoreConfig.REASON_HIGH

    def test_frequent_orders_from_known_origin_is_medium_risk(self, scorer):
        """잦은 주문 (기존 접속지) → Medium"""
        signals = RiskSignals(amount_ratio=0.1, is_new_origin=0, order_frequency=0.9)
        score = scorer.score(signals)

        assert score == 0.55
        assert scorer.determine_reason(score, 0, 0.1) == RiskScoreConfig.REASON_MEDIUM

    def test_new_origin_with_high_amount_below_medium(self, scorer):
        """점수는 낮지만 신규 접속지에서 고액 주문"""
        signals = RiskSignals(amount_ratio=0.51, is_new_origin=1, order_frequency=0.0)
        score = scorer.score(signals)

        assert score == 0.48
        assert (
            scorer.determine_reason(score, 1, 0.51)
            == RiskScoreConfig.REASON_NEW_ORIGIN_HIGH_AMOUNT
        )

    def test_score_is_clipped(self, scorer):
        """모든 신호가 최대일 때 1.0, 모두 0일 때 0.0"""
        assert scorer.score(RiskSignals(1.0, 1, 1.0)) == 1.0
        assert scorer.score(RiskSignals(0.0, 0, 0.0)) == 0.0

    def test_score_is_monotonic_in_each_signal(self, scorer):
        """어느 신호가 커져도 점수는 줄어들지 않음"""
        steps = [0.0, 0.25, 0.5, 0.75, 1.0]
        for a, f, n in itertools.product(steps, steps, (0, 1)):
            base = scorer.score(RiskSignals(a, n, f))
            if a < 1.0:
                assert scorer.score(RiskSignals(a + 0.25, n, f)) >= base
            if f < 1.0:
                assert scorer.score(RiskSignals(a, n, f + 0.25)) >= base
            if n == 0:
                assert scorer.score(RiskSignals(a, 1, f)) >= base

    def test_combined_signals_exceed_sum_of_parts(self, scorer):
        """상호작용: 신호가 함께 높으면 개별 기여의 합보다 큼"""
        both = scorer.score(RiskSignals(0.6, 1, 0.0))
        amount_only = scorer.score(RiskSignals(0.6, 0, 0.0))
        origin_only = scorer.score(RiskSignals(0.0, 1, 0.0))

        assert both > amount_only + origin_only


class TestDetermineReason:
    """판정 사유 (임계값 초과 기준)"""

    @pytest.mark.parametrize(
        "score,is_new_origin,amount_ratio,expected",
        [
            (0.81, 0, 0.0, RiskScoreConfig.REASON_HIGH),
            (0.80, 1, 0.9, RiskScoreConfig.REASON_MEDIUM),
            (0.51, 0, 0.0, RiskScoreConfig.REASON_MEDIUM),
            (0.50, 1, 0.9, RiskScoreConfig.REASON_NEW_ORIGIN_HIGH_AMOUNT),
            (0.50, 0, 0.9, RiskScoreConfig.REASON_LOW),
            (0.30, 1, 0.5, RiskScoreConfig.REASON_LOW),
        ],
    )
    def test_reason_thresholds(self, scorer, score, is_new_origin, amount_ratio, expected):
        assert scorer.determine_reason(score, is_new_origin, amount_ratio) == expected


class TestAssessFallback:
    """평가 실패 시 기본값"""

    def test_assess_never_raises(self):
        """정규화 중 예외가 나도 (0.0, Low risk) 반환"""

        class BrokenNormalizer:
            def normalize(self, context):
                raise RuntimeError("history unavailable")

        scorer = RiskScorer(normalizer=BrokenNormalizer())
        assessment = scorer.assess(RiskContext.for_guest(1000.0, "origin-hash"))

        assert assessment.score == 0.0
        assert assessment.reason == RiskScoreConfig.REASON_LOW
        assert assessment.degraded is True
        assert assessment.signals is None


class TestReasonUsesUnroundedScore:
    """판정 사유는 반올림 전 점수로 결정"""

    class FixedNormalizer:
        def __init__(self, signals):
            self.signals = signals

        def normalize(self, context):
            return self.signals

    def test_just_above_high_threshold(self):
        """0.802 는 저장 시 0.8 이지만 High 로 판정"""
        signals = RiskSignals(amount_ratio=0.42, is_new_origin=0, order_frequency=1.0)
        scorer = RiskScorer(normalizer=self.FixedNormalizer(signals))

        assert scorer.raw_score(signals) == pytest.approx(0.802)

        assessment = scorer.assess(RiskContext.for_guest(8400.0, "origin-hash"))

        assert assessment.score == 0.8
        assert assessment.reason == RiskScoreConfig.REASON_HIGH

    def test_stored_score_is_rounded(self):
        signals = RiskSignals(amount_ratio=0.42, is_new_origin=0, order_frequency=1.0)
        scorer = RiskScorer()

        assert scorer.score(signals) == 0.8
