"""
Prometheus 메트릭 수집 유틸리티

주문 코어와 트래픽 분석의 주요 메트릭을 수집하고 Prometheus에 노출합니다.

주요 메트릭:
- HTTP 요청 수 및 응답 시간 (Counter, Histogram)
- 주문 생성 수 (Counter)
- 위험도 점수 분포 및 평가 실패 수 (Histogram, Counter)
- 재고 차감 결과 / 주문 상태 전이 (Counter)
- 분석 이벤트 수집 결과 / 트래픽 플래그 (Counter)
"""

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
)


# 커스텀 레지스트리 (기본 프로세스 메트릭 제외)
registry = CollectorRegistry()

# ===========================
# 애플리케이션 정보
# ===========================
app_info = Info(
    "shopguard_app",
    "Order lifecycle and risk assessment service info",
    registry=registry,
)
app_info.info({"version": "1.0.0", "service": "shopguard"})

# ===========================
# HTTP 요청 메트릭
# ===========================
http_requests_total = Counter(
    "shopguard_http_requests_total",
    "전체 HTTP 요청 수",
    ["method", "endpoint", "status_code"],
    registry=registry,
)

http_request_duration_seconds = Histogram(
    "shopguard_http_request_duration_seconds",
    "HTTP 요청 처리 시간 (초)",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=registry,
)

# ===========================
# 주문 메트릭
# ===========================
orders_created_total = Counter(
    "shopguard_orders_created_total",
    "생성된 주문 수",
    ["customer_type"],  # member, guest
    registry=registry,
)

order_status_transitions_total = Counter(
    "shopguard_order_status_transitions_total",
    "주문 상태 전이 시도 수",
    ["target_status", "result"],  # applied, rejected, insufficient_stock
    registry=registry,
)

stock_deductions_total = Counter(
    "shopguard_stock_deductions_total",
    "재고 차감 처리 결과",
    ["result"],  # deducted, already_deducted, insufficient_stock, product_missing
    registry=registry,
)

# ===========================
# 위험도 평가 메트릭
# ===========================
risk_score_distribution = Histogram(
    "shopguard_risk_score",
    "주문 위험도 점수 분포",
    buckets=(0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0),
    registry=registry,
)

risk_assessments_total = Counter(
    "shopguard_risk_assessments_total",
    "위험도 평가 수",
    ["reason"],
    registry=registry,
)

risk_fallbacks_total = Counter(
    "shopguard_risk_fallbacks_total",
    "위험도 평가 실패로 기본값(Low risk)을 사용한 횟수",
    ["stage"],  # history, scoring
    registry=registry,
)

# ===========================
# 트래픽 분석 메트릭
# ===========================
analytics_events_total = Counter(
    "shopguard_analytics_events_total",
    "수집된 분석 이벤트 수",
    ["module", "result"],  # public/landing, recorded/failed
    registry=registry,
)

traffic_flags_total = Counter(
    "shopguard_traffic_flags_total",
    "기록된 트래픽 플래그 수",
    ["severity"],
    registry=registry,
)


# ===========================
# 메트릭 노출 함수
# ===========================
def get_metrics() -> bytes:
    """Prometheus가 수집할 수 있는 형식으로 메트릭 반환"""
    return generate_latest(registry)


def get_content_type() -> str:
    """Prometheus 메트릭 Content-Type 반환"""
    return CONTENT_TYPE_LATEST


# ===========================
# 편의 함수
# ===========================
def record_http_request(
    method: str, endpoint: str, status_code: int, duration_seconds: float
):
    """HTTP 요청 수 및 처리 시간 기록"""
    http_requests_total.labels(
        method=method, endpoint=endpoint, status_code=status_code
    ).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
        duration_seconds
    )


def record_order_created(is_guest: bool):
    """주문 생성 기록"""
    orders_created_total.labels(customer_type="guest" if is_guest else "member").inc()


def record_risk_assessment(score: float, reason: str):
    """위험도 평가 결과 기록"""
    risk_score_distribution.observe(score)
    risk_assessments_total.labels(reason=reason).inc()


def record_risk_fallback(stage: str):
    """위험도 평가 실패(기본값 사용) 기록"""
    risk_fallbacks_total.labels(stage=stage).inc()


def record_status_transition(target_status: str, result: str):
    """주문 상태 전이 기록"""
    order_status_transitions_total.labels(
        target_status=target_status, result=result
    ).inc()


def record_stock_deduction(result: str):
    """재고 차감 결과 기록"""
    stock_deductions_total.labels(result=result).inc()


def record_analytics_event(module: str, success: bool):
    """분석 이벤트 수집 결과 기록"""
    analytics_events_total.labels(
        module=module, result="recorded" if success else "failed"
    ).inc()


def record_traffic_flag(severity: str):
    """트래픽 플래그 기록"""
    traffic_flags_total.labels(severity=severity).inc()
