"""
shopguard - 주문 라이프사이클 및 거래 위험도 평가 백엔드

주문 생성/상태 전이, 재고 원장, 위험 점수 산정, 세션 기반 트래픽 이상 탐지를 제공합니다.
"""

__version__ = "1.0.0"
