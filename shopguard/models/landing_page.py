"""
랜딩 페이지(LandingPage) 모델

목적: 마케팅 랜딩 페이지 참조 (콘텐츠 관리는 외부 서비스 담당)
주문 코어는 방문/전환 집계 카운터만 갱신합니다.
"""

import uuid

from sqlalchemy import Column, String, Integer, DateTime, Uuid

from .base import Base, utc_now


class LandingPage(Base):
    """랜딩 페이지 모델"""

    __tablename__ = "landing_pages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    views = Column(Integer, nullable=False, default=0)
    conversions = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    def __repr__(self):
        return f"<LandingPage(id={self.id}, slug={self.slug})>"
