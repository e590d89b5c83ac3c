"""
SQLAlchemy Base 모델 및 데이터베이스 세션 관리

이 모듈은 모든 데이터베이스 모델의 기본 클래스와 비동기 데이터베이스 세션을 제공합니다.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from shopguard.config import get_settings


# 네이밍 컨벤션 정의 (Alembic 마이그레이션 시 일관된 제약 조건 이름 생성)
convention = {
    "ix": "ix_%(column_0_label)s",  # 인덱스
    "uq": "uq_%(table_name)s_%(column_0_name)s",  # UNIQUE 제약
    "ck": "ck_%(table_name)s_%(constraint_name)s",  # CHECK 제약
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",  # 외래 키
    "pk": "pk_%(table_name)s",  # 기본 키
}

metadata = MetaData(naming_convention=convention)


class Base(DeclarativeBase):
    """
    모든 데이터베이스 모델의 기본 클래스

    이 클래스를 상속받는 모든 모델은 자동으로 SQLAlchemy ORM 기능을 사용할 수 있습니다.
    """

    metadata = metadata


def utc_now() -> datetime:
    """현재 UTC 시각 (timezone 정보 없는 naive datetime, DB 저장 형식과 동일)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _engine_options(database_url: str) -> dict:
    """데이터베이스 종류별 엔진 옵션 (SQLite는 연결 풀 설정을 받지 않음)"""
    settings = get_settings()
    options = {"echo": settings.SQL_ECHO}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,  # 연결 풀 크기
            max_overflow=settings.DB_MAX_OVERFLOW,  # 추가 연결 허용 개수
            pool_pre_ping=True,  # 연결 전 핑 테스트 (연결 끊김 방지)
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    return options


# 비동기 엔진 생성
DATABASE_URL = get_settings().DATABASE_URL
engine = create_async_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# 비동기 세션 팩토리
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # 커밋 후 객체 만료 방지
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 의존성 주입용 데이터베이스 세션 생성기

    사용 예시:
    ```python
    @router.get("/orders")
    async def list_orders(db: AsyncSession = Depends(get_db)):
        result = await db.execute(select(Order))
        return result.scalars().all()
    ```

    Yields:
        AsyncSession: 비동기 데이터베이스 세션
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def close_db() -> None:
    """
    데이터베이스 연결 종료

    애플리케이션 종료 시 호출하여 모든 연결을 정리합니다.
    """
    await engine.dispose()
