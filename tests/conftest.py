"""
Pytest configuration and shared fixtures
"""

import os

# 애플리케이션 설정이 로드되기 전에 테스트 환경을 지정
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "text")

import uuid
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from shopguard.models import Base, Product, User, UserRole
from shopguard.utils.security import JWTManager


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.

    Uses in-memory SQLite database for fast test execution.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def file_session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """
    파일 기반 SQLite 세션 팩토리 (동시성 테스트용)

    세션마다 별도 연결을 사용하므로 여러 트랜잭션이 실제로 경합합니다.
    쓰기 잠금 대기는 busy timeout 으로 처리됩니다.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"timeout": 30},
        pool_size=20,
        max_overflow=0,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for testing FastAPI endpoints.
    Override the database dependency to use the test database.
    """
    from shopguard.main import app
    from shopguard.models.base import get_db

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, email: str, name: str, role: str) -> User:
    user = User(id=uuid.uuid4(), email=email, name=name, role=role, status="active")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    """테스트용 고객 사용자"""
    return await _create_user(
        db_session, "customer@example.com", "Test Customer", UserRole.CUSTOMER.value
    )


@pytest_asyncio.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> User:
    """테스트용 관리자 사용자"""
    return await _create_user(
        db_session, "admin@example.com", "Test Admin", UserRole.ADMIN.value
    )


def _bearer(user: User) -> dict:
    token = JWTManager.create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_headers(test_user: User) -> dict:
    """고객 인증 헤더 (애플리케이션과 같은 SECRET_KEY 로 서명)"""
    return _bearer(test_user)


@pytest.fixture(scope="function")
def admin_headers(admin_user: User) -> dict:
    """관리자 인증 헤더"""
    return _bearer(admin_user)


@pytest.fixture(scope="function")
def make_product(db_session: AsyncSession):
    """상품 생성 헬퍼"""

    async def _make(name: str = "Classic Tee", price: str = "100.00", stock: int = 10) -> Product:
        product = Product(
            id=uuid.uuid4(),
            name=name,
            description=f"{name} for tests",
            base_price=Decimal(price),
            stock=stock,
        )
        db_session.add(product)
        await db_session.commit()
        await db_session.refresh(product)
        return product

    return _make


@pytest.fixture
def shipping_address() -> dict:
    """배송지 샘플"""
    return {
        "full_name": "Rahim Uddin",
        "phone": "01712345678",
        "address": "House 12, Road 5, Dhanmondi",
        "city": "Dhaka",
        "postal_code": "1205",
        "country": "Bangladesh",
    }
