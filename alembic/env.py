"""
Alembic 마이그레이션 환경 설정

이 파일은 Alembic이 데이터베이스 마이그레이션을 실행할 때 사용하는 환경을 구성합니다.
비동기 SQLAlchemy를 지원하며, shopguard.models 의 모든 모델을 자동으로 감지합니다.
"""

import asyncio
import os
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

# 모든 모델을 등록하기 위해 패키지 전체를 import
from shopguard.models import Base

# Alembic Config 객체 - alembic.ini 파일의 값에 접근
config = context.config

# Python 로깅 설정 (alembic.ini의 [loggers] 섹션 사용)
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# SQLAlchemy 모델의 MetaData 객체 (자동 마이그레이션 감지용)
target_metadata = Base.metadata


def get_url():
    """
    데이터베이스 URL 가져오기

    우선순위:
    1. DATABASE_URL 환경 변수 (.env 포함)
    2. alembic.ini 파일의 sqlalchemy.url
    """
    load_dotenv()
    return os.getenv("DATABASE_URL", config.get_main_option("sqlalchemy.url"))


def run_migrations_offline() -> None:
    """
    'offline' 모드로 마이그레이션 실행

    데이터베이스 연결 없이 SQL 스크립트만 생성합니다.
    """
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,  # 컬럼 타입 변경 감지
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """실제 마이그레이션 실행 로직"""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """비동기 SQLAlchemy 엔진을 사용한 마이그레이션 실행"""
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = get_url()

    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,  # 마이그레이션 시에는 연결 풀 사용 안 함
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """'online' 모드로 마이그레이션 실행 (비동기 엔진 사용)"""
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
