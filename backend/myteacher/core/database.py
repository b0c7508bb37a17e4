"""
Database engine, sessions and shared column types.

Request handlers receive a session from `get_db`; services only flush and
the endpoint commits. Work that runs after the response (PDF rendering,
document ingestion) opens its own session with `session_scope()`.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from sqlalchemy import String, TypeDecorator
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from myteacher.core.config import settings

Base = declarative_base()

_engine: Optional[AsyncEngine] = None
_sessions: Optional[async_sessionmaker[AsyncSession]] = None


def generate_uuid() -> str:
    return str(uuid.uuid4())


class GUID(TypeDecorator):
    """UUID primary and foreign keys, stored as VARCHAR(36) on every backend"""
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else str(value)


def async_database_url(url: str) -> str:
    """Swap in the async driver for plain postgresql:// and sqlite:/// URLs"""
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite:///" + url[len("sqlite:///"):]
    return url


def get_engine() -> AsyncEngine:
    """
    Engine, created on first use.

    SQLite and development Postgres run without a pool; production Postgres
    uses a pre-pinged pool sized by the DB_POOL_* settings.
    """
    global _engine
    if _engine is not None:
        return _engine

    url = async_database_url(settings.DATABASE_URL)
    if url.startswith("sqlite"):
        _engine = create_async_engine(
            url, echo=settings.DB_ECHO, poolclass=NullPool, connect_args={"check_same_thread": False}
        )
    elif settings.is_dev_mode():
        _engine = create_async_engine(url, echo=settings.DB_ECHO, poolclass=NullPool)
    else:
        _engine = create_async_engine(
            url,
            echo=settings.DB_ECHO,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,
        )
    return _engine


def session_factory() -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: responses are built from objects after commit
    global _sessions
    if _sessions is None:
        _sessions = async_sessionmaker(get_engine(), expire_on_commit=False, autoflush=False)
    return _sessions


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency; commits leftovers the endpoint did not commit itself"""
    async with session_factory()() as session:
        try:
            yield session
            if session.new or session.dirty or session.deleted:
                await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session for background work: commit on success, roll back on error"""
    async with session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _sessions
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessions = None
