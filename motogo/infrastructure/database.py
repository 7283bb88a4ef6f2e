"""
Async SQLAlchemy engine and session factory.

PostgreSQL via ``asyncpg`` in production.  A ``sqlite+aiosqlite`` URL is
accepted for local development and tests; SQLite gets no connection
pool sizing and a busy timeout so concurrent writers queue instead of
failing on the database lock.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from motogo.config import settings


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


def build_engine(url: str, **kwargs) -> AsyncEngine:
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"timeout": 15})
    else:
        kwargs.setdefault("pool_size", 20)
        kwargs.setdefault("max_overflow", 10)
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, echo=False, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


async def create_all(bind: AsyncEngine) -> None:
    """Create every table directly (SQLite dev databases; Postgres uses Alembic)."""
    from motogo.infrastructure import models  # noqa: F401  (registers tables)

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


engine = build_engine(settings.database_url)
async_session_factory = build_session_factory(engine)
