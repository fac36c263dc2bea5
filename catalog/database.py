"""Database configuration for the component catalog.

Supports async SQLAlchemy with SQLite (default, via aiosqlite) and PostgreSQL.
Engines are created per store handle; nothing here is a process-wide
singleton.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import sqlalchemy
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def normalize_database_url(url_or_path: str) -> str:
    """Turn a plain file path or sync URL into an async SQLAlchemy URL.

    Examples:
        "./validation.db" → "sqlite+aiosqlite:///./validation.db"
        "sqlite:///x.db" → "sqlite+aiosqlite:///x.db"
        "postgres://h/db" → "postgresql+asyncpg://h/db"
    """
    if url_or_path in (":memory:", ""):
        return "sqlite+aiosqlite:///:memory:"
    if url_or_path.startswith("postgres://"):
        return url_or_path.replace("postgres://", "postgresql+asyncpg://", 1)
    if url_or_path.startswith("postgresql://"):
        return url_or_path.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url_or_path.startswith("sqlite:///"):
        return url_or_path.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if "://" in url_or_path:
        return url_or_path
    return f"sqlite+aiosqlite:///{url_or_path}"


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def create_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine for *url* (path or URL).

    SQLite connections get ``PRAGMA foreign_keys=ON`` so embedding rows
    cascade with their component.
    """
    url = normalize_database_url(url)
    options = {"echo": DB_ECHO}
    if not _is_sqlite(url):
        options.update(pool_size=5, max_overflow=10)
    options.update(kwargs)
    engine = create_async_engine(url, **options)

    if _is_sqlite(url):
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables on *engine*."""
    # Import models so they register with Base.metadata
    import catalog.models.db  # noqa: F401

    url = str(engine.url)
    if _is_sqlite(url) and ":memory:" not in url:
        # WAL allows readers while the single writer holds the lock
        async with engine.begin() as conn:
            await conn.execute(sqlalchemy.text("PRAGMA journal_mode=WAL"))
            await conn.execute(sqlalchemy.text("PRAGMA busy_timeout=5000"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session that commits on success and rolls back on any error."""
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
