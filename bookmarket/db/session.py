"""
Async SQLAlchemy engine & session factory.

PostgreSQL (asyncpg) in production; SQLite (aiosqlite) is accepted for
local runs and the test suite.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bookmarket.core.config import settings


def _engine_args(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        return {"echo": False, "connect_args": {"check_same_thread": False}}
    return {
        "echo": False,
        "pool_pre_ping": True,
        "pool_size": 20,
        "max_overflow": 10,
        "pool_recycle": 300,
    }


engine = create_async_engine(settings.DATABASE_URL, **_engine_args(settings.DATABASE_URL))

# Objects stay usable after the per-write commits done by the repositories
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
