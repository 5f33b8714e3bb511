"""
Database Layer

Async SQLAlchemy 2.0 engine and session factory over asyncpg.

Nothing connects at import: the engine is created on first use, so the
unit suite and ``--memory`` script runs never need PostgreSQL. Storage
code receives the session factory by injection (see ``SqlStorage``).
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from repovec.core.config import settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Process-wide engine, created on first call."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = create_async_engine(settings.DATABASE_URL, pool_size=5, pool_pre_ping=True)
        logger.info(
            "Connecting to postgres at %s:%s/%s as %s",
            settings.POSTGRES_HOST,
            settings.POSTGRES_PORT,
            settings.POSTGRES_DB,
            settings.POSTGRES_USER,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory  # noqa: PLW0603
    if _session_factory is None:
        # Read models are built after commit; no lazy reloads
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def verify_database() -> None:
    """Run ``SELECT 1``; raises if PostgreSQL is unreachable."""
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database connection verified")


async def dispose_engine() -> None:
    """Close pooled connections; safe to call when no engine was created."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database engine disposed")
