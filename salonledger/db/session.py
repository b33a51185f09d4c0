from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from salonledger.core.config import settings


def build_engine(url: str, *, search_path: Optional[str] = None, **kwargs: Any) -> AsyncEngine:
    """
    Async engine for the ledger database.

    The server session runs in UTC: timestamps are stored as timestamptz and
    converted to business time in Python, never by Postgres.
    """
    server_settings = {"timezone": "UTC", "application_name": "salonledger"}
    if search_path:
        server_settings["search_path"] = search_path

    kwargs.setdefault("pool_pre_ping", True)  # detects dead connections before using them
    return create_async_engine(
        url,
        echo=settings.SQL_ECHO,
        connect_args={"server_settings": server_settings},
        **kwargs,
    )


# Use CLEAN URL to avoid asyncpg errors with sslmode/channel_binding query params.
engine: AsyncEngine = build_engine(settings.DATABASE_URL_ASYNC_CLEAN, pool_recycle=300)

# Reports only read; the sale cancellation opens its own transaction on the same session.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One AsyncSession per request; report reads are never committed."""
    async with AsyncSessionLocal() as session:
        yield session
