"""Async database engine and session management.

One session per request. Routes commit explicitly once their work is done;
anything left uncommitted when the request ends is rolled back, so a failed
request never persists half of its changes.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from guestlist.core.config import settings


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine for a database URL.

    SQLite (aiosqlite) is file-local, so connection liveness checks only
    apply to server databases.

    Args:
        database_url: SQLAlchemy URL, e.g. sqlite+aiosqlite:///./guestlist.db.

    Returns:
        Configured AsyncEngine.
    """
    options: dict[str, Any] = {"echo": False}
    if not database_url.startswith("sqlite"):
        options["pool_pre_ping"] = True
    return create_async_engine(database_url, **options)


engine = build_engine(settings.database_url)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a request-scoped database session.

    Yields:
        Session without an implicit commit; callers commit their own unit
        of work.
    """
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()
