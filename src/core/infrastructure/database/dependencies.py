"""Database dependency injection for the request boundary.

Provides the shared request engine and async sessions over it.
"""

from __future__ import annotations

import threading
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.engines import create_request_engine
from infrastructure.observability import DefaultConnectionProbe
from infrastructure.settings import get_database_settings

# Module-level probe for observability
_probe = DefaultConnectionProbe()

# Module-level engine instance (created on first use)
_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None

# Thread lock for safe engine initialization
_engine_lock = threading.Lock()


def get_request_engine() -> AsyncEngine:
    """Get the request engine (singleton).

    Creates engine on first call and caches for subsequent calls.
    Uses double-check locking for thread-safe initialization.

    Returns:
        Configured async engine
    """
    global _engine, _sessionmaker
    if _engine is None:
        with _engine_lock:
            # Double-check after acquiring lock
            if _engine is None:
                settings = get_database_settings()
                _engine = create_request_engine(settings)
                _sessionmaker = async_sessionmaker(
                    _engine,
                    expire_on_commit=False,
                    class_=AsyncSession,
                )
                _probe.pool_initialized(
                    min_conn=settings.pool_min_connections,
                    max_conn=settings.pool_max_connections,
                )
    return _engine


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a session for directory lookups (FastAPI dependency).

    Sessions are used against the shared namespace only; tenant-scoped
    work goes through ``TenantScopedExecutor``.

    Yields:
        AsyncSession for database operations
    """
    get_request_engine()
    assert _sessionmaker is not None

    async with _sessionmaker() as session:
        yield session


async def close_database_connections() -> None:
    """Dispose the request engine.

    Should be called on application shutdown. Also resets the sessionmaker
    to allow reinitialization.
    """
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _probe.pool_closed()
        _engine = None
        _sessionmaker = None
