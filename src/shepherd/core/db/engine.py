"""Database engine management."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.shepherd.core.config import get_settings

_engine: AsyncEngine | None = None


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def _engine_kwargs(url: str) -> dict[str, Any]:
    """Pool and driver arguments for the configured backend."""
    settings = get_settings()
    if is_sqlite_url(url):
        # SQLite serializes writers; let a blocked writer wait out the
        # store timeout instead of failing immediately with "database is locked".
        return {"connect_args": {"timeout": settings.store_timeout_seconds}}
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
    }


def create_engine_for_url(url: str) -> AsyncEngine:
    """Build an async engine for an arbitrary URL (used by tests and migrations)."""
    return create_async_engine(url, **_engine_kwargs(url))


def get_engine() -> AsyncEngine:
    """Get or create the database engine singleton."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine_for_url(settings.database_url)
    return _engine


async def dispose_engine() -> None:
    """Dispose the database engine. Call during shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
