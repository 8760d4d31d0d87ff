"""Database utilities - engine, session, transactions."""

from src.shepherd.core.db.engine import (
    create_engine_for_url,
    dispose_engine,
    get_engine,
    is_sqlite_url,
)
from src.shepherd.core.db.session import get_session
from src.shepherd.core.db.transaction import atomic

__all__ = [
    # Engine
    "create_engine_for_url",
    "dispose_engine",
    "get_engine",
    "is_sqlite_url",
    # Session
    "get_session",
    # Transactions
    "atomic",
]
