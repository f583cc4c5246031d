"""SQL storage for conversation history."""

from gentask.storage.engine import create_history_engine, create_session_factory, init_db
from gentask.storage.sql import SqlHistoryStore

__all__ = [
    "SqlHistoryStore",
    "create_history_engine",
    "create_session_factory",
    "init_db",
]
