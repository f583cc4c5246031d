"""Engine setup for the SQL history store.

create_history_engine() builds the engine (SQLite by default),
init_db() creates the tables and stamps the schema version.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from gentask.storage.schema import Base, MetaRow

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1"

_SQLITE_PRAGMAS = (
    "journal_mode=WAL",
    "busy_timeout=5000",
    "synchronous=NORMAL",
)


def _database_url(db_path: str, url: str | None) -> str:
    if url is not None:
        return url
    if db_path == ":memory:":
        return "sqlite://"
    return f"sqlite:///{db_path}"


def create_history_engine(
    db_path: str = ":memory:",
    *,
    url: str | None = None,
) -> Engine:
    """Create the engine backing a SqlHistoryStore.

    Args:
        db_path: SQLite file path, or ``":memory:"`` for a throwaway
            in-process database. Ignored when *url* is given.
        url: Any SQLAlchemy database URL.

    SQLite connections get WAL journaling and a busy timeout, since
    concurrent forward() calls may share one store.
    """
    engine = create_engine(_database_url(db_path, url), echo=False)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _apply_pragmas(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
            cursor = dbapi_conn.cursor()
            for pragma in _SQLITE_PRAGMAS:
                cursor.execute(f"PRAGMA {pragma}")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory with expire_on_commit=False, so rows stay readable after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create missing tables and record the schema version (idempotent)."""
    Base.metadata.create_all(engine)

    with create_session_factory(engine)() as session:
        row = session.get(MetaRow, "schema_version")
        if row is None:
            session.add(MetaRow(key="schema_version", value=SCHEMA_VERSION))
            session.commit()
        elif row.value != SCHEMA_VERSION:
            logger.warning(
                "History database schema version %s differs from %s",
                row.value, SCHEMA_VERSION,
            )
