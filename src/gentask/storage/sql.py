"""SQL-backed history store.

Uses SQLAlchemy 2.0-style queries (select() + session.execute()).
Each call opens a short-lived session from the factory, so one store
can serve many sessions (conversation sessions, not ORM sessions).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import Engine, func, select

from gentask.models.messages import ChatMessage, CompletionResult
from gentask.storage.engine import create_history_engine, create_session_factory, init_db
from gentask.storage.schema import MessageRow

_DEFAULT_SESSION = "default"


class SqlHistoryStore:
    """HistoryStore persisted through SQLAlchemy.

    Usage::

        store = SqlHistoryStore.open("history.db")
        await task.forward(values, session_id="s1", memory=store)
        store.history("s1")
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session_factory = create_session_factory(engine)

    @classmethod
    def open(cls, db_path: str = ":memory:", *, url: str | None = None) -> SqlHistoryStore:
        """Create an engine, initialize tables, and return a store."""
        engine = create_history_engine(db_path, url=url)
        init_db(engine)
        return cls(engine)

    def history(self, session_id: str | None = None) -> list[ChatMessage]:
        stmt = (
            select(MessageRow)
            .where(MessageRow.session_id == (session_id or _DEFAULT_SESSION))
            .order_by(MessageRow.id)
        )
        with self._session_factory() as session:
            rows = session.execute(stmt).scalars().all()
        return [_to_message(row) for row in rows]

    def add(
        self,
        messages: ChatMessage | Iterable[ChatMessage],
        session_id: str | None = None,
    ) -> None:
        if isinstance(messages, ChatMessage):
            messages = [messages]
        now = datetime.now(timezone.utc)
        with self._session_factory() as session:
            for msg in messages:
                session.add(MessageRow(
                    session_id=session_id or _DEFAULT_SESSION,
                    role=msg.role,
                    content=msg.content,
                    name=msg.name,
                    function_id=msg.function_id,
                    function_calls_json=msg.function_calls,
                    created_at=now,
                ))
            session.commit()

    def add_result(self, result: CompletionResult, session_id: str | None = None) -> None:
        self.add(result.to_message(), session_id)

    def count(self, session_id: str | None = None) -> int:
        stmt = select(func.count(MessageRow.id)).where(
            MessageRow.session_id == (session_id or _DEFAULT_SESSION)
        )
        with self._session_factory() as session:
            return session.execute(stmt).scalar_one()

    def close(self) -> None:
        """Dispose of the underlying engine."""
        self._engine.dispose()


def _to_message(row: MessageRow) -> ChatMessage:
    return ChatMessage(
        role=row.role,  # type: ignore[arg-type]
        content=row.content,
        name=row.name,
        function_id=row.function_id,
        function_calls=row.function_calls_json,
    )
