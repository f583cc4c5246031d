"""Conversation history stores.

HistoryStore is the protocol the generation driver writes to. Memory is
the default in-process implementation; a SQL-backed store lives in
gentask.storage.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Protocol, runtime_checkable

from gentask.models.messages import ChatMessage, CompletionResult

_DEFAULT_SESSION = "default"


@runtime_checkable
class HistoryStore(Protocol):
    """Protocol for pluggable conversation history stores.

    Stores are append-only from gentask's perspective and keyed by
    session id. ``None`` selects a default session.
    """

    def history(self, session_id: str | None = None) -> list[ChatMessage]:
        """Return the ordered messages of a session."""
        ...

    def add(
        self,
        messages: ChatMessage | Iterable[ChatMessage],
        session_id: str | None = None,
    ) -> None:
        """Append one or more messages to a session."""
        ...

    def add_result(self, result: CompletionResult, session_id: str | None = None) -> None:
        """Append a completion result as an assistant message."""
        ...


class Memory:
    """In-memory history store.

    Usage::

        mem = Memory()
        mem.add(ChatMessage(role="user", content="Hi"), session_id="s1")
        mem.history("s1")
    """

    def __init__(self) -> None:
        self._sessions: dict[str, list[ChatMessage]] = defaultdict(list)

    def history(self, session_id: str | None = None) -> list[ChatMessage]:
        return list(self._sessions.get(session_id or _DEFAULT_SESSION, []))

    def add(
        self,
        messages: ChatMessage | Iterable[ChatMessage],
        session_id: str | None = None,
    ) -> None:
        if isinstance(messages, ChatMessage):
            messages = [messages]
        self._sessions[session_id or _DEFAULT_SESSION].extend(messages)

    def add_result(self, result: CompletionResult, session_id: str | None = None) -> None:
        self.add(result.to_message(), session_id)

    def sessions(self) -> list[str]:
        return list(self._sessions)
