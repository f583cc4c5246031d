"""SQLAlchemy ORM schema for gentask history storage.

Defines the tables: messages, _gentask_meta.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all gentask ORM models."""

    pass


class MessageRow(Base):
    """One conversation message. Append-only, ordered by id within a session."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    function_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    function_calls_json: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_messages_session_id", "session_id", "id"),
    )


class MetaRow(Base):
    """Key/value metadata (schema version)."""

    __tablename__ = "_gentask_meta"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
