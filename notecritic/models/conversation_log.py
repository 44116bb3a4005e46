"""Conversation Log ORM — one saved conversation (history entry).

Invariants:
    - id is caller-chosen (string), stable across re-saves of the same conversation
    - turns stores the conversation_snapshot list as-is
    - updated_at refreshed on every save; list order is most recent first

Design Decisions:
    - JSON column over normalized turn/step tables: history is always loaded whole
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from notecritic.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationLog(Base):
    __tablename__ = "conversation_logs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    turns: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    turn_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow, index=True,
    )
