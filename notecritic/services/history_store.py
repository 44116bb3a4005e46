"""History Store — SQLAlchemy implementation of the HistoryRepository protocol.

Invariants:
    - save_history() on an empty conversation writes nothing and returns the history id
    - Re-saving the same id overwrites turns and regenerates the title
    - load_history() returns None for an unknown id (never raises for absence)
    - list_history() is ordered most recently updated first and never loads turn bodies

Design Decisions:
    - Caller owns the session (FastAPI Depends(get_db)); the store commits its own writes
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from notecritic.core.conversation import Turn
from notecritic.core.conversation_snapshot import turns_from_snapshot, turns_to_snapshot
from notecritic.models.conversation_log import ConversationLog
from notecritic.services.title_maker import TitleMaker, fallback_title

logger = logging.getLogger(__name__)


class HistoryStore:
    """Persists whole conversations as JSON snapshots."""

    def __init__(self, db: AsyncSession, title_maker: TitleMaker | None = None):
        self.db = db
        self.title_maker = title_maker

    async def save_history(self, history_id: str, turns: list[Turn]) -> str:
        if not turns:
            return history_id
        title = await self._make_title(turns)
        log = await self.db.get(ConversationLog, history_id)
        if log is None:
            log = ConversationLog(id=history_id)
            self.db.add(log)
        log.title = title
        log.turns = turns_to_snapshot(turns)
        log.turn_count = len(turns)
        await self.db.commit()
        logger.info("History saved", extra={"history_id": history_id})
        return title

    async def load_history(self, history_id: str) -> list[Turn] | None:
        log = await self.db.get(ConversationLog, history_id)
        if log is None:
            return None
        return turns_from_snapshot(log.turns or [])

    async def list_history(self) -> list[dict]:
        result = await self.db.execute(
            select(
                ConversationLog.id, ConversationLog.title,
                ConversationLog.turn_count, ConversationLog.updated_at,
            ).order_by(ConversationLog.updated_at.desc()),
        )
        return [
            {
                "id": row.id,
                "title": row.title,
                "turnCount": row.turn_count,
                "updatedAt": row.updated_at.isoformat(),
            }
            for row in result
        ]

    async def _make_title(self, turns: list[Turn]) -> str:
        if self.title_maker is None:
            return fallback_title(turns)
        return await self.title_maker.make_title(turns)
