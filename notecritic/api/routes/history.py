"""History Routes — save, list and reload whole conversations.

Invariants:
    - Saving or loading while a round runs → 409 (orchestrator concurrency guard)
    - Loading an unknown id → 404, conversation left untouched
"""

import logging

from fastapi import APIRouter, Depends

from notecritic.api.dependencies import get_history_store, get_orchestrator
from notecritic.core.conversation_snapshot import turns_to_snapshot
from notecritic.core.domain_types import ALREADY_RUNNING_MESSAGE
from notecritic.core.errors import HistoryNotFoundError, InferenceAlreadyRunningError
from notecritic.services.history_store import HistoryStore
from notecritic.services.turn_orchestrator import TurnOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/history", tags=["history"])


@router.get("")
async def list_history(store: HistoryStore = Depends(get_history_store)):
    return await store.list_history()


@router.post("/{history_id}")
async def save_history(
    history_id: str,
    store: HistoryStore = Depends(get_history_store),
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
):
    if orchestrator.is_inference_running():
        raise InferenceAlreadyRunningError(ALREADY_RUNNING_MESSAGE)
    turns = orchestrator.get_conversation()
    title = await store.save_history(history_id, turns)
    return {"id": history_id, "title": title, "turnCount": len(turns)}


@router.get("/{history_id}")
async def load_history(
    history_id: str,
    store: HistoryStore = Depends(get_history_store),
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
):
    turns = await store.load_history(history_id)
    if turns is None:
        raise HistoryNotFoundError(history_id)
    orchestrator.load_conversation(turns)
    logger.info("History loaded", extra={"history_id": history_id})
    return {"id": history_id, "turns": turns_to_snapshot(turns)}
