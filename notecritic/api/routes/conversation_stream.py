"""Conversation Stream — SSE endpoints that start, rerun and cancel rounds.

Invariants:
    - Each round streams ConversationEvents as `data: {json}\\n\\n` lines, ending with the
      terminal event (turn_complete | error)
    - Concurrency guard surfaces as 409 before the stream opens (InferenceAlreadyRunningError)
    - Client disconnect cancels the round's token: the Turn still finalizes as cancelled

Design Decisions:
    - asyncio.Queue bridges the orchestrator's synchronous callback and the SSE generator
    - Rounds run in their own task: closing the response never kills the Turn mid-mutation
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse

from notecritic.api.dependencies import get_orchestrator, get_services
from notecritic.core.conversation_events import ConversationEvent
from notecritic.core.conversation_snapshot import turns_to_snapshot
from notecritic.schemas.conversation import RerunRequest, RoundRequest
from notecritic.services.turn_orchestrator import RoundHandle, TurnOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/conversation", tags=["conversation"])

# Prevent proxy/browser buffering of streamed events.
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def _sse_line(event: dict) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


async def _relay(
    handle: RoundHandle, queue: asyncio.Queue[ConversationEvent],
) -> AsyncIterator[str]:
    try:
        while True:
            event = await queue.get()
            yield _sse_line(event.to_wire())
            if event.is_terminal:
                return
    finally:
        if not handle.turn.is_complete:
            logger.info(
                "Client disconnected mid-round", extra={"turn_id": handle.turn.id},
            )
            handle.cancel()


def _stream_round(start) -> StreamingResponse:
    queue: asyncio.Queue[ConversationEvent] = asyncio.Queue()
    handle = start(queue.put_nowait)
    return StreamingResponse(
        _relay(handle, queue), media_type="text/event-stream", headers=_SSE_HEADERS,
    )


@router.post("/rounds")
async def start_round(
    body: RoundRequest,
    request: Request,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
):
    """Start a new round and stream its events."""
    settings = get_services(request).settings
    user_input = body.to_user_input(settings.feedback_prompt)
    return _stream_round(
        lambda callback: orchestrator.start_round(user_input, callback=callback),
    )


@router.post("/turns/{turn_id}/rerun")
async def rerun_turn(
    turn_id: str,
    body: RerunRequest | None = None,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
):
    """Discard turn_id and everything after it, then re-stream from its input."""
    body = body or RerunRequest()
    return _stream_round(
        lambda callback: orchestrator.start_rerun(
            turn_id, callback, prompt=body.prompt, files=body.override_files(),
        ),
    )


@router.post("/turns/{turn_id}/cancel")
async def cancel_turn(
    turn_id: str, orchestrator: TurnOrchestrator = Depends(get_orchestrator),
):
    return {"cancelled": orchestrator.cancel_turn(turn_id)}


@router.post("/cancel")
async def cancel_inference(orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    return {"cancelled": orchestrator.cancel_inference()}


@router.get("")
async def get_conversation(orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    return {
        "turns": turns_to_snapshot(orchestrator.get_conversation()),
        "isRunning": orchestrator.is_inference_running(),
        "usage": orchestrator.token_tracker.get_session_tokens().to_dict(),
    }


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_conversation(orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    orchestrator.clear_conversation()
    orchestrator.token_tracker.reset()
