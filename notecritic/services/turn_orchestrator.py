"""Turn Orchestrator — bounded multi-step loop with cooperative, per-turn cancellation.

Invariants:
    - At most one Turn is non-terminal; start/rerun/load/clear rejected otherwise (no mutation)
    - 1 <= len(turn.steps) <= max_steps for every Turn that began streaming
    - A Step is appended only after a Step with >=1 pending client-side tool call, below the cap
    - At the cap, pending tool calls are left un-executed and the Turn completes
    - turn.is_complete is True on every exit path (success, error, cancellation, task cancel)
    - Exactly one of turn_complete | error terminates each round's callback sequence
    - Cancellation: turn.error = "Inference was cancelled"; trailing empty Step popped,
      Turn removed from history if no Steps remain
    - Tool-parse errors drop the offending call only: no turn.error, no error callback
    - Tool executor failures become the call's result (error payload), never abort the Turn

Design Decisions:
    - Cancellation tokens in an instance-owned dict keyed by turn id (no module globals)
    - start_round() is synchronous up to task creation: the Turn is in history before it returns
    - Tools executed sequentially, in the order the model emitted them
    - Callback exceptions are logged and ignored: a broken UI listener must not corrupt the Turn
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from contextlib import aclosing
from functools import partial

from notecritic.core.cancellation import CancellationToken
from notecritic.core.conversation import (
    LLMFile, Step, ToolCall, Turn, UserInput, new_turn,
)
from notecritic.core.conversation_events import ConversationEvent
from notecritic.core.domain_types import (
    ALREADY_RUNNING_MESSAGE, CANCELLED_MESSAGE, MAX_STEPS,
    ConversationEventType as Ev, StreamEventType,
)
from notecritic.core.errors import (
    ErrorContext, InferenceAlreadyRunningError, InferenceCancelledError,
    NotesCriticError, TurnNotFoundError,
)
from notecritic.core.repository_protocols import ToolDefinition, ToolExecutor
from notecritic.core.user_input import chat_message, with_overrides
from notecritic.providers.base import TokenUsage
from notecritic.schemas.stream_events import StreamEvent, is_scoped_error
from notecritic.services.stream_engine import StreamEngine
from notecritic.services.token_tracker import TokenTracker

logger = logging.getLogger(__name__)

ConversationCallback = Callable[[ConversationEvent], None]


class RoundHandle:
    """A running round: the Turn, its cancellation token and the driving task."""

    def __init__(self, turn: Turn, token: CancellationToken, task: asyncio.Task):
        self.turn = turn
        self.token = token
        self.task = task

    def __await__(self):
        return self.task.__await__()

    def cancel(self) -> None:
        self.token.cancel()

    def cancel_after(self, seconds: float) -> asyncio.TimerHandle:
        """Compose a timeout: cancel the token once the deadline passes."""
        loop = asyncio.get_running_loop()
        return loop.call_later(seconds, self.token.cancel)


class TurnOrchestrator:
    """Owns the Conversation and drives rounds against the StreamEngine."""

    def __init__(
        self,
        engine: StreamEngine,
        tool_executor: ToolExecutor,
        *,
        tools: Iterable[ToolDefinition] = (),
        system_prompt: str = "",
        thinking: bool = False,
        max_steps: int = MAX_STEPS,
        token_tracker: TokenTracker | None = None,
    ):
        self.engine = engine
        self.tool_executor = tool_executor
        self.tools = list(tools)
        self.system_prompt = system_prompt
        self.thinking = thinking
        self.max_steps = max_steps
        self.token_tracker = token_tracker or TokenTracker()
        self._conversation: list[Turn] = []
        self._tokens: dict[str, CancellationToken] = {}

    # ─── Queries ─────────────────────────────────────────────────

    def get_conversation(self) -> list[Turn]:
        """Shallow copy: callers may iterate freely while a round mutates Turns."""
        return list(self._conversation)

    def is_inference_running(self) -> bool:
        return any(not t.is_complete for t in self._conversation)

    def find_turn(self, turn_id: str) -> Turn | None:
        return next((t for t in self._conversation if t.id == turn_id), None)

    # ─── Commands ────────────────────────────────────────────────

    def start_round(
        self,
        prompt: str | UserInput,
        files: Iterable[LLMFile] = (),
        callback: ConversationCallback | None = None,
    ) -> RoundHandle:
        """Append a new Turn and begin streaming it. Must be called inside a running loop."""
        self._ensure_idle()
        user_input = chat_message(prompt, files) if isinstance(prompt, str) else prompt
        return self._launch(user_input, callback)

    async def new_conversation_round(
        self,
        prompt: str | UserInput,
        files: Iterable[LLMFile] = (),
        callback: ConversationCallback | None = None,
    ) -> Turn:
        return await self.start_round(prompt, files, callback)

    def start_rerun(
        self,
        turn_id: str,
        callback: ConversationCallback | None = None,
        prompt: str | None = None,
        files: Iterable[LLMFile] | None = None,
    ) -> RoundHandle:
        """Truncate history at turn_id (inclusive) and start a fresh round from its input."""
        self._ensure_idle()
        index = next(
            (i for i, t in enumerate(self._conversation) if t.id == turn_id), None,
        )
        if index is None:
            raise TurnNotFoundError(turn_id, context=ErrorContext(turn_id=turn_id))
        original = self._conversation[index]
        discarded = len(self._conversation) - index
        del self._conversation[index:]
        logger.info(
            "Rerunning turn, discarded %d turn(s)", discarded,
            extra={"turn_id": turn_id},
        )
        return self._launch(with_overrides(original.user_input, prompt, files), callback)

    async def rerun_conversation_turn(
        self,
        turn_id: str,
        callback: ConversationCallback | None = None,
        prompt: str | None = None,
        files: Iterable[LLMFile] | None = None,
    ) -> Turn:
        return await self.start_rerun(turn_id, callback, prompt, files)

    def cancel_turn(self, turn_id: str) -> bool:
        token = self._tokens.get(turn_id)
        if token is None:
            return False
        logger.info("Cancelling turn", extra={"turn_id": turn_id})
        token.cancel()
        return True

    def cancel_inference(self) -> int:
        """Cancel every running turn; returns how many were signalled."""
        return sum(self.cancel_turn(turn_id) for turn_id in list(self._tokens))

    def load_conversation(self, turns: Iterable[Turn]) -> None:
        self._ensure_idle()
        self._conversation = list(turns)

    def clear_conversation(self) -> None:
        self._ensure_idle()
        self._conversation = []

    # ─── Round lifecycle ─────────────────────────────────────────

    def _ensure_idle(self) -> None:
        if self.is_inference_running():
            raise InferenceAlreadyRunningError(ALREADY_RUNNING_MESSAGE)

    def _launch(
        self, user_input: UserInput, callback: ConversationCallback | None,
    ) -> RoundHandle:
        turn = new_turn(user_input)
        token = CancellationToken(turn.id)
        self._conversation.append(turn)
        self._tokens[turn.id] = token
        task = asyncio.create_task(self._run_round(turn, token, callback))
        task.add_done_callback(partial(self._on_round_done, turn, callback))
        return RoundHandle(turn, token, task)

    def _on_round_done(
        self, turn: Turn, callback: ConversationCallback | None, task: asyncio.Task,
    ) -> None:
        """Finalize a Turn whose task was cancelled before _run_round started."""
        self._tokens.pop(turn.id, None)
        if task.cancelled() and not turn.is_complete:
            self._finalize_cancelled(turn, partial(self._emit, callback))

    async def _run_round(
        self, turn: Turn, token: CancellationToken,
        callback: ConversationCallback | None,
    ) -> Turn:
        emit = partial(self._emit, callback)
        emit(ConversationEvent(Ev.TURN_START, turn=turn))
        try:
            await self._step_loop(turn, token, emit)
        except InferenceCancelledError:
            self._finalize_cancelled(turn, emit)
        except asyncio.CancelledError:
            self._finalize_cancelled(turn, emit)
            raise
        except Exception as e:
            logger.error(
                "Unexpected error in turn: %s", e,
                extra={"turn_id": turn.id, "step_index": len(turn.steps) - 1},
                exc_info=True,
            )
            message = e.message if isinstance(e, NotesCriticError) else str(e)
            self._finalize_errored(turn, message or type(e).__name__, emit)
        finally:
            self._tokens.pop(turn.id, None)
        return turn

    async def _step_loop(self, turn: Turn, token: CancellationToken, emit) -> None:
        while True:
            step = turn.current_step
            emit(ConversationEvent(Ev.STEP_START, turn=turn))
            await self._stream_step(turn, step, token, emit)
            if turn.error is not None:
                self._finalize_errored(turn, turn.error, emit)
                return

            pending = step.pending_tool_calls()
            if pending and len(turn.steps) < self.max_steps:
                await self._execute_tools(turn, pending, token, emit)
                emit(ConversationEvent(Ev.STEP_COMPLETE, step=step))
                turn.steps.append(Step())
                continue

            if pending:
                logger.warning(
                    "Step cap reached with %d pending tool call(s)", len(pending),
                    extra={"turn_id": turn.id, "step_index": len(turn.steps) - 1},
                )
            turn.is_complete = True
            emit(ConversationEvent(Ev.TURN_COMPLETE, turn=turn))
            return

    async def _stream_step(
        self, turn: Turn, step: Step, token: CancellationToken, emit,
    ) -> None:
        events = self.engine.stream(
            list(self._conversation),
            system_prompt=self.system_prompt,
            thinking=self.thinking,
            tools=self.tools,
            token=token,
            usage_sink=partial(self._record_usage, turn.id),
        )
        async with aclosing(events):
            async for event in events:
                self._apply_event(turn, step, event, emit)

    def _apply_event(self, turn: Turn, step: Step, event: StreamEvent, emit) -> None:
        kind = event.type
        if kind == StreamEventType.THINKING:
            step.thinking = (step.thinking or "") + (event.content or "")
            emit(ConversationEvent(Ev.THINKING, content=event.content))
        elif kind == StreamEventType.CONTENT:
            step.content = (step.content or "") + (event.content or "")
            emit(ConversationEvent(Ev.CONTENT, content=event.content))
        elif kind == StreamEventType.SIGNATURE:
            step.signature = event.content
        elif kind == StreamEventType.TOOL_CALL and event.tool_call is not None:
            payload = event.tool_call
            call = ToolCall(
                id=payload.id, name=payload.name,
                input=payload.input if payload.input is not None else {},
                is_server_executed=payload.is_server_executed,
            )
            step.tool_calls[call.id] = call
            emit(ConversationEvent(Ev.TOOL_CALL, tool_call=call))
        elif kind == StreamEventType.TOOL_CALL_RESULT and event.tool_call_result is not None:
            payload = event.tool_call_result
            call = step.tool_calls.get(payload.id)
            if call is not None:
                call.result = payload.result if payload.result is not None else {}
            emit(ConversationEvent(
                Ev.TOOL_CALL_RESULT,
                tool_call_result={"id": payload.id, "result": payload.result},
            ))
        elif kind == StreamEventType.ERROR:
            if is_scoped_error(event):
                logger.warning(
                    "Tool call dropped from step: %s", event.content,
                    extra={"turn_id": turn.id, "tool_call_id": event.tool_call.id},
                )
            else:
                turn.error = event.content or "Unknown error"

    async def _execute_tools(
        self, turn: Turn, pending: list[ToolCall], token: CancellationToken, emit,
    ) -> None:
        for call in pending:
            token.raise_if_cancelled()
            call.result = await self._execute_tool_safe(turn, call)
            emit(ConversationEvent(
                Ev.TOOL_CALL_RESULT,
                tool_call_result={"id": call.id, "result": call.result},
            ))

    async def _execute_tool_safe(self, turn: Turn, call: ToolCall):
        """Execute tool with error boundary — never raises (except cancellation)."""
        try:
            result = await self.tool_executor.execute(call.name, call.input)
        except NotesCriticError as e:
            logger.warning(
                "Tool error: %s", e.message,
                extra={"turn_id": turn.id, "tool_name": call.name, "error_code": e.code},
            )
            return {"status": "error", "error_code": e.code, "message": e.message}
        except Exception as e:
            logger.error(
                "Unexpected error in tool '%s': %s", call.name, e,
                extra={"turn_id": turn.id, "tool_name": call.name}, exc_info=True,
            )
            return {
                "status": "error", "error_code": "TOOL_EXECUTION_ERROR",
                "message": f"Error executing {call.name}: {e}",
            }
        # None marks a call as not yet executed
        return result if result is not None else {}

    # ─── Terminal paths ──────────────────────────────────────────

    def _finalize_errored(self, turn: Turn, message: str, emit) -> None:
        turn.error = message
        turn.is_complete = True
        logger.warning("Turn errored: %s", message, extra={"turn_id": turn.id})
        emit(ConversationEvent(Ev.ERROR, error=message, turn=turn))

    def _finalize_cancelled(self, turn: Turn, emit) -> None:
        turn.error = CANCELLED_MESSAGE
        turn.is_complete = True
        if turn.steps and turn.current_step.is_empty():
            turn.steps.pop()
            if not turn.steps:
                self._conversation = [t for t in self._conversation if t is not turn]
        logger.info(
            "Turn cancelled (%d step(s) kept)", len(turn.steps),
            extra={"turn_id": turn.id},
        )
        emit(ConversationEvent(Ev.ERROR, error=CANCELLED_MESSAGE, turn=turn))

    def _record_usage(self, turn_id: str, usage: TokenUsage) -> None:
        self.token_tracker.add_usage(turn_id, usage)

    @staticmethod
    def _emit(callback: ConversationCallback | None, event: ConversationEvent) -> None:
        if callback is None:
            return
        try:
            callback(event)
        except Exception:
            logger.exception("Conversation callback failed on %s", event.type.value)
