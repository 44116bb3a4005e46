"""Stream Engine — drives one Provider Adapter over one wire stream → canonical StreamEvents.

Invariants:
    - Exactly one terminal event per stream: done, or one fatal error (never both)
    - Nothing is yielded after the terminal event
    - tool_call is emitted exactly once per completed tool block, never at block start
    - Tool JSON parse failure → one scoped error event (carries the call id/name), stream continues
    - Transport/config/unexpected failures → one error event; only cancellation propagates
    - The wire connection is released on every exit path (aclosing over guard_lines)

Design Decisions:
    - Assembler + current-block marker live here, per stream: adapters stay pure parsers
    - Token usage leaves through usage_sink, not the event stream (the event contract is fixed)
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing

from notecritic.config import Settings
from notecritic.core.cancellation import CancellationToken, guard_lines
from notecritic.core.conversation import Turn
from notecritic.core.errors import (
    ErrorContext, InferenceCancelledError, NotesCriticError, ProtocolError,
    ToolParseError,
)
from notecritic.core.repository_protocols import (
    ProviderRequest, ToolDefinition, Transport,
)
from notecritic.core.tool_call_assembler import ToolCallAssembler
from notecritic.core.wire_parsing import parse_wire_line
from notecritic.providers.base import ParseResult, ProviderAdapter, TokenUsage
from notecritic.providers.registry import get_adapter
from notecritic.schemas.stream_events import (
    StreamEvent, content_event, done_event, error_event, signature_event,
    thinking_event, tool_call_event, tool_call_result_event,
)

logger = logging.getLogger(__name__)

UsageSink = Callable[[TokenUsage], None]


class StreamEngine:
    """Opens vendor streams and normalizes them into StreamEvents."""

    def __init__(self, transport: Transport, settings: Settings):
        self.transport = transport
        self.settings = settings

    async def stream(
        self,
        turns: list[Turn],
        *,
        system_prompt: str,
        thinking: bool = False,
        tools: list[ToolDefinition] | None = None,
        token: CancellationToken | None = None,
        model: str | None = None,
        usage_sink: UsageSink | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Async generator of canonical events for one inference pass."""
        token = token or CancellationToken()
        try:
            adapter = get_adapter(self.settings, model)
            request = adapter.build_request(turns, system_prompt, thinking, tools or [])
            events = self._drive(adapter, request, token, usage_sink)
            async with aclosing(events):
                async for event in events:
                    yield event
        except InferenceCancelledError:
            raise
        except NotesCriticError as e:
            logger.warning(
                "Stream failed: %s", e.message,
                extra={"turn_id": token.turn_id, "error_code": e.code},
            )
            yield error_event(e.message)
        except Exception as e:
            logger.error(
                "Unexpected stream failure: %s", e,
                extra={"turn_id": token.turn_id}, exc_info=True,
            )
            yield error_event(f"Request failed: {e}")

    async def _drive(
        self,
        adapter: ProviderAdapter,
        request: ProviderRequest,
        token: CancellationToken,
        usage_sink: UsageSink | None,
    ) -> AsyncIterator[StreamEvent]:
        assembler = ToolCallAssembler()
        current_block = -1
        lines = guard_lines(self.transport.open_stream(request), token)
        async with aclosing(lines):
            async for line in lines:
                obj = parse_wire_line(line)
                if obj is None:
                    continue
                result = adapter.parse_wire_object(obj)
                if result.error:
                    raise ProtocolError(result.error, context=ErrorContext(
                        turn_id=token.turn_id, provider=adapter.config.provider.value,
                    ))
                if result.block_start is not None:
                    current_block = result.block_start.index
                for event in self._events_for(result, assembler, token):
                    yield event
                if result.block_complete is not None:
                    current_block = -1
                if result.token_usage is not None and usage_sink is not None:
                    usage_sink(result.token_usage)
                if result.is_complete:
                    yield done_event()
                    return
        if len(assembler):
            logger.warning(
                "Stream ended with %d unfinished tool call(s) (last block %d)",
                len(assembler), current_block,
                extra={"turn_id": token.turn_id},
            )
        yield done_event()

    @staticmethod
    def _events_for(
        result: ParseResult, assembler: ToolCallAssembler, token: CancellationToken,
    ) -> list[StreamEvent]:
        """Non-terminal events for one ParseResult, in emission order."""
        events: list[StreamEvent] = []
        start = result.tool_call_start
        if start is not None:
            assembler.start(
                start.index, start.id, start.name, start.initial_input,
                start.is_server_executed,
            )
        if result.tool_call_delta is not None:
            assembler.delta(result.tool_call_delta.index, result.tool_call_delta.fragment)
        if result.block_complete is not None:
            try:
                call = assembler.complete(result.block_complete.index)
            except ToolParseError as e:
                logger.warning(
                    "Dropping tool call: %s", e.message,
                    extra={
                        "turn_id": token.turn_id, "tool_name": e.tool_name,
                        "tool_call_id": e.tool_call_id,
                    },
                )
                events.append(error_event(e.message, e.tool_call_id, e.tool_name))
            else:
                if call is not None:
                    events.append(tool_call_event(
                        call.id, call.name, call.input, call.is_server_executed,
                    ))
        if result.tool_call_result is not None:
            events.append(tool_call_result_event(
                result.tool_call_result.id, result.tool_call_result.result,
            ))
        if result.signature:
            events.append(signature_event(result.signature))
        if result.content:
            events.append(
                thinking_event(result.content) if result.is_thinking
                else content_event(result.content)
            )
        return events
