"""Stream Event Schemas — canonical, vendor-agnostic StreamEvent wire contract.

Invariants:
    - type is one of thinking|content|tool_call|tool_call_result|signature|error|done
    - Each event carries only the fields relevant to its type (exclude_none on dump)
    - Wire keys are camelCase (toolCall, toolCallResult); Python attributes snake_case
    - is_server_executed travels with the event in-process but never on the wire

Design Decisions:
    - One flat model with a type tag over a discriminated union: the wire shape is flat
    - Factory helpers are the only constructors used by adapters (keeps fields consistent)
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from notecritic.core.domain_types import StreamEventType


class ToolCallPayload(BaseModel):
    """Finished tool call as carried by a tool_call event."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    input: Any = None
    result: Any = None
    is_server_executed: bool = Field(False, exclude=True)


class ToolCallResultPayload(BaseModel):
    id: str
    result: Any = None


class StreamEvent(BaseModel):
    """Canonical event yielded by the stream engine."""
    model_config = ConfigDict(populate_by_name=True)

    type: StreamEventType
    content: str | None = None
    tool_call: ToolCallPayload | None = Field(None, alias="toolCall")
    tool_call_result: ToolCallResultPayload | None = Field(
        None, alias="toolCallResult",
    )

    def to_wire(self) -> dict:
        """JSON-safe dict in the canonical camelCase shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @property
    def is_terminal(self) -> bool:
        return self.type == StreamEventType.DONE


# ─── Factories ───────────────────────────────────────────────────

def thinking_event(text: str) -> StreamEvent:
    return StreamEvent(type=StreamEventType.THINKING, content=text)


def content_event(text: str) -> StreamEvent:
    return StreamEvent(type=StreamEventType.CONTENT, content=text)


def signature_event(signature: str) -> StreamEvent:
    return StreamEvent(type=StreamEventType.SIGNATURE, content=signature)


def tool_call_event(
    id: str, name: str, input: Any, is_server_executed: bool = False,
) -> StreamEvent:
    return StreamEvent(
        type=StreamEventType.TOOL_CALL,
        tool_call=ToolCallPayload(
            id=id, name=name, input=input,
            is_server_executed=is_server_executed,
        ),
    )


def tool_call_result_event(id: str, result: Any) -> StreamEvent:
    return StreamEvent(
        type=StreamEventType.TOOL_CALL_RESULT,
        tool_call_result=ToolCallResultPayload(id=id, result=result),
    )


def error_event(
    message: str, tool_call_id: str | None = None, tool_name: str | None = None,
) -> StreamEvent:
    """Error event. With tool_call_id it is scoped to that call, not fatal."""
    tool_call = None
    if tool_call_id is not None:
        tool_call = ToolCallPayload(id=tool_call_id, name=tool_name or "")
    return StreamEvent(
        type=StreamEventType.ERROR, content=message, tool_call=tool_call,
    )


def done_event() -> StreamEvent:
    return StreamEvent(type=StreamEventType.DONE)


def is_scoped_error(event: StreamEvent) -> bool:
    """True for an error event that concerns one tool call only."""
    return event.type == StreamEventType.ERROR and event.tool_call is not None
