"""Conversation Events — what the orchestrator republishes to its caller's callback.

Invariants:
    - Per round: turn_start, step_start, {thinking|content|tool_call|tool_call_result}*,
      step_complete?, ..., then exactly one of turn_complete | error
    - to_wire() output is JSON-safe (Turn/Step rendered through conversation_snapshot)
"""

from dataclasses import dataclass
from typing import Any

from notecritic.core.conversation import Step, ToolCall, Turn
from notecritic.core.conversation_snapshot import (
    step_to_dict, tool_call_to_dict, turn_to_dict,
)
from notecritic.core.domain_types import ConversationEventType


@dataclass(frozen=True)
class ConversationEvent:
    type: ConversationEventType
    content: str | None = None
    tool_call: ToolCall | None = None
    tool_call_result: dict[str, Any] | None = None
    step: Step | None = None
    turn: Turn | None = None
    error: str | None = None

    def to_wire(self) -> dict:
        data: dict[str, Any] = {"type": self.type.value}
        if self.content is not None:
            data["content"] = self.content
        if self.tool_call is not None:
            data["toolCall"] = tool_call_to_dict(self.tool_call)
        if self.tool_call_result is not None:
            data["toolCallResult"] = self.tool_call_result
        if self.step is not None:
            data["step"] = step_to_dict(self.step)
        if self.turn is not None:
            data["turn"] = turn_to_dict(self.turn)
        if self.error is not None:
            data["error"] = self.error
        return data

    @property
    def is_terminal(self) -> bool:
        return self.type in (
            ConversationEventType.TURN_COMPLETE, ConversationEventType.ERROR,
        )
