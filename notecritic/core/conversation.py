"""Conversation Model — Turn, Step, ToolCall and UserInput shapes.

Invariants:
    - Conversation = list[Turn], insertion order is chronological
    - Turn.steps is never empty once streaming begins
    - Turn.is_complete flips to True exactly once per round
    - ToolCall.id unique within its Step; result attached at most once
    - UserInput variants are frozen (immutable after creation)

Design Decisions:
    - Plain dataclasses, no IO: the orchestrator is the only writer
    - Step.tool_calls is an insertion-ordered dict keyed by tool call id
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Union

from notecritic.core.domain_types import FileType, TurnId, UserInputType


@dataclass(frozen=True)
class LLMFile:
    """File attached to a user input. Content is supplied by the host."""
    type: FileType
    path: str
    content: str | None = None
    mime_type: str | None = None
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.path.rsplit("/", 1)[-1] or self.path


@dataclass(frozen=True)
class ChatMessageInput:
    message: str
    prompt: str
    files: tuple[LLMFile, ...] = ()
    type: Literal[UserInputType.CHAT_MESSAGE] = UserInputType.CHAT_MESSAGE


@dataclass(frozen=True)
class FileChangeInput:
    filename: str
    diff: str
    prompt: str
    files: tuple[LLMFile, ...] = ()
    type: Literal[UserInputType.FILE_CHANGE] = UserInputType.FILE_CHANGE


@dataclass(frozen=True)
class ManualFeedbackInput:
    filename: str
    content: str
    prompt: str
    files: tuple[LLMFile, ...] = ()
    type: Literal[UserInputType.MANUAL_FEEDBACK] = UserInputType.MANUAL_FEEDBACK


UserInput = Union[ChatMessageInput, FileChangeInput, ManualFeedbackInput]


@dataclass
class ToolCall:
    id: str
    name: str
    input: Any = None
    result: Any = None
    is_server_executed: bool = False

    @property
    def is_pending(self) -> bool:
        """Client-side call still waiting for the Tool Executor."""
        return not self.is_server_executed and self.result is None


@dataclass
class Step:
    """One inference pass within a Turn."""
    thinking: str | None = None
    content: str | None = None
    tool_calls: dict[str, ToolCall] = field(default_factory=dict)
    signature: str | None = None

    def is_empty(self) -> bool:
        return not self.content and not self.thinking and not self.tool_calls

    def pending_tool_calls(self) -> list[ToolCall]:
        return [tc for tc in self.tool_calls.values() if tc.is_pending]


@dataclass
class Turn:
    """One user-request / assistant-response exchange."""
    user_input: UserInput
    id: TurnId = field(default_factory=lambda: TurnId(uuid.uuid4().hex))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    steps: list[Step] = field(default_factory=list)
    is_complete: bool = False
    error: str | None = None

    @property
    def current_step(self) -> Step:
        return self.steps[-1]


def new_turn(user_input: UserInput) -> Turn:
    """Turn with its first (empty) Step, ready for STEP_STREAMING(0)."""
    return Turn(user_input=user_input, steps=[Step()])
