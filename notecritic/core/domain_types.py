"""Domain Types — identifiers, enums and constants shared across the engine.

Invariants:
    - Every tagged variant (stream events, conversation events, user input) is a str Enum
    - ProviderId values match the prefix of a configured model string ("anthropic/...")

Design Decisions:
    - NewType over wrapper classes: zero runtime cost, full type-checker support
    - str Enums serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

TurnId = NewType("TurnId", str)
ToolCallId = NewType("ToolCallId", str)
BlockIndex = NewType("BlockIndex", int)
HistoryId = NewType("HistoryId", str)


# ─── Constants ───────────────────────────────────────────────────

MAX_STEPS = 10
CANCELLED_MESSAGE = "Inference was cancelled"
ALREADY_RUNNING_MESSAGE = (
    "Inference is already running. Please wait for it to complete or cancel it first."
)


# ─── Enums ───────────────────────────────────────────────────────

class StreamEventType(str, Enum):
    """Canonical, vendor-agnostic stream event tags."""
    THINKING = "thinking"
    CONTENT = "content"
    TOOL_CALL = "tool_call"
    TOOL_CALL_RESULT = "tool_call_result"
    SIGNATURE = "signature"
    ERROR = "error"
    DONE = "done"


class ConversationEventType(str, Enum):
    """Events republished by the orchestrator to its caller."""
    TURN_START = "turn_start"
    STEP_START = "step_start"
    THINKING = "thinking"
    CONTENT = "content"
    TOOL_CALL = "tool_call"
    TOOL_CALL_RESULT = "tool_call_result"
    STEP_COMPLETE = "step_complete"
    TURN_COMPLETE = "turn_complete"
    ERROR = "error"


class UserInputType(str, Enum):
    CHAT_MESSAGE = "chat_message"
    FILE_CHANGE = "file_change"
    MANUAL_FEEDBACK = "manual_feedback"


class FileType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    PDF = "pdf"


class ProviderId(str, Enum):
    """Vendors with a Provider Adapter in the lookup table."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class BlockKind(str, Enum):
    """What a vendor content block carries (bookkeeping only)."""
    CONTENT = "content"
    THINKING = "thinking"
    TOOL_CALL = "tool_call"
    TOOL_CALL_RESULT = "tool_call_result"
