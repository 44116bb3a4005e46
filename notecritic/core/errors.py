"""Error Hierarchy — typed, categorized exceptions for every engine failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - TransportError is fatal for one stream; ToolParseError is scoped to one tool call
    - InferenceCancelledError is caller-initiated, never reported as a vendor failure
    - to_response() produces the REST envelope; stream errors travel as ConversationEvents
    - message is always a short human-readable string (becomes Turn.error)

Design Decisions:
    - Single hierarchy with NotesCriticError base: FastAPI global handler catches all
    - ErrorContext as dataclass: observability fields without coupling to logging
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    TOOL = "tool"
    CANCELLED = "cancelled"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    turn_id: str | None = None
    step_index: int | None = None
    provider: str | None = None
    tool_name: str | None = None
    tool_call_id: str | None = None
    status_code: int | None = None
    debug_info: dict[str, Any] | None = None


class NotesCriticError(Exception):
    """Base exception for all notecritic errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "turn_id": self.context.turn_id,
                    "provider": self.context.provider,
                    "tool_name": self.context.tool_name,
                },
            }
        }


# ─── Stream Errors ──────────────────────────────────────────────

class TransportError(NotesCriticError):
    """Connection refused, HTTP error status, or mid-stream socket failure."""
    def __init__(
        self, message: str, status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.status_code = status_code
        super().__init__(
            message, "TRANSPORT_ERROR", ErrorCategory.TRANSPORT,
            ErrorSeverity.CRITICAL, ctx, 502,
        )
        self.status_code = status_code


class ProtocolError(NotesCriticError):
    """Vendor reported an error object, or the wire made further progress impossible."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "PROTOCOL_ERROR", ErrorCategory.PROTOCOL,
            ErrorSeverity.ERROR, context, 502,
        )


class ToolParseError(NotesCriticError):
    """Accumulated tool-call JSON fragments did not parse. Scoped to one call."""
    def __init__(
        self, tool_call_id: str, tool_name: str, detail: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.tool_name = tool_name
        ctx.tool_call_id = tool_call_id
        super().__init__(
            f"Failed to parse tool call: {detail}",
            "TOOL_PARSE_ERROR", ErrorCategory.TOOL,
            ErrorSeverity.WARNING, ctx, 422,
        )
        self.tool_call_id = tool_call_id
        self.tool_name = tool_name


class InferenceCancelledError(NotesCriticError):
    """Raised at the next wire read after a turn's token is cancelled."""
    def __init__(self, message: str = "Inference was cancelled", context: ErrorContext | None = None):
        super().__init__(
            message, "INFERENCE_CANCELLED", ErrorCategory.CANCELLED,
            ErrorSeverity.INFO, context, 499,
        )


# ─── Orchestration Errors ───────────────────────────────────────

class InferenceAlreadyRunningError(NotesCriticError):
    """A round was requested while another Turn is still non-terminal."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INFERENCE_ALREADY_RUNNING", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class TurnNotFoundError(NotesCriticError):
    """Rerun/cancel requested for a turn id not in the conversation."""
    def __init__(self, turn_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Turn with ID {turn_id} not found in conversation history",
            "TURN_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.turn_id = turn_id


class HistoryNotFoundError(NotesCriticError):
    """Saved conversation history does not exist."""
    def __init__(self, history_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"History '{history_id}' not found",
            "HISTORY_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Configuration Errors ───────────────────────────────────────

class UnsupportedProviderError(NotesCriticError):
    """Model string names a provider with no adapter."""
    def __init__(self, provider: str, context: ErrorContext | None = None):
        super().__init__(
            f"Unsupported LLM provider: {provider}",
            "UNSUPPORTED_PROVIDER", ErrorCategory.CONFIGURATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.provider = provider


class ApiKeyMissingError(NotesCriticError):
    """Selected provider has no API key configured."""
    def __init__(self, provider_name: str, context: ErrorContext | None = None):
        super().__init__(
            f"{provider_name} API key not configured",
            "API_KEY_MISSING", ErrorCategory.CONFIGURATION,
            ErrorSeverity.ERROR, context, 400,
        )


class UnsupportedFileError(NotesCriticError):
    """Attached file type cannot be formatted for the vendor."""
    def __init__(self, file_type: str, context: ErrorContext | None = None):
        super().__init__(
            f"Unsupported file type: {file_type}",
            "UNSUPPORTED_FILE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


# ─── Infrastructure Errors ──────────────────────────────────────

class DatabaseError(NotesCriticError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
