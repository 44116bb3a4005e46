"""Provider Base — ParseResult vocabulary and the adapter/formatter interfaces.

Invariants:
    - parse_wire_object() is pure: one vendor JSON object in, one ParseResult out
    - A ParseResult may carry several signals at once (e.g. block_complete + tool_call_result)
    - build_request() raises ApiKeyMissingError before touching the network
    - Adapters never hold per-stream state; the stream engine owns the Tool-Call Assembler

Design Decisions:
    - Protocol over base class: adapters are independent variants in a lookup table
    - ProviderConfig is resolved once from Settings so adapters never read env vars
"""

from dataclasses import dataclass
from typing import Any, Protocol

from notecritic.core.conversation import Turn
from notecritic.core.domain_types import BlockKind, ProviderId
from notecritic.core.errors import ApiKeyMissingError, ErrorContext
from notecritic.core.repository_protocols import ProviderRequest, ToolDefinition


@dataclass(frozen=True)
class McpServerConfig:
    """MCP server forwarded to the vendor request; empty allowed_tools means all tools."""
    name: str
    url: str
    authorization_token: str | None = None
    allowed_tools: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProviderConfig:
    """Resolved per-vendor settings for one stream."""
    provider: ProviderId
    model: str
    api_key: str | None
    max_tokens: int = 4096
    thinking_budget_tokens: int = 0
    reasoning_effort: str = "medium"
    web_search_max_uses: int = 5
    enabled_tools: tuple[str, ...] = ()
    mcp_servers: tuple[McpServerConfig, ...] = ()

    def require_api_key(self, provider_name: str) -> str:
        if not self.api_key:
            raise ApiKeyMissingError(
                provider_name,
                context=ErrorContext(provider=self.provider.value),
            )
        return self.api_key


@dataclass(frozen=True)
class BlockStart:
    index: int
    kind: BlockKind


@dataclass(frozen=True)
class ToolCallStart:
    index: int
    id: str
    name: str
    initial_input: Any = None
    is_server_executed: bool = False


@dataclass(frozen=True)
class ToolCallDelta:
    index: int
    fragment: str


@dataclass(frozen=True)
class ToolCallResult:
    id: str
    result: Any = None


@dataclass(frozen=True)
class BlockComplete:
    index: int


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class ParseResult:
    """Zero or more signals extracted from one wire object."""
    content: str | None = None
    is_thinking: bool = False
    block_start: BlockStart | None = None
    tool_call_start: ToolCallStart | None = None
    tool_call_delta: ToolCallDelta | None = None
    tool_call_result: ToolCallResult | None = None
    block_complete: BlockComplete | None = None
    signature: str | None = None
    token_usage: TokenUsage | None = None
    is_complete: bool = False
    error: str | None = None


class HistoryFormatter(Protocol):
    """Turn-to-Wire Formatter: conversation history → vendor message array."""
    def format_turns(self, turns: list[Turn]) -> list[dict]: ...


class ProviderAdapter(Protocol):
    config: ProviderConfig

    def build_request(
        self,
        turns: list[Turn],
        system_prompt: str,
        thinking: bool,
        tools: list[ToolDefinition],
    ) -> ProviderRequest: ...

    def parse_wire_object(self, obj: dict) -> ParseResult: ...


def error_message(payload: Any) -> str:
    """Short human-readable message from a vendor error payload."""
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("type")
        if message:
            return str(message)
    if payload:
        return str(payload)
    return "Unknown provider error"
