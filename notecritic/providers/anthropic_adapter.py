"""Anthropic Adapter — Messages API request builder and SSE object parser.

Invariants:
    - tool_use / server_tool_use / mcp_tool_use block starts open a pending tool call
    - Blocks carrying tool_use_id are server-side tool results (no pending entry)
    - content_block_stop always maps to block_complete (the Assembler ignores non-tool indices)
    - message_stop is the only finish marker; an error object is fatal for the stream
    - Extended thinking sent only when requested AND budget_tokens > 1024 (API minimum)
    - mcp_servers and the MCP beta header sent only when servers are configured and the
      model is not a claude-3 model

Design Decisions:
    - Raw httpx SSE over the SDK stream: one Transport shared by every vendor
    - Usage split across message_start (input) and message_delta (output) so sums stay exact
"""

from anthropic.types import ToolParam

from notecritic.core.conversation import Turn
from notecritic.core.domain_types import BlockKind
from notecritic.core.repository_protocols import ProviderRequest, ToolDefinition
from notecritic.providers.anthropic_format import AnthropicFormatter
from notecritic.providers.base import (
    BlockComplete, BlockStart, McpServerConfig, ParseResult, ProviderConfig,
    TokenUsage, ToolCallDelta, ToolCallResult, ToolCallStart, error_message,
)

API_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"
MCP_CLIENT_BETA = "mcp-client-2025-04-04"
MIN_THINKING_BUDGET = 1024

TOOL_BLOCK_TYPES = frozenset({"tool_use", "server_tool_use", "mcp_tool_use"})

WEB_SEARCH_TOOL = "web_search"
# Models without the built-in web search server tool
NO_SEARCH_MODELS = frozenset({
    "claude-3-5-sonnet-latest",
    "claude-3-5-haiku-latest",
})


def supports_mcp(model: str) -> bool:
    return "claude-3" not in model


def to_mcp_server(server: McpServerConfig) -> dict:
    entry: dict = {"type": "url", "name": server.name, "url": server.url}
    if server.authorization_token:
        entry["authorization_token"] = server.authorization_token
    if server.allowed_tools:
        entry["tool_configuration"] = {
            "enabled": True, "allowed_tools": list(server.allowed_tools),
        }
    return entry


def to_tool_param(tool: ToolDefinition) -> ToolParam:
    return {
        "name": tool.name,
        "description": tool.description,
        "input_schema": tool.parameters,
    }


def _usage(raw: dict | None, *, input_side: bool) -> TokenUsage | None:
    if not raw:
        return None
    if input_side:
        return TokenUsage(
            input_tokens=raw.get("input_tokens") or 0,
            cache_creation_input_tokens=raw.get("cache_creation_input_tokens") or 0,
            cache_read_input_tokens=raw.get("cache_read_input_tokens") or 0,
        )
    return TokenUsage(output_tokens=raw.get("output_tokens") or 0)


class AnthropicAdapter:
    """Provider Adapter for the Anthropic Messages streaming API."""

    provider_name = "Anthropic"

    def __init__(self, config: ProviderConfig, formatter: AnthropicFormatter | None = None):
        self.config = config
        self.formatter = formatter or AnthropicFormatter()

    # ─── Request ─────────────────────────────────────────────────

    def build_tools(self, tools: list[ToolDefinition]) -> list[dict]:
        built: list[dict] = []
        if (
            WEB_SEARCH_TOOL in self.config.enabled_tools
            and self.config.model not in NO_SEARCH_MODELS
        ):
            built.append({
                "type": "web_search_20250305",
                "name": WEB_SEARCH_TOOL,
                "max_uses": self.config.web_search_max_uses,
            })
        built.extend(to_tool_param(t) for t in tools)
        return built

    def build_request(
        self,
        turns: list[Turn],
        system_prompt: str,
        thinking: bool,
        tools: list[ToolDefinition],
    ) -> ProviderRequest:
        api_key = self.config.require_api_key(self.provider_name)
        body: dict = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "messages": self.formatter.format_turns(turns),
            "system": system_prompt,
            "tools": self.build_tools(tools),
            "stream": True,
        }
        budget = self.config.thinking_budget_tokens
        if thinking and budget > MIN_THINKING_BUDGET:
            body["thinking"] = {"type": "enabled", "budget_tokens": budget}
        headers = {
            "Content-Type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": API_VERSION,
        }
        if self.config.mcp_servers and supports_mcp(self.config.model):
            body["mcp_servers"] = [to_mcp_server(s) for s in self.config.mcp_servers]
            headers["anthropic-beta"] = MCP_CLIENT_BETA
        return ProviderRequest(url=API_URL, headers=headers, body=body)

    # ─── Wire parsing ────────────────────────────────────────────

    def parse_wire_object(self, obj: dict) -> ParseResult:
        kind = obj.get("type")
        if kind == "error":
            return ParseResult(error=error_message(obj.get("error")))
        if kind == "content_block_delta":
            return self._parse_delta(obj)
        if kind == "content_block_start":
            return self._parse_block_start(obj)
        if kind == "content_block_stop":
            return ParseResult(block_complete=BlockComplete(index=obj.get("index", -1)))
        if kind == "message_start":
            usage = (obj.get("message") or {}).get("usage")
            return ParseResult(token_usage=_usage(usage, input_side=True))
        if kind == "message_delta":
            return ParseResult(token_usage=_usage(obj.get("usage"), input_side=False))
        if kind == "message_stop":
            return ParseResult(is_complete=True)
        return ParseResult()

    def _parse_delta(self, obj: dict) -> ParseResult:
        delta = obj.get("delta") or {}
        delta_type = delta.get("type")
        if delta_type == "thinking_delta" or delta.get("thinking"):
            return ParseResult(content=delta.get("thinking"), is_thinking=True)
        if delta_type == "input_json_delta":
            return ParseResult(tool_call_delta=ToolCallDelta(
                index=obj.get("index", -1),
                fragment=delta.get("partial_json") or "",
            ))
        if delta_type == "signature_delta":
            return ParseResult(signature=delta.get("signature"))
        text = delta.get("text")
        if text:
            return ParseResult(content=text)
        return ParseResult()

    def _parse_block_start(self, obj: dict) -> ParseResult:
        index = obj.get("index", -1)
        block = obj.get("content_block") or {}
        block_type = block.get("type")
        if block_type in TOOL_BLOCK_TYPES:
            return ParseResult(
                block_start=BlockStart(index=index, kind=BlockKind.TOOL_CALL),
                tool_call_start=ToolCallStart(
                    index=index,
                    id=block.get("id", ""),
                    name=block.get("name", ""),
                    initial_input=block.get("input"),
                    is_server_executed=block_type != "tool_use",
                ),
            )
        if block.get("tool_use_id"):
            return ParseResult(
                block_start=BlockStart(index=index, kind=BlockKind.TOOL_CALL_RESULT),
                tool_call_result=ToolCallResult(
                    id=block["tool_use_id"], result=block.get("content"),
                ),
            )
        block_kind = BlockKind.THINKING if block_type == "thinking" else BlockKind.CONTENT
        return ParseResult(block_start=BlockStart(index=index, kind=block_kind))
