"""OpenAI Adapter — Responses API request builder and SSE object parser.

Invariants:
    - response.output_item.added for function_call / mcp_call opens a pending tool call
      keyed by output_index
    - response.output_item.done completes that index; mcp_call items also carry their result
    - response.completed (or legacy choices[0].finish_reason) is the finish marker
    - response.failed and top-level error objects are fatal for the stream
    - Configured MCP servers ride along as type "mcp" tools, never requiring approval

Design Decisions:
    - Legacy chat-completion chunks still parsed: some proxies only speak that dialect
    - Tool call ids come from call_id (what function_call_output must reference)
"""

from notecritic.core.conversation import Turn
from notecritic.core.domain_types import BlockKind
from notecritic.core.repository_protocols import ProviderRequest, ToolDefinition
from notecritic.providers.base import (
    BlockComplete, BlockStart, McpServerConfig, ParseResult, ProviderConfig,
    TokenUsage, ToolCallDelta, ToolCallResult, ToolCallStart, error_message,
)
from notecritic.providers.openai_format import OpenAIFormatter

API_URL = "https://api.openai.com/v1/responses"
DEFAULT_TEMPERATURE = 0.7

TOOL_ITEM_TYPES = frozenset({"function_call", "mcp_call"})
ARGUMENT_DELTA_TYPES = frozenset({
    "response.function_call_arguments.delta",
    "response.mcp_call_arguments.delta",
})


def to_function_tool(tool: ToolDefinition) -> dict:
    return {
        "type": "function",
        "name": tool.name,
        "description": tool.description,
        "parameters": tool.parameters,
    }


def to_mcp_tool(server: McpServerConfig) -> dict:
    tool: dict = {
        "type": "mcp",
        "server_label": server.name,
        "server_url": server.url,
        "require_approval": "never",
    }
    if server.authorization_token:
        tool["headers"] = {"Authorization": f"Bearer {server.authorization_token}"}
    if server.allowed_tools:
        tool["allowed_tools"] = list(server.allowed_tools)
    return tool


def _item_id(item: dict) -> str:
    return item.get("call_id") or item.get("id") or ""


class OpenAIAdapter:
    """Provider Adapter for the OpenAI Responses streaming API."""

    provider_name = "OpenAI"

    def __init__(self, config: ProviderConfig, formatter: OpenAIFormatter | None = None):
        self.config = config
        self.formatter = formatter or OpenAIFormatter()

    # ─── Request ─────────────────────────────────────────────────

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
            "input": self.formatter.format_turns(turns),
            "instructions": system_prompt,
            "stream": True,
            "max_output_tokens": self.config.max_tokens,
            "tools": [to_function_tool(t) for t in tools],
        }
        body["tools"].extend(to_mcp_tool(s) for s in self.config.mcp_servers)
        if thinking:
            body["reasoning"] = {
                "effort": self.config.reasoning_effort, "summary": "auto",
            }
        else:
            body["temperature"] = DEFAULT_TEMPERATURE
        return ProviderRequest(
            url=API_URL,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            body=body,
        )

    # ─── Wire parsing ────────────────────────────────────────────

    def parse_wire_object(self, obj: dict) -> ParseResult:
        kind = obj.get("type")
        index = obj.get("output_index", -1)

        if kind == "error":
            return ParseResult(error=error_message(obj.get("error") or obj))
        if kind == "response.failed":
            response = obj.get("response") or {}
            return ParseResult(error=error_message(response.get("error")))
        if kind == "response.output_item.added":
            return self._parse_item_added(obj.get("item") or {}, index)
        if kind == "response.content_part.added":
            if (obj.get("part") or {}).get("type") == "output_text":
                return ParseResult(block_start=BlockStart(index=index, kind=BlockKind.CONTENT))
            return ParseResult()
        if kind in ARGUMENT_DELTA_TYPES:
            return ParseResult(tool_call_delta=ToolCallDelta(
                index=index, fragment=obj.get("delta") or "",
            ))
        if kind == "response.output_text.delta":
            return ParseResult(content=obj.get("delta") or None)
        if kind == "response.reasoning_summary_text.delta":
            return ParseResult(content=obj.get("delta") or None, is_thinking=True)
        if kind == "response.output_item.done":
            return self._parse_item_done(obj.get("item") or {}, index)
        if kind in ("response.completed", "response.incomplete"):
            usage = (obj.get("response") or {}).get("usage")
            return ParseResult(token_usage=self._usage(usage), is_complete=True)
        if kind is None and obj.get("choices"):
            return self._parse_legacy_chunk(obj)
        return ParseResult()

    def _parse_item_added(self, item: dict, index: int) -> ParseResult:
        item_type = item.get("type")
        if item_type in TOOL_ITEM_TYPES:
            return ParseResult(
                block_start=BlockStart(index=index, kind=BlockKind.TOOL_CALL),
                tool_call_start=ToolCallStart(
                    index=index,
                    id=_item_id(item),
                    name=item.get("name", ""),
                    initial_input={},
                    is_server_executed=item_type == "mcp_call",
                ),
            )
        if item_type == "reasoning":
            return ParseResult(block_start=BlockStart(index=index, kind=BlockKind.THINKING))
        return ParseResult()

    def _parse_item_done(self, item: dict, index: int) -> ParseResult:
        result = ParseResult(block_complete=BlockComplete(index=index))
        if item.get("type") == "mcp_call":
            result.tool_call_result = ToolCallResult(
                id=_item_id(item), result=item.get("output") or item.get("error"),
            )
        return result

    def _parse_legacy_chunk(self, obj: dict) -> ParseResult:
        choice = obj["choices"][0] or {}
        if choice.get("finish_reason"):
            return ParseResult(token_usage=self._usage(obj.get("usage")), is_complete=True)
        content = (choice.get("delta") or {}).get("content")
        return ParseResult(content=content or None)

    @staticmethod
    def _usage(raw: dict | None) -> TokenUsage | None:
        if not raw:
            return None
        cached = (raw.get("input_tokens_details") or {}).get("cached_tokens") or 0
        return TokenUsage(
            input_tokens=raw.get("input_tokens") or raw.get("prompt_tokens") or 0,
            output_tokens=raw.get("output_tokens") or raw.get("completion_tokens") or 0,
            cache_read_input_tokens=cached,
        )
