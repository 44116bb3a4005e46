"""OpenAI Adapter — tests for Responses API request building and SSE parsing.

Invariants:
    - reasoning sent when thinking, temperature otherwise
    - function_call items open tool calls keyed by output_index, using call_id
    - response.completed is the finish marker and carries usage
    - response.failed / error objects are fatal
    - Configured MCP servers are appended to tools as type "mcp"
"""

import pytest

from notecritic.core.conversation import LLMFile, Step, ToolCall, Turn
from notecritic.core.domain_types import BlockKind, FileType, ProviderId
from notecritic.core.errors import ApiKeyMissingError
from notecritic.core.user_input import chat_message
from notecritic.providers.base import McpServerConfig, ProviderConfig
from notecritic.providers.openai_adapter import API_URL, OpenAIAdapter
from notecritic.services.define_browser_tools import WEB_BROWSER


# -- Helpers -------------------------------------------------------------------

def _adapter(**overrides) -> OpenAIAdapter:
    values = {"provider": ProviderId.OPENAI, "model": "gpt-4.1", "api_key": "sk-test"}
    values.update(overrides)
    return OpenAIAdapter(ProviderConfig(**values))


def _turns() -> list[Turn]:
    return [Turn(user_input=chat_message("Hi"), steps=[Step()])]


# -- Request -------------------------------------------------------------------

def test_build_request_without_thinking():
    request = _adapter().build_request(_turns(), "be kind", False, [WEB_BROWSER])

    assert request.url == API_URL
    assert request.headers["Authorization"] == "Bearer sk-test"
    assert request.body["instructions"] == "be kind"
    assert request.body["temperature"] == 0.7
    assert "reasoning" not in request.body
    assert request.body["tools"][0]["type"] == "function"
    assert request.body["tools"][0]["parameters"] == WEB_BROWSER.parameters
    assert request.body["input"] == [
        {"role": "user", "content": [{"type": "input_text", "text": "Hi"}]},
    ]


def test_build_request_with_thinking():
    request = _adapter(reasoning_effort="high").build_request(_turns(), "", True, [])
    assert request.body["reasoning"] == {"effort": "high", "summary": "auto"}
    assert "temperature" not in request.body


def test_mcp_servers_appended_to_tools():
    servers = (
        McpServerConfig(name="notes", url="https://mcp.example/notes", authorization_token="tok",
                        allowed_tools=("search", "read")),
        McpServerConfig(name="open", url="https://mcp.example/open"),
    )
    tools = _adapter(mcp_servers=servers).build_request(
        _turns(), "", False, [WEB_BROWSER],
    ).body["tools"]

    assert [t["type"] for t in tools] == ["function", "mcp", "mcp"]
    assert tools[1] == {
        "type": "mcp",
        "server_label": "notes",
        "server_url": "https://mcp.example/notes",
        "require_approval": "never",
        "headers": {"Authorization": "Bearer tok"},
        "allowed_tools": ["search", "read"],
    }
    assert tools[2] == {
        "type": "mcp",
        "server_label": "open",
        "server_url": "https://mcp.example/open",
        "require_approval": "never",
    }


def test_missing_api_key_raises():
    with pytest.raises(ApiKeyMissingError) as exc_info:
        _adapter(api_key="").build_request(_turns(), "", False, [])
    assert exc_info.value.message == "OpenAI API key not configured"


def test_history_echoes_function_call_pair():
    step = Step(content="Checking")
    step.tool_calls["call_1"] = ToolCall(
        id="call_1", name="web_browser", input={"url": "u"}, result="page text",
    )
    turns = [Turn(user_input=chat_message("Hi"), steps=[step])]
    items = _adapter().build_request(turns, "", False, []).body["input"]

    assert items[1] == {"role": "assistant", "content": "Checking"}
    assert items[2] == {
        "type": "function_call", "call_id": "call_1", "name": "web_browser",
        "arguments": '{"url": "u"}',
    }
    assert items[3] == {"type": "function_call_output", "call_id": "call_1", "output": "page text"}


def test_files_become_input_parts():
    files = [
        LLMFile(type=FileType.TEXT, path="notes/a.md", content="body"),
        LLMFile(type=FileType.IMAGE, path="x.jpg", content="QUJD", mime_type="image/jpeg"),
        LLMFile(type=FileType.PDF, path="doc.pdf", content="JVBE"),
    ]
    turns = [Turn(user_input=chat_message("Look", files), steps=[Step()])]
    [user] = _adapter().build_request(turns, "", False, []).body["input"]

    assert user["content"][1] == {"type": "input_text", "text": "File: a.md\n\nbody"}
    assert user["content"][2] == {
        "type": "input_image", "image_url": "data:image/jpeg;base64,QUJD",
    }
    assert user["content"][3]["type"] == "input_file"
    assert user["content"][3]["file_data"] == "data:application/pdf;base64,JVBE"


# -- Parsing -------------------------------------------------------------------

def test_parse_function_call_added():
    result = _adapter().parse_wire_object({
        "type": "response.output_item.added", "output_index": 1,
        "item": {"type": "function_call", "id": "fc_1", "call_id": "call_1", "name": "web_browser"},
    })
    assert result.block_start.kind == BlockKind.TOOL_CALL
    assert result.tool_call_start.index == 1
    assert result.tool_call_start.id == "call_1"
    assert result.tool_call_start.is_server_executed is False


def test_parse_mcp_call_added_is_server_executed():
    result = _adapter().parse_wire_object({
        "type": "response.output_item.added", "output_index": 0,
        "item": {"type": "mcp_call", "id": "mcp_1", "name": "search"},
    })
    assert result.tool_call_start.id == "mcp_1"
    assert result.tool_call_start.is_server_executed is True


def test_parse_argument_delta():
    result = _adapter().parse_wire_object({
        "type": "response.function_call_arguments.delta", "output_index": 1, "delta": '{"a"',
    })
    assert result.tool_call_delta.index == 1
    assert result.tool_call_delta.fragment == '{"a"'


def test_parse_output_text_delta():
    result = _adapter().parse_wire_object({"type": "response.output_text.delta", "delta": "Hi"})
    assert result.content == "Hi"
    assert result.is_thinking is False


def test_parse_reasoning_summary_delta():
    result = _adapter().parse_wire_object({
        "type": "response.reasoning_summary_text.delta", "delta": "thinking...",
    })
    assert result.content == "thinking..."
    assert result.is_thinking is True


def test_parse_mcp_item_done_carries_result():
    result = _adapter().parse_wire_object({
        "type": "response.output_item.done", "output_index": 0,
        "item": {"type": "mcp_call", "id": "mcp_1", "output": "42"},
    })
    assert result.block_complete.index == 0
    assert result.tool_call_result.id == "mcp_1"
    assert result.tool_call_result.result == "42"


def test_parse_completed_with_usage():
    result = _adapter().parse_wire_object({
        "type": "response.completed",
        "response": {"usage": {
            "input_tokens": 30, "output_tokens": 9,
            "input_tokens_details": {"cached_tokens": 4},
        }},
    })
    assert result.is_complete is True
    assert result.token_usage.input_tokens == 30
    assert result.token_usage.output_tokens == 9
    assert result.token_usage.cache_read_input_tokens == 4


def test_parse_failed_is_error():
    result = _adapter().parse_wire_object({
        "type": "response.failed",
        "response": {"error": {"code": "server_error", "message": "boom"}},
    })
    assert result.error == "boom"


def test_parse_top_level_error():
    result = _adapter().parse_wire_object({"type": "error", "message": "rate limited"})
    assert result.error == "rate limited"


def test_parse_legacy_chat_chunks():
    adapter = _adapter()
    text = adapter.parse_wire_object({"choices": [{"delta": {"content": "Yo"}}]})
    finish = adapter.parse_wire_object({
        "choices": [{"delta": {}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 5, "completion_tokens": 2},
    })
    assert text.content == "Yo"
    assert finish.is_complete is True
    assert finish.token_usage.input_tokens == 5
    assert finish.token_usage.output_tokens == 2
