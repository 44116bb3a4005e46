"""Mock Vendor — scripted wire streams for stream engine / orchestrator tests.

Invariants:
    - MockTransport replays one script per open_stream() call, in order
    - A script is a list of raw wire lines, or an exception raised on the first read
    - HangingStream yields its lines then blocks until cancelled (records that it was closed)
    - Builders emit realistic SSE: "event:" lines, blank separators and ping comments included

Design Decisions:
    - Raw lines instead of parsed objects: exercises wire_parsing exactly like production
    - Flat builder functions returning list[str]: scripts compose with + and * in tests
"""

import asyncio
import json

from notecritic.config import Settings


def make_settings(**overrides) -> Settings:
    """Settings isolated from .env, with fake keys and no thinking/web search by default."""
    values = {
        "anthropic_api_key": "sk-ant-test-fake-key",
        "openai_api_key": "sk-test-fake-key",
        "thinking_budget_tokens": 0,
        "enabled_tools": ["web_browser"],
        "transport_base_delay_ms": 0,
        "database_url": "sqlite+aiosqlite:///:memory:",
        "log_format": "text",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# -- Transport doubles ---------------------------------------------------------


class HangingStream:
    """Script that emits its lines, then waits forever (until cancelled)."""

    def __init__(self, lines=()):
        self.lines = list(lines)
        self.started = asyncio.Event()
        self.closed = False

    async def run(self):
        try:
            for line in self.lines:
                yield line
            self.started.set()
            await asyncio.Event().wait()
        finally:
            self.closed = True


class MockTransport:
    """Replaces HttpTransport. Sequences pre-configured scripts."""

    def __init__(self, scripts):
        self._scripts = list(scripts)
        self._idx = 0
        self.requests = []

    def add(self, *scripts):
        self._scripts.extend(scripts)

    async def open_stream(self, request):
        self.requests.append(request)
        if self._idx >= len(self._scripts):
            raise RuntimeError(
                f"MockTransport: no script at index {self._idx} "
                f"(only {len(self._scripts)} configured)",
            )
        script = self._scripts[self._idx]
        self._idx += 1
        if isinstance(script, BaseException):
            raise script
        if isinstance(script, HangingStream):
            async for line in script.run():
                yield line
            return
        for line in script:
            await asyncio.sleep(0)
            yield line

    @property
    def call_count(self):
        return len(self.requests)


class RecordingExecutor:
    """ToolExecutor double: logs calls, returns configured results (or raises)."""

    def __init__(self, results=None):
        self.results = results or {}
        self.log = []

    async def execute(self, name, input_data):
        self.log.append({"tool": name, "input": input_data})
        r = self.results.get(name, {"status": "ok"})
        if isinstance(r, Exception):
            raise r
        return r() if callable(r) else r


# -- Anthropic SSE builders ----------------------------------------------------


def _sse(obj: dict) -> list[str]:
    return [f"event: {obj['type']}", f"data: {json.dumps(obj)}", ""]


def anthropic_start(input_tokens=10) -> list[str]:
    return [": ping", ""] + _sse({
        "type": "message_start",
        "message": {
            "id": "msg_1", "role": "assistant", "content": [],
            "usage": {"input_tokens": input_tokens, "output_tokens": 1},
        },
    })


def anthropic_end(output_tokens=5, stop_reason="end_turn") -> list[str]:
    return _sse({
        "type": "message_delta",
        "delta": {"stop_reason": stop_reason},
        "usage": {"output_tokens": output_tokens},
    }) + _sse({"type": "message_stop"})


def anthropic_text_block(index, chunks) -> list[str]:
    lines = _sse({
        "type": "content_block_start", "index": index,
        "content_block": {"type": "text", "text": ""},
    })
    for chunk in chunks:
        lines += _sse({
            "type": "content_block_delta", "index": index,
            "delta": {"type": "text_delta", "text": chunk},
        })
    return lines + _sse({"type": "content_block_stop", "index": index})


def anthropic_thinking_block(index, text, signature="sig-abc") -> list[str]:
    return (
        _sse({
            "type": "content_block_start", "index": index,
            "content_block": {"type": "thinking", "thinking": ""},
        })
        + _sse({
            "type": "content_block_delta", "index": index,
            "delta": {"type": "thinking_delta", "thinking": text},
        })
        + _sse({
            "type": "content_block_delta", "index": index,
            "delta": {"type": "signature_delta", "signature": signature},
        })
        + _sse({"type": "content_block_stop", "index": index})
    )


def anthropic_tool_block(
    index, tool_id, name, fragments, block_type="tool_use",
) -> list[str]:
    lines = _sse({
        "type": "content_block_start", "index": index,
        "content_block": {"type": block_type, "id": tool_id, "name": name, "input": {}},
    })
    for fragment in fragments:
        lines += _sse({
            "type": "content_block_delta", "index": index,
            "delta": {"type": "input_json_delta", "partial_json": fragment},
        })
    return lines + _sse({"type": "content_block_stop", "index": index})


def anthropic_search_result_block(index, tool_use_id, content) -> list[str]:
    return _sse({
        "type": "content_block_start", "index": index,
        "content_block": {
            "type": "web_search_tool_result", "tool_use_id": tool_use_id,
            "content": content,
        },
    }) + _sse({"type": "content_block_stop", "index": index})


def anthropic_text_stream(chunks=("Hello",), input_tokens=10, output_tokens=5) -> list[str]:
    return (
        anthropic_start(input_tokens)
        + anthropic_text_block(0, chunks)
        + anthropic_end(output_tokens)
    )


def anthropic_tool_stream(
    tool_id="toolu_1", name="web_browser",
    fragments=('{"url": ', '"https://example.com"}'), text=None,
) -> list[str]:
    lines = anthropic_start()
    index = 0
    if text is not None:
        lines += anthropic_text_block(0, [text])
        index = 1
    lines += anthropic_tool_block(index, tool_id, name, fragments)
    return lines + anthropic_end(stop_reason="tool_use")


def anthropic_error(message="Overloaded", error_type="overloaded_error") -> list[str]:
    return _sse({"type": "error", "error": {"type": error_type, "message": message}})


# -- OpenAI Responses SSE builders ---------------------------------------------


def openai_text_stream(chunks=("Hello",), input_tokens=12, output_tokens=4) -> list[str]:
    lines = _sse({"type": "response.created", "response": {"id": "resp_1"}})
    lines += _sse({
        "type": "response.output_item.added", "output_index": 0,
        "item": {"type": "message", "id": "msg_1", "role": "assistant"},
    })
    lines += _sse({
        "type": "response.content_part.added", "output_index": 0,
        "content_index": 0, "part": {"type": "output_text", "text": ""},
    })
    for chunk in chunks:
        lines += _sse({
            "type": "response.output_text.delta", "output_index": 0,
            "content_index": 0, "delta": chunk,
        })
    lines += _sse({
        "type": "response.output_item.done", "output_index": 0,
        "item": {"type": "message", "id": "msg_1"},
    })
    return lines + _sse({
        "type": "response.completed",
        "response": {
            "id": "resp_1",
            "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
        },
    })


def openai_tool_stream(
    call_id="call_1", name="web_browser",
    fragments=('{"url":', '"https://example.com"}'),
) -> list[str]:
    lines = _sse({"type": "response.created", "response": {"id": "resp_2"}})
    lines += _sse({
        "type": "response.output_item.added", "output_index": 0,
        "item": {
            "type": "function_call", "id": "fc_1", "call_id": call_id,
            "name": name, "arguments": "",
        },
    })
    for fragment in fragments:
        lines += _sse({
            "type": "response.function_call_arguments.delta",
            "output_index": 0, "item_id": "fc_1", "delta": fragment,
        })
    lines += _sse({
        "type": "response.output_item.done", "output_index": 0,
        "item": {"type": "function_call", "id": "fc_1", "call_id": call_id, "name": name},
    })
    return lines + _sse({"type": "response.completed", "response": {"id": "resp_2"}})
