"""OpenAI Formatter — Turn history → Responses API input items.

Invariants:
    - Every Turn starts with one user message: input_text prompt + one part per attached file
    - Assistant text is echoed as an assistant message per non-empty Step
    - Client-side tool calls with a result become a function_call / function_call_output pair
    - Server-executed (mcp) calls are never echoed

Design Decisions:
    - Items carry call_id only: the Responses API rejects replayed item ids without stored state
"""

import json
from typing import Any

from notecritic.core.conversation import LLMFile, Step, Turn
from notecritic.core.domain_types import FileType
from notecritic.core.errors import UnsupportedFileError


def format_text(text: str, filename: str | None = None) -> dict:
    return {
        "type": "input_text",
        "text": f"File: {filename}\n\n{text}" if filename else text,
    }


def format_file(file: LLMFile) -> dict:
    if file.type == FileType.TEXT:
        return format_text(file.content or "", file.display_name)
    if file.type == FileType.IMAGE:
        mime = file.mime_type or "image/png"
        return {
            "type": "input_image",
            "image_url": f"data:{mime};base64,{file.content or ''}",
        }
    if file.type == FileType.PDF:
        mime = file.mime_type or "application/pdf"
        return {
            "type": "input_file",
            "filename": file.display_name,
            "file_data": f"data:{mime};base64,{file.content or ''}",
        }
    raise UnsupportedFileError(str(file.type))


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def _format_step(step: Step) -> list[dict]:
    items: list[dict] = []
    if step.content:
        items.append({"role": "assistant", "content": step.content})
    for tc in step.tool_calls.values():
        if tc.is_server_executed or tc.result is None:
            continue
        items.append({
            "type": "function_call",
            "call_id": tc.id,
            "name": tc.name,
            "arguments": _as_text(tc.input if tc.input is not None else {}),
        })
        items.append({
            "type": "function_call_output",
            "call_id": tc.id,
            "output": _as_text(tc.result),
        })
    return items


def format_turn(turn: Turn) -> list[dict]:
    items = [{
        "role": "user",
        "content": [
            format_text(turn.user_input.prompt),
            *(format_file(f) for f in turn.user_input.files),
        ],
    }]
    for step in turn.steps:
        items.extend(_format_step(step))
    return items


class OpenAIFormatter:
    """HistoryFormatter for the OpenAI Responses API."""

    def format_turns(self, turns: list[Turn]) -> list[dict]:
        items: list[dict] = []
        for turn in turns:
            items.extend(format_turn(turn))
        return items
