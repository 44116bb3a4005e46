"""Anthropic Formatter — Turn history → Messages API message array.

Invariants:
    - Every Turn starts with one user message: prompt text block + one block per attached file
    - Empty Steps are skipped (the in-progress Step contributes nothing)
    - Client-side tool calls with a result are echoed as assistant tool_use + user tool_result
    - Server-executed tool calls are never echoed (the vendor already holds them)
    - Thinking blocks are echoed only with their signature

Design Decisions:
    - tool_result content is JSON text: results are arbitrary JSON, Anthropic wants str/blocks
"""

import json
from typing import Any

from anthropic.types import MessageParam, TextBlockParam

from notecritic.core.conversation import LLMFile, Step, Turn
from notecritic.core.domain_types import FileType
from notecritic.core.errors import UnsupportedFileError


def format_text(text: str, filename: str | None = None) -> TextBlockParam:
    return {
        "type": "text",
        "text": f"File: {filename}\n\n{text}" if filename else text,
    }


def format_file(file: LLMFile) -> dict:
    if file.type == FileType.TEXT:
        return {
            "type": "document",
            "source": {
                "type": "text",
                "data": file.content or "",
                "media_type": file.mime_type or "text/plain",
            },
            "title": file.display_name,
        }
    if file.type == FileType.IMAGE:
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": file.mime_type or "image/png",
                "data": file.content or "",
            },
        }
    if file.type == FileType.PDF:
        return {
            "type": "document",
            "source": {
                "type": "base64",
                "media_type": file.mime_type or "application/pdf",
                "data": file.content or "",
            },
            "title": file.display_name,
        }
    raise UnsupportedFileError(str(file.type))


def _result_text(result: Any) -> str:
    return result if isinstance(result, str) else json.dumps(result)


def _format_step(step: Step) -> list[MessageParam]:
    echoed = [
        tc for tc in step.tool_calls.values()
        if not tc.is_server_executed and tc.result is not None
    ]
    blocks: list[dict] = []
    if step.thinking and step.signature:
        blocks.append({
            "type": "thinking",
            "thinking": step.thinking,
            "signature": step.signature,
        })
    if step.content:
        blocks.append(format_text(step.content))
    for tc in echoed:
        blocks.append({
            "type": "tool_use",
            "id": tc.id,
            "name": tc.name,
            "input": tc.input if tc.input is not None else {},
        })
    if not blocks:
        return []
    messages: list[MessageParam] = [{"role": "assistant", "content": blocks}]
    if echoed:
        messages.append({
            "role": "user",
            "content": [
                {
                    "type": "tool_result",
                    "tool_use_id": tc.id,
                    "content": _result_text(tc.result),
                }
                for tc in echoed
            ],
        })
    return messages


def format_turn(turn: Turn) -> list[MessageParam]:
    user: MessageParam = {
        "role": "user",
        "content": [
            format_text(turn.user_input.prompt),
            *(format_file(f) for f in turn.user_input.files),
        ],
    }
    messages = [user]
    for step in turn.steps:
        if not step.is_empty():
            messages.extend(_format_step(step))
    return messages


class AnthropicFormatter:
    """HistoryFormatter for the Anthropic Messages API."""

    def format_turns(self, turns: list[Turn]) -> list[MessageParam]:
        messages: list[MessageParam] = []
        for turn in turns:
            messages.extend(format_turn(turn))
        return messages
