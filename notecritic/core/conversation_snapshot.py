"""Conversation Snapshot — JSON-safe serialization for Turns (history persistence, API).

Invariants:
    - turns_to_snapshot produces plain dicts/lists/str (no Enums, no datetimes)
    - turns_from_snapshot(turns_to_snapshot(t)) is structurally equal to t
    - Missing optional keys fall back to dataclass defaults (forward-compatible)

Design Decisions:
    - camelCase keys match the StreamEvent wire contract used by clients
"""

from datetime import datetime

from notecritic.core.conversation import (
    ChatMessageInput, FileChangeInput, LLMFile, ManualFeedbackInput,
    Step, ToolCall, Turn, UserInput,
)
from notecritic.core.domain_types import FileType, TurnId, UserInputType


def _file_to_dict(f: LLMFile) -> dict:
    return {
        "type": f.type.value, "path": f.path, "content": f.content,
        "mimeType": f.mime_type, "name": f.name,
    }


def _file_from_dict(data: dict) -> LLMFile:
    return LLMFile(
        type=FileType(data["type"]), path=data["path"],
        content=data.get("content"), mime_type=data.get("mimeType"),
        name=data.get("name"),
    )


def user_input_to_dict(user_input: UserInput) -> dict:
    data: dict = {
        "type": user_input.type.value,
        "prompt": user_input.prompt,
        "files": [_file_to_dict(f) for f in user_input.files],
    }
    if isinstance(user_input, ChatMessageInput):
        data["message"] = user_input.message
    elif isinstance(user_input, FileChangeInput):
        data.update(filename=user_input.filename, diff=user_input.diff)
    else:
        data.update(filename=user_input.filename, content=user_input.content)
    return data


def user_input_from_dict(data: dict) -> UserInput:
    files = tuple(_file_from_dict(f) for f in data.get("files") or [])
    kind = UserInputType(data.get("type", UserInputType.CHAT_MESSAGE.value))
    prompt = data.get("prompt", "")
    if kind == UserInputType.FILE_CHANGE:
        return FileChangeInput(
            filename=data.get("filename", ""), diff=data.get("diff", ""),
            prompt=prompt, files=files,
        )
    if kind == UserInputType.MANUAL_FEEDBACK:
        return ManualFeedbackInput(
            filename=data.get("filename", ""), content=data.get("content", ""),
            prompt=prompt, files=files,
        )
    return ChatMessageInput(
        message=data.get("message", prompt), prompt=prompt, files=files,
    )


def tool_call_to_dict(tc: ToolCall) -> dict:
    return {
        "id": tc.id, "name": tc.name, "input": tc.input,
        "result": tc.result, "isServerExecuted": tc.is_server_executed,
    }


def step_to_dict(step: Step) -> dict:
    return {
        "thinking": step.thinking,
        "content": step.content,
        "toolCalls": {k: tool_call_to_dict(v) for k, v in step.tool_calls.items()},
        "signature": step.signature,
    }


def _step_from_dict(data: dict) -> Step:
    calls = {
        key: ToolCall(
            id=tc["id"], name=tc["name"], input=tc.get("input"),
            result=tc.get("result"),
            is_server_executed=bool(tc.get("isServerExecuted", False)),
        )
        for key, tc in (data.get("toolCalls") or {}).items()
    }
    return Step(
        thinking=data.get("thinking"), content=data.get("content"),
        tool_calls=calls, signature=data.get("signature"),
    )


def turn_to_dict(turn: Turn) -> dict:
    return {
        "id": turn.id,
        "timestamp": turn.timestamp.isoformat(),
        "userInput": user_input_to_dict(turn.user_input),
        "steps": [step_to_dict(s) for s in turn.steps],
        "isComplete": turn.is_complete,
        "error": turn.error,
    }


def turn_from_dict(data: dict) -> Turn:
    return Turn(
        id=TurnId(data["id"]),
        timestamp=datetime.fromisoformat(data["timestamp"]),
        user_input=user_input_from_dict(data.get("userInput") or {}),
        steps=[_step_from_dict(s) for s in data.get("steps") or []],
        is_complete=bool(data.get("isComplete", True)),
        error=data.get("error"),
    )


def turns_to_snapshot(turns: list[Turn]) -> list[dict]:
    """Serialize a conversation to a JSON-safe list. Pure, no IO."""
    return [turn_to_dict(t) for t in turns]


def turns_from_snapshot(snapshot: list[dict]) -> list[Turn]:
    return [turn_from_dict(d) for d in snapshot]
