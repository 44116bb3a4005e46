"""User Input Builders — normalize chat, file-change and manual-feedback requests.

Invariants:
    - Every builder returns a frozen UserInput whose prompt is the exact text sent to the model
    - file_change fills ${notePath} and ${diff} placeholders of the feedback template
"""

from collections.abc import Iterable
from dataclasses import replace

from notecritic.core.conversation import (
    ChatMessageInput, FileChangeInput, LLMFile, ManualFeedbackInput,
)

DEFAULT_FEEDBACK_TEMPLATE = """Please provide feedback on the changes made to "${notePath}".

The current note content is attached as a file for context.

Changes made:
${diff}

Please provide constructive feedback focusing on the recent changes."""


def chat_message(prompt: str, files: Iterable[LLMFile] = ()) -> ChatMessageInput:
    return ChatMessageInput(message=prompt, prompt=prompt, files=tuple(files))


def file_change(
    filename: str,
    diff: str,
    template: str = DEFAULT_FEEDBACK_TEMPLATE,
    files: Iterable[LLMFile] = (),
) -> FileChangeInput:
    prompt = template.replace("${notePath}", filename).replace("${diff}", diff)
    return FileChangeInput(
        filename=filename, diff=diff, prompt=prompt, files=tuple(files),
    )


def manual_feedback(
    filename: str,
    content: str,
    prompt: str | None = None,
    files: Iterable[LLMFile] = (),
) -> ManualFeedbackInput:
    text = prompt or f'Please provide feedback on "{filename}".'
    return ManualFeedbackInput(
        filename=filename, content=content, prompt=text, files=tuple(files),
    )


def with_overrides(user_input, prompt: str | None, files: Iterable[LLMFile] | None):
    """Copy of user_input with prompt/files replaced (rerun with edits)."""
    changes = {}
    if prompt is not None:
        changes["prompt"] = prompt
        if isinstance(user_input, ChatMessageInput):
            changes["message"] = prompt
    if files is not None:
        changes["files"] = tuple(files)
    return replace(user_input, **changes) if changes else user_input
