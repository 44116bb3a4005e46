"""Conversation Schemas — Pydantic request models for the conversation/history API.

Invariants:
    - RoundRequest cross-validates fields per input type (file_change needs filename + diff)
    - Prompts are stripped; an empty chat prompt is rejected
    - to_user_input() is the only path from HTTP payload to a frozen UserInput

Design Decisions:
    - Literal type over str enum for RoundRequest.type: Pydantic validates natively
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from notecritic.core.conversation import LLMFile, UserInput
from notecritic.core.domain_types import FileType
from notecritic.core.user_input import (
    DEFAULT_FEEDBACK_TEMPLATE, chat_message, file_change, manual_feedback,
)


class FileAttachment(BaseModel):
    """File attached to a prompt; content is text or base64 supplied by the client."""
    type: FileType
    path: str = Field(min_length=1, max_length=1024)
    content: str | None = None
    mime_type: str | None = Field(None, alias="mimeType")
    name: str | None = None

    model_config = {"populate_by_name": True}

    def to_llm_file(self) -> LLMFile:
        return LLMFile(
            type=self.type, path=self.path, content=self.content,
            mime_type=self.mime_type, name=self.name,
        )


class RoundRequest(BaseModel):
    """Start a new conversation round."""
    type: Literal["chat_message", "file_change", "manual_feedback"] = "chat_message"
    prompt: str | None = Field(None, max_length=100_000)
    filename: str | None = None
    diff: str | None = None
    content: str | None = None
    files: list[FileAttachment] = Field(default_factory=list)

    @field_validator("prompt")
    @classmethod
    def strip_prompt(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None

    @model_validator(mode="after")
    def check_fields_for_type(self) -> "RoundRequest":
        if self.type == "chat_message" and not self.prompt:
            raise ValueError("chat_message requires a non-empty prompt")
        if self.type == "file_change" and (not self.filename or self.diff is None):
            raise ValueError("file_change requires filename and diff")
        if self.type == "manual_feedback" and (not self.filename or self.content is None):
            raise ValueError("manual_feedback requires filename and content")
        return self

    def to_user_input(self, feedback_template: str = DEFAULT_FEEDBACK_TEMPLATE) -> UserInput:
        files = [f.to_llm_file() for f in self.files]
        if self.type == "file_change":
            return file_change(self.filename, self.diff, feedback_template, files)
        if self.type == "manual_feedback":
            return manual_feedback(self.filename, self.content, self.prompt, files)
        return chat_message(self.prompt, files)


class RerunRequest(BaseModel):
    """Rerun a turn, optionally overriding its prompt and/or files."""
    prompt: str | None = Field(None, max_length=100_000)
    files: list[FileAttachment] | None = None

    def override_files(self) -> list[LLMFile] | None:
        if self.files is None:
            return None
        return [f.to_llm_file() for f in self.files]
