"""Anthropic Formatter — tests for Turn history → Messages API transcript.

Invariants:
    - Files attach as document/image blocks after the prompt text
    - Empty Steps contribute nothing
    - Server-executed and unanswered tool calls are never echoed
    - Thinking echoed only with a signature
"""

from notecritic.core.conversation import LLMFile, Step, ToolCall, Turn
from notecritic.core.domain_types import FileType
from notecritic.core.user_input import chat_message
from notecritic.providers.anthropic_format import AnthropicFormatter, format_file


def _format(steps, files=()):
    turn = Turn(user_input=chat_message("Hi", files), steps=steps)
    return AnthropicFormatter().format_turns([turn])


def test_text_file_becomes_document():
    block = format_file(LLMFile(type=FileType.TEXT, path="notes/a.md", content="body"))
    assert block == {
        "type": "document",
        "source": {"type": "text", "data": "body", "media_type": "text/plain"},
        "title": "a.md",
    }


def test_image_file_becomes_image_block():
    block = format_file(LLMFile(type=FileType.IMAGE, path="a.png", content="QUJD", mime_type="image/png"))
    assert block["type"] == "image"
    assert block["source"] == {"type": "base64", "media_type": "image/png", "data": "QUJD"}


def test_files_follow_prompt_text():
    [user] = _format([Step()], files=[LLMFile(type=FileType.PDF, path="d.pdf", content="JVBE")])
    assert user["content"][0] == {"type": "text", "text": "Hi"}
    assert user["content"][1]["source"]["media_type"] == "application/pdf"


def test_empty_step_is_skipped():
    assert len(_format([Step(content="Hello"), Step()])) == 2


def test_thinking_without_signature_not_echoed():
    [_, assistant] = _format([Step(thinking="hmm", content="Hello")])
    assert [b["type"] for b in assistant["content"]] == ["text"]


def test_thinking_with_signature_echoed_first():
    [_, assistant] = _format([Step(thinking="hmm", content="Hello", signature="sig")])
    assert assistant["content"][0] == {"type": "thinking", "thinking": "hmm", "signature": "sig"}


def test_server_and_unanswered_calls_not_echoed():
    step = Step(content="Searching")
    step.tool_calls["s1"] = ToolCall(id="s1", name="web_search", input={}, is_server_executed=True)
    step.tool_calls["c1"] = ToolCall(id="c1", name="web_browser", input={"url": "u"})
    messages = _format([step])
    assert len(messages) == 2
    assert [b["type"] for b in messages[1]["content"]] == ["text"]


def test_string_result_sent_verbatim():
    step = Step()
    step.tool_calls["c1"] = ToolCall(id="c1", name="t", input={}, result="plain")
    messages = _format([step])
    assert messages[2]["content"][0]["content"] == "plain"
