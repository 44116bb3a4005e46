"""Title Maker — short conversation title from the summarizer model, with a local fallback.

Invariants:
    - Returned title is never empty for a non-empty conversation and never exceeds 60 chars
    - Any stream error (missing key, transport, vendor) falls back to the first prompt
    - Uses the same StreamEngine as rounds: no thinking, no tools
"""

import logging

from notecritic.core.conversation import Turn, new_turn
from notecritic.core.domain_types import StreamEventType
from notecritic.core.user_input import chat_message
from notecritic.services.stream_engine import StreamEngine

logger = logging.getLogger(__name__)

MAX_TITLE_CHARS = 60
TITLE_SYSTEM_PROMPT = "You're an expert at coming up with titles for conversations"
TITLE_INSTRUCTIONS = """Please come up with a title for the following conversation in up to 30 characters.
The title should be a single sentence that captures the essence of the whole conversation.
The title should be in the same language as the conversation.

Please return only the title, no other text.
It's very important that the title is no more than 30 characters - any more will be truncated

"""


def render_transcript(turns: list[Turn]) -> str:
    blocks = []
    for turn in turns:
        assistant = "\n".join(s.content for s in turn.steps if s.content)
        blocks.append(f"User: {turn.user_input.prompt}\nAssistant: {assistant}")
    return "\n\n".join(blocks)


def fallback_title(turns: list[Turn]) -> str:
    if not turns:
        return ""
    prompt = " ".join(turns[0].user_input.prompt.split())
    if len(prompt) <= MAX_TITLE_CHARS:
        return prompt
    return prompt[: MAX_TITLE_CHARS - 3].rstrip() + "..."


def clean_title(raw: str) -> str:
    title = raw.strip().splitlines()[0] if raw.strip() else ""
    return title.strip().strip("\"'").strip()[:MAX_TITLE_CHARS]


class TitleMaker:
    """Asks the summarizer model for a title."""

    def __init__(self, engine: StreamEngine, model: str | None = None):
        self.engine = engine
        self.model = model or engine.settings.summarizer_model

    async def make_title(self, turns: list[Turn]) -> str:
        if not turns:
            return ""
        request = new_turn(chat_message(TITLE_INSTRUCTIONS + render_transcript(turns)))
        text = ""
        async for event in self.engine.stream(
            [request], system_prompt=TITLE_SYSTEM_PROMPT, model=self.model,
        ):
            if event.type == StreamEventType.CONTENT:
                text += event.content or ""
            elif event.type == StreamEventType.ERROR:
                logger.warning("Title generation failed: %s", event.content)
                return fallback_title(turns)
        return clean_title(text) or fallback_title(turns)
