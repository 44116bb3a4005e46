"""Token Tracker — per-turn and per-process token usage totals.

Invariants:
    - Totals only grow until clear_turn()/reset(); usage is never subtracted
    - turn_count counts distinct turn ids ever recorded
"""

import logging
import time
from dataclasses import dataclass, field, replace

from notecritic.providers.base import TokenUsage

logger = logging.getLogger(__name__)


@dataclass
class UsageTotals:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0
    last_update_time: float = field(default_factory=time.time)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def add(self, usage: TokenUsage) -> None:
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.cache_creation_input_tokens += usage.cache_creation_input_tokens
        self.cache_read_input_tokens += usage.cache_read_input_tokens
        self.last_update_time = time.time()

    def to_dict(self) -> dict:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "cache_creation_input_tokens": self.cache_creation_input_tokens,
            "cache_read_input_tokens": self.cache_read_input_tokens,
        }


class TokenTracker:
    """Accumulates TokenUsage reported by the stream engine."""

    def __init__(self):
        self._turns: dict[str, UsageTotals] = {}
        self._session = UsageTotals()
        self.turn_count = 0

    def add_usage(self, turn_id: str, usage: TokenUsage) -> None:
        totals = self._turns.get(turn_id)
        if totals is None:
            totals = self._turns[turn_id] = UsageTotals()
            self.turn_count += 1
        totals.add(usage)
        self._session.add(usage)
        logger.debug(
            "Token usage recorded",
            extra={
                "turn_id": turn_id,
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
            },
        )

    def get_turn_tokens(self, turn_id: str) -> UsageTotals | None:
        totals = self._turns.get(turn_id)
        return replace(totals) if totals is not None else None

    def get_session_tokens(self) -> UsageTotals:
        return replace(self._session)

    def clear_turn(self, turn_id: str) -> None:
        self._turns.pop(turn_id, None)

    def reset(self) -> None:
        self._turns.clear()
        self._session = UsageTotals()
        self.turn_count = 0
