"""Tool-Call Assembler — rebuild tool calls from interleaved start/delta/complete signals.

Invariants:
    - Entries keyed by vendor block index; no ordering assumed across indices
    - delta()/complete() on an unknown index are no-ops (never raise)
    - complete() removes the entry on every path, including parse failure
    - Empty fragment buffer → initial_input used verbatim

Design Decisions:
    - Pure, synchronous, one instance per stream: state dies with the stream
    - Parse failure raises ToolParseError so the caller can scope the error event
"""

import json
from dataclasses import dataclass, field
from typing import Any

from notecritic.core.conversation import ToolCall
from notecritic.core.errors import ToolParseError


@dataclass
class _PendingToolCall:
    id: str
    name: str
    initial_input: Any
    is_server_executed: bool
    fragments: list[str] = field(default_factory=list)


class ToolCallAssembler:
    """Accumulates fragmented JSON tool arguments per block index."""

    def __init__(self):
        self._pending: dict[int, _PendingToolCall] = {}

    def __contains__(self, index: int) -> bool:
        return index in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def start(
        self, index: int, id: str, name: str, initial_input: Any = None,
        is_server_executed: bool = False,
    ) -> None:
        self._pending[index] = _PendingToolCall(
            id=id, name=name, initial_input=initial_input,
            is_server_executed=is_server_executed,
        )

    def delta(self, index: int, fragment: str) -> None:
        entry = self._pending.get(index)
        if entry is not None and fragment:
            entry.fragments.append(fragment)

    def complete(self, index: int) -> ToolCall | None:
        entry = self._pending.pop(index, None)
        if entry is None:
            return None
        buffer = "".join(entry.fragments)
        if buffer:
            try:
                parsed = json.loads(buffer)
            except json.JSONDecodeError as e:
                raise ToolParseError(entry.id, entry.name, str(e)) from e
        else:
            parsed = entry.initial_input
        return ToolCall(
            id=entry.id, name=entry.name, input=parsed,
            is_server_executed=entry.is_server_executed,
        )
