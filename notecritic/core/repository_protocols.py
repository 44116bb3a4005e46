"""Boundary Protocols — contracts between the engine core and its collaborators.

Invariants:
    - Core and services depend on these Protocols, never on concrete IO classes
    - Implementations (httpx transport, SQL history store, host tools) injected by the shell

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from notecritic.core.conversation import Turn


@dataclass(frozen=True)
class ProviderRequest:
    """Outbound vendor request: everything a Transport needs to open a stream."""
    url: str
    method: str = "POST"
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolDefinition:
    """Client-side tool offered to the model (JSON-schema parameters)."""
    name: str
    description: str
    parameters: dict[str, Any]


class Transport(Protocol):
    """Opens a vendor stream and yields raw text lines."""
    def open_stream(self, request: ProviderRequest) -> AsyncIterator[str]: ...


class ToolExecutor(Protocol):
    """Executes one completed tool call. May raise; the orchestrator records failures."""
    async def execute(self, name: str, input_data: Any) -> Any: ...


class HistoryRepository(Protocol):
    """Contract for conversation history persistence — implemented by the shell."""
    async def load_history(self, history_id: str) -> list[Turn] | None: ...
    async def save_history(self, history_id: str, turns: list[Turn]) -> str: ...
    async def list_history(self) -> list[dict]: ...


ToolHandler = Callable[[Any], Awaitable[Any]]
