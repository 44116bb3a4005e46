"""Tool Dispatch — explicit routing from tool name to client-side handler.

Invariants:
    - Every tool → handler mapping is visible in one dict (no getattr magic, no auto-discovery)
    - Unknown tools return an UNKNOWN_TOOL error payload (never raises)
    - definitions() only lists tools that are both registered and enabled
    - Handler exceptions propagate: the orchestrator's error boundary records them as results

Design Decisions:
    - Server-side tools (web_search, mcp) are never dispatched here: the vendor runs them
"""

import logging
from typing import Any

import httpx

from notecritic.core.repository_protocols import ToolDefinition, ToolHandler
from notecritic.services.define_browser_tools import TOOLS_BROWSER
from notecritic.services.handle_browser import BrowserHandlers

logger = logging.getLogger(__name__)


class ToolDispatch:
    """Routes tool name → handler. Implements the ToolExecutor protocol."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        enabled_tools: list[str] | None = None,
    ):
        browser = BrowserHandlers(client)
        self.enabled_tools = enabled_tools

        self._definitions: dict[str, ToolDefinition] = {
            t.name: t for t in TOOLS_BROWSER
        }
        self._handlers: dict[str, ToolHandler] = {
            "web_browser": browser.web_browser,
        }

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        """Add a host-provided tool (e.g. note editing supplied by the embedding app)."""
        self._definitions[definition.name] = definition
        self._handlers[definition.name] = handler

    def definitions(self) -> list[ToolDefinition]:
        return [
            d for name, d in self._definitions.items()
            if self.enabled_tools is None or name in self.enabled_tools
        ]

    async def execute(self, name: str, input_data: Any) -> Any:
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Unknown tool requested", extra={"tool_name": name})
            return {
                "status": "error",
                "error_code": "UNKNOWN_TOOL",
                "message": f"Tool '{name}' does not exist.",
            }
        result = await handler(input_data)
        logger.info("Tool executed", extra={"tool_name": name})
        return result
