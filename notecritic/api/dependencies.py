"""API Dependencies — process-wide service graph and FastAPI accessors.

Invariants:
    - One TurnOrchestrator per process: the Conversation lives in memory between requests
    - Services built in lifespan startup, closed on shutdown (HTTP clients released)
    - HistoryStore is per-request (needs the request's DB session)

Design Decisions:
    - app.state over module globals: tests build an app with their own transport/settings
"""

from dataclasses import dataclass

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from notecritic.config import Settings
from notecritic.core.repository_protocols import Transport
from notecritic.infrastructure.database import get_db
from notecritic.infrastructure.http_transport import HttpTransport
from notecritic.services.history_store import HistoryStore
from notecritic.services.title_maker import TitleMaker
from notecritic.services.stream_engine import StreamEngine
from notecritic.services.tool_dispatch import ToolDispatch
from notecritic.services.turn_orchestrator import TurnOrchestrator


@dataclass
class AppServices:
    settings: Settings
    transport: Transport
    engine: StreamEngine
    tool_dispatch: ToolDispatch
    orchestrator: TurnOrchestrator
    title_maker: TitleMaker
    tool_client: httpx.AsyncClient

    async def aclose(self) -> None:
        self.orchestrator.cancel_inference()
        await self.tool_client.aclose()
        aclose = getattr(self.transport, "aclose", None)
        if aclose is not None:
            await aclose()


def build_services(
    settings: Settings,
    transport: Transport | None = None,
    tool_client: httpx.AsyncClient | None = None,
) -> AppServices:
    transport = transport or HttpTransport(
        max_retries=settings.transport_max_retries,
        base_delay_ms=settings.transport_base_delay_ms,
        max_delay_ms=settings.transport_max_delay_ms,
        timeout_seconds=settings.transport_timeout_seconds,
    )
    tool_client = tool_client or httpx.AsyncClient(timeout=30.0)
    engine = StreamEngine(transport, settings)
    dispatch = ToolDispatch(tool_client, enabled_tools=settings.enabled_tools)
    orchestrator = TurnOrchestrator(
        engine,
        dispatch,
        tools=dispatch.definitions(),
        system_prompt=settings.system_prompt,
        thinking=settings.thinking_enabled,
        max_steps=settings.max_steps,
    )
    return AppServices(
        settings=settings,
        transport=transport,
        engine=engine,
        tool_dispatch=dispatch,
        orchestrator=orchestrator,
        title_maker=TitleMaker(engine, settings.summarizer_model),
        tool_client=tool_client,
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_orchestrator(request: Request) -> TurnOrchestrator:
    return get_services(request).orchestrator


def get_history_store(
    request: Request, db: AsyncSession = Depends(get_db),
) -> HistoryStore:
    return HistoryStore(db, get_services(request).title_maker)
