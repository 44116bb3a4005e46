"""notecritic API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map NotesCriticError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and service graph initialized in lifespan, released on shutdown

Design Decisions:
    - create_app() factory: tests build an app with their own settings and services
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - SQLite creates its tables on startup; Postgres schema is owned by alembic
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notecritic import __version__
from notecritic.api.dependencies import build_services
from notecritic.api.error_handlers import register_error_handlers
from notecritic.api.routes import conversation_stream, health, history
from notecritic.config import Settings, get_settings
from notecritic.infrastructure.database import init_db
from notecritic.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_logging(settings.log_level, settings.log_format)
        manager = init_db(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        if settings.database_url.startswith("sqlite"):
            await manager.create_tables()
        app.state.services = build_services(settings)
        logger.info("notecritic API started")
        yield
        logger.info("notecritic API shutting down")
        await app.state.services.aclose()
        await manager.dispose()

    app = FastAPI(title="notecritic API", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health.router)
    app.include_router(conversation_stream.router)
    app.include_router(history.router)
    register_error_handlers(app)
    return app


app = create_app()
