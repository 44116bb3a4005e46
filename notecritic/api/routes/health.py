"""Health & Readiness Probes.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 unless the database answers AND the configured
      model resolves to a provider with an API key (readiness)
    - Readiness always reports every check, so a 503 names what is missing
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from notecritic import __version__
from notecritic.api.dependencies import AppServices, get_orchestrator, get_services
from notecritic.config import Settings
from notecritic.core.errors import NotesCriticError
from notecritic.infrastructure import database
from notecritic.providers.registry import resolve_config
from notecritic.services.turn_orchestrator import TurnOrchestrator

router = APIRouter(prefix="/api/v1/health", tags=["health"])


def _provider_check(settings: Settings) -> str:
    try:
        config = resolve_config(settings)
    except NotesCriticError:
        return "unsupported_model"
    return "configured" if config.api_key else "missing_api_key"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check(orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    return {
        "status": "healthy",
        "service": "notecritic-api",
        "version": __version__,
        "inferenceRunning": orchestrator.is_inference_running(),
    }


@router.get("/ready")
async def readiness_check(services: AppServices = Depends(get_services)):
    """Readiness: database connectivity plus a usable provider for the default model."""
    settings = services.engine.settings
    manager = database.db_manager
    db_ok = await manager.health_check() if manager else False
    checks = {
        "database": "healthy" if db_ok else "unavailable",
        "provider": _provider_check(settings),
    }
    content = {"status": "ready", "model": settings.model, "checks": checks}
    if not db_ok or checks["provider"] != "configured":
        content["status"] = "not_ready"
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=content)
    return content
