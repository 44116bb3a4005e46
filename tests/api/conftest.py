"""API test fixtures — FastAPI app wired to MockTransport and the test database.

Invariants:
    - get_db overridden to the per-test SQLite session factory
    - db_manager patched so readiness checks hit the test engine
    - Vendor scripts are queued per test through the `vendor` fixture
"""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

import notecritic.infrastructure.database as db_module
from notecritic.api.dependencies import build_services
from notecritic.infrastructure.database import DatabaseSessionManager, get_db
from notecritic.main import create_app
from tests.services.mock_vendor import MockTransport, make_settings


@pytest.fixture
def vendor():
    return MockTransport([])


@pytest.fixture
async def app(test_engine, test_session_factory, vendor):
    settings = make_settings()
    app = create_app(settings)
    page_client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<p>page</p>")),
    )
    app.state.services = build_services(settings, transport=vendor, tool_client=page_client)

    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    original_manager = db_module.db_manager
    db_module.db_manager = DatabaseSessionManager(settings.database_url, engine=test_engine)

    yield app

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
    await app.state.services.aclose()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def orchestrator(app):
    return app.state.services.orchestrator
