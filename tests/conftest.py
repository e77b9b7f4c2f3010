"""
Shared fixtures: a fake privilege backend and services wired against it.
"""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from navguard.core.config import Settings
from navguard.core.dependencies import Services, build_services
from navguard.infrastructure.backend.client import BackendClient, RetryPolicy
from navguard.main import create_app

from tests.fixtures.privileges import no_sleep, seed_roles
from tests.mocks.backend import FakePrivilegeBackend


@pytest_asyncio.fixture
async def fake_backend() -> AsyncGenerator[FakePrivilegeBackend, None]:
    """Running fake backend seeded with the accountant and clerk roles."""
    backend = FakePrivilegeBackend()
    seed_roles(backend)
    await backend.start()
    yield backend
    await backend.close()


@pytest.fixture
def test_settings(fake_backend: FakePrivilegeBackend) -> Settings:
    return Settings(
        BACKEND_API_URL=str(fake_backend.server.make_url("")),
        SESSION_BACKEND="memory",
        PAGE_COMPONENTS={
            "file/tax": "TaxPage",
            "file/tax/export": "TaxExportPage",
            "reports": "ReportsPage",
        },
    )


@pytest.fixture
def backend_client(test_settings: Settings) -> BackendClient:
    return BackendClient(
        test_settings.BACKEND_API_URL,
        timeout_seconds=5,
        retry_policy=RetryPolicy(max_retries=2, backoff_seconds=0.01),
        sleep=no_sleep,
    )


@pytest.fixture
def services(test_settings: Settings, backend_client: BackendClient) -> Services:
    return build_services(test_settings, client=backend_client)


@pytest_asyncio.fixture
async def client(services: Services) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to an app wired against the fake backend."""
    app = create_app(services)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
