"""
Shared fixtures: both storage variants, an auth gateway and an HTTP client
against an app running on in-memory storage.
"""

import pytest
from httpx import AsyncClient, ASGITransport

from revenue_desk.config import Settings
from revenue_desk.main import create_app
from revenue_desk.schemas import OtaAccountCreate, UserCreate
from revenue_desk.services.auth_service import AuthGateway
from revenue_desk.storage.database import DatabaseStorage
from revenue_desk.storage.memory import MemoryStorage


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(params=["memory", "database"])
async def storage(request, tmp_path, anyio_backend):
    """Each storage test runs against both variants."""
    if request.param == "memory":
        backend = MemoryStorage()
    else:
        backend = DatabaseStorage.from_url(f"sqlite+aiosqlite:///{tmp_path / 'revenue_desk.db'}")
        await backend.init_schema()
    yield backend
    await backend.close()


@pytest.fixture
async def user(storage):
    return await storage.create_user(UserCreate(username="manager1", password="x", role="manager"))


@pytest.fixture
async def account(storage, user):
    return await storage.create_ota_account(OtaAccountCreate(
        user_id=user.id, name="携程", url="https://hotels.ctrip.com", username="hotel", password="secret",
    ))


@pytest.fixture
def gateway(storage):
    return AuthGateway(storage)


@pytest.fixture
def app_settings():
    return Settings(
        environment="development",
        storage_backend="memory",
        verify_passwords=True,
        seed_on_startup=False,
        encryption_key="",
        cors_origins="http://localhost:5173",
    )


@pytest.fixture
async def app(app_settings, anyio_backend):
    application = create_app(app_settings)
    # ASGITransport does not send lifespan events
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

