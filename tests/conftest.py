"""Shared pytest fixtures."""

from collections.abc import AsyncIterator, Iterator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from sessiongate.app import App
from sessiongate.config import Config
from sessiongate.core.core import Core
from sessiongate.core.modules.user.models import User
from sessiongate.core.modules.user.store import MemoryUserStore
from sessiongate.web.server import create_fastapi_app

WINDOW_SECONDS = 30
ADMIN_PASSWORD = "admin-secret"


class FakeClock:
    """Manually advanced clock, callable like utils.now."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def config() -> Config:
    return Config(
        database_url="memory://",
        session_window_seconds=WINDOW_SECONDS,
        admin_username="admin",
        admin_password=ADMIN_PASSWORD,
        bcrypt_rounds=4,
        cors_origins=["*"],
    )


@pytest.fixture
def store() -> MemoryUserStore:
    return MemoryUserStore()


@pytest_asyncio.fixture
async def core(config: Config, store: MemoryUserStore, clock: FakeClock) -> AsyncIterator[Core]:
    """Started core backed by the in-memory store."""
    core = Core(config, store=store, clock=clock)
    async with core.lifespan():
        yield core


@pytest_asyncio.fixture
async def alice(core: Core) -> User:
    return await core.services.user.create_user("alice", "wonderland")


@pytest_asyncio.fixture
async def bob(core: Core) -> User:
    return await core.services.user.create_user("bob", "builder1")


@pytest.fixture
def client(config: Config, store: MemoryUserStore, clock: FakeClock) -> Iterator[TestClient]:
    """HTTP client for the full app; the lifespan bootstraps the admin account."""
    app = App(config, store=store, clock=clock)
    with TestClient(create_fastapi_app(app)) as test_client:
        yield test_client


def login(client: TestClient, username: str, password: str) -> dict[str, str]:
    """Log in and return the headers for protected requests."""
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    token = response.json()["data"]["sessionToken"]
    return {"x-username": username, "x-session-token": token}


@pytest.fixture
def admin_headers(client: TestClient) -> dict[str, str]:
    return login(client, "admin", ADMIN_PASSWORD)


@pytest.fixture
def alice_headers(client: TestClient, admin_headers: dict[str, str]) -> dict[str, str]:
    response = client.post(
        "/api/users", json={"username": "alice", "password": "wonderland"}, headers=admin_headers
    )
    assert response.status_code == 201, response.text
    return login(client, "alice", "wonderland")
