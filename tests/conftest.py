from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from api import create_app
from models.db_storage import DBStorage
from models.refresh_token_store import RefreshTokenStore
from models.user import Role
from models.user_store import UserStore
from services.session_manager import SessionManager
from utils.security import Hasher, TokenCodec

TEST_SECRET = "test-secret-0123456789-abcdefghijklmnop"
PASSWORD = "Secret1!"


class FakeClock:
    """Manually advanced UTC clock. Starts a minute in the past so minted tokens decode now."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime.now(timezone.utc) - timedelta(minutes=1)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def _db_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def hasher() -> Hasher:
    return Hasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def storage(tmp_path: Path):
    db = DBStorage(_db_url(tmp_path), timeout=5)
    await db.reload()
    yield db
    await db.close()


@pytest.fixture
def users(storage: DBStorage) -> UserStore:
    return UserStore(storage)


@pytest.fixture
def records(storage: DBStorage) -> RefreshTokenStore:
    return RefreshTokenStore(storage)


@pytest.fixture
def manager(users, records, hasher, codec, clock) -> SessionManager:
    return SessionManager(users, records, hasher, codec, clock=clock)


@pytest.fixture
def app(tmp_path: Path):
    app = create_app(
        "testing",
        overrides={"DATABASE_URL": _db_url(tmp_path), "CREATE_TABLES": True, "JWT_SECRET": TEST_SECRET},
    )
    yield app
    asyncio.run(app.extensions["bookstore"].storage.close())


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_token(app, client) -> str:
    services = app.extensions["bookstore"]
    asyncio.run(
        services.sessions.register(name="Admin", email="admin@x.com", password=PASSWORD, role=Role.ADMIN)
    )
    r = client.post("/api/v1/auth/login", json={"email": "admin@x.com", "password": PASSWORD})
    assert r.status_code == 200, r.text
    return r.get_json()["token"]


@pytest.fixture
def user_token(client) -> str:
    r = client.post("/api/v1/auth/register", json={"name": "Ann", "email": "a@x.com", "password": PASSWORD})
    assert r.status_code == 201, r.text
    r = client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": PASSWORD})
    assert r.status_code == 200, r.text
    return r.get_json()["token"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
