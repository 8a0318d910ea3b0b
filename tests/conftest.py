import base64
import os
import sys
from pathlib import Path

BACKEND = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND) not in sys.path:
    sys.path.insert(0, str(BACKEND))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MASTER_ENCRYPTION_KEY", base64.b64encode(b"k" * 32).decode("ascii"))
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1000")
os.environ.setdefault("FIRST_ADMIN_EMAIL", "admin@example.com")
os.environ.setdefault("FIRST_ADMIN_PASSWORD", "admin123")

import httpx
import pytest
from fastapi.testclient import TestClient

import models.kv_entry  # noqa: F401
from database import Base, SessionLocal, engine
from core.gateway import get_clock, get_upstream_transport
from mail.router import get_mail_transport
from main import app
from store.kv import KeyValueStore

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin123"


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Upstream:
    """Records outbound requests and answers with ``self.reply``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.reply = lambda request: httpx.Response(200, json={"status": True, "msg": "success"})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.reply(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def db():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv(db, clock):
    return KeyValueStore(db, clock=clock)


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def mailer():
    return Upstream()


@pytest.fixture
def client(db, clock, upstream, mailer):
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_upstream_transport] = lambda: upstream.transport
    app.dependency_overrides[get_mail_transport] = lambda: mailer.transport
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def login(client: TestClient, email: str, password: str) -> str:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token(client):
    assert client.post("/api/init").status_code == 200
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def moderator_token(client, admin_token):
    response = client.post(
        "/api/users",
        json={"name": "Mod", "email": "m@x.com", "password": "secret1", "role": "moderator"},
        headers=bearer(admin_token),
    )
    assert response.status_code == 200, response.text
    return login(client, "m@x.com", "secret1")
