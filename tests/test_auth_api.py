from core import security
from core.config import settings
from core.gateway import get_directory
from main import app
from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, bearer, login


def test_init_creates_admin_once(client):
    first = client.post("/api/init")
    assert first.status_code == 200
    assert first.json()["user"]["role"] == "admin"
    assert "password_hash" not in first.json()["user"]

    second = client.post("/api/init")
    assert second.status_code == 400
    assert second.json()["error"] == "already_initialized"


def test_public_registration_is_disabled(client):
    response = client.post("/api/auth/register", json={"email": "x@y.com", "password": "pw1234"})
    assert response.status_code == 403
    assert response.json()["error"] == "registration_disabled"


def test_login_returns_token_and_summary(client, admin_token):
    response = client.post("/api/auth/login", json={"email": "ADMIN@example.com", "password": ADMIN_PASSWORD})
    body = response.json()

    assert response.status_code == 200
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == ADMIN_EMAIL
    assert "password_hash" not in body["user"]
    assert body["token"] != admin_token


def test_login_failure_is_generic(client, admin_token):
    wrong_password = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    unknown_email = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "nope"})

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["error"] == "invalid_credentials"


def test_me_requires_valid_bearer(client, admin_token):
    assert client.get("/api/auth/me", headers=bearer(admin_token)).json()["email"] == ADMIN_EMAIL

    for headers in ({}, bearer("forged"), {"Authorization": f"Basic {admin_token}"}):
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"


def test_session_expires_after_ttl(client, clock, admin_token):
    ttl = settings.session_expire_minutes * 60

    clock.advance(ttl)
    assert client.get("/api/auth/me", headers=bearer(admin_token)).status_code == 200

    clock.advance(1)
    assert client.get("/api/auth/me", headers=bearer(admin_token)).status_code == 401


def test_logout_revokes_token(client, admin_token):
    assert client.post("/api/auth/logout", headers=bearer(admin_token)).status_code == 200
    assert client.get("/api/auth/me", headers=bearer(admin_token)).status_code == 401


def test_change_password_rejects_short_password(client, admin_token):
    response = client.post(
        "/api/auth/change-password",
        json={"current_password": ADMIN_PASSWORD, "new_password": "12345"},
        headers=bearer(admin_token),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_change_password_rejects_wrong_current(client, admin_token):
    response = client.post(
        "/api/auth/change-password",
        json={"current_password": "not-it", "new_password": "brand-new"},
        headers=bearer(admin_token),
    )
    assert response.status_code == 401
    assert response.json()["error"] == "invalid_credentials"
    login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


def test_change_password_rotates_credential_and_other_sessions(client, admin_token):
    other = login(client, ADMIN_EMAIL, ADMIN_PASSWORD)

    response = client.post(
        "/api/auth/change-password",
        json={"current_password": ADMIN_PASSWORD, "new_password": "brand-new"},
        headers=bearer(admin_token),
    )
    assert response.status_code == 200

    assert client.get("/api/auth/me", headers=bearer(admin_token)).status_code == 200
    assert client.get("/api/auth/me", headers=bearer(other)).status_code == 401

    old = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert old.status_code == 401
    login(client, ADMIN_EMAIL, "brand-new")


def test_malformed_body_uses_error_envelope(client):
    response = client.post("/api/auth/login", json={"email": "a@b.com"})
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    assert "password" in response.json()["detail"]


def test_unknown_email_costs_the_same_digest_as_wrong_password(client, admin_token, monkeypatch):
    calls = []
    real_hash = security.hash_password

    def counting_hash(plain, salt, rounds=None):
        calls.append(plain)
        return real_hash(plain, salt, rounds)

    monkeypatch.setattr(security, "hash_password", counting_hash)

    client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    wrong_password = list(calls)
    calls.clear()
    client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "nope"})

    assert wrong_password == calls == ["nope"]


def test_unexpected_error_keeps_envelope_and_cors_headers(client):
    def broken_directory():
        raise RuntimeError("storage offline")

    app.dependency_overrides[get_directory] = broken_directory

    response = client.post(
        "/api/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
        headers={"Origin": "http://localhost:8000"},
    )

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "internal_error", "detail": "Internal error"}
    assert response.headers["access-control-allow-origin"] == "http://localhost:8000"
    assert "storage offline" not in response.text
