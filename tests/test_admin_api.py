from store.configs import MASK_TOKEN
from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, bearer, login

SECRET = "sk_live_abcdef123456"


def _create_user(client, token, **overrides):
    payload = {"name": "Mod", "email": "m@x.com", "password": "secret1", "role": "moderator"}
    payload.update(overrides)
    return client.post("/api/users", json=payload, headers=bearer(token))


def test_create_user_never_returns_digest(client, admin_token):
    response = _create_user(client, admin_token, email=" M@X.com ")
    body = response.json()

    assert response.status_code == 200
    assert body["email"] == "m@x.com"
    assert body["role"] == "moderator"
    assert "password_hash" not in body and "password" not in body


def test_create_user_conflict_is_case_insensitive(client, admin_token):
    assert _create_user(client, admin_token, email="a@b.com").status_code == 200

    response = _create_user(client, admin_token, email="A@B.com")
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"


def test_create_user_rejects_unknown_role(client, admin_token):
    response = _create_user(client, admin_token, role="owner")
    assert response.status_code == 400


def test_list_users(client, admin_token):
    _create_user(client, admin_token)

    users = client.get("/api/users", headers=bearer(admin_token)).json()["users"]
    assert [u["email"] for u in users] == [ADMIN_EMAIL, "m@x.com"]
    assert all("password_hash" not in u for u in users)


def test_moderator_cannot_reach_admin_routes(client, moderator_token):
    for method, path in (
        ("get", "/api/users"),
        ("post", "/api/users"),
        ("get", "/api/config"),
        ("post", "/api/config/server"),
        ("delete", "/api/users/anything"),
    ):
        kwargs = {"json": {}} if method == "post" else {}
        response = getattr(client, method)(path, headers=bearer(moderator_token), **kwargs)
        assert response.status_code == 403, path
        assert response.json()["error"] == "admin_required"


def test_admin_cannot_delete_self(client, admin_token):
    me = client.get("/api/auth/me", headers=bearer(admin_token)).json()

    response = client.delete(f"/api/users/{me['id']}", headers=bearer(admin_token))
    assert response.status_code == 403
    assert response.json()["error"] == "self_deletion"
    login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


def test_delete_user_revokes_sessions(client, admin_token, moderator_token):
    mod = client.get("/api/auth/me", headers=bearer(moderator_token)).json()

    response = client.delete(f"/api/users/{mod['id']}", headers=bearer(admin_token))
    assert response.status_code == 200

    assert client.get("/api/auth/me", headers=bearer(moderator_token)).status_code == 401
    failed = client.post("/api/auth/login", json={"email": "m@x.com", "password": "secret1"})
    assert failed.status_code == 401


def test_recreated_email_does_not_revive_old_session(client, admin_token, moderator_token):
    mod = client.get("/api/auth/me", headers=bearer(moderator_token)).json()
    client.delete(f"/api/users/{mod['id']}", headers=bearer(admin_token))
    _create_user(client, admin_token)

    assert client.get("/api/auth/me", headers=bearer(moderator_token)).status_code == 401


def test_config_defaults_before_first_save(client, admin_token):
    body = client.get("/api/config", headers=bearer(admin_token)).json()
    assert body == {"server_config": None, "email_config": {"from_address": ""}}


def test_server_config_masking_round_trip(client, admin_token):
    saved = client.post(
        "/api/config/server",
        json={"url": "https://meet.example.com/", "api_key": "plugnmeet", "api_secret": SECRET},
        headers=bearer(admin_token),
    )
    assert saved.status_code == 200

    shown = client.get("/api/config", headers=bearer(admin_token)).json()["server_config"]
    assert shown == {
        "url": "https://meet.example.com",
        "api_key": "plugnmeet",
        "api_secret": MASK_TOKEN + "3456",
    }

    resubmit = client.post("/api/config/server", json=shown, headers=bearer(admin_token))
    assert resubmit.status_code == 200
    assert client.get("/api/config", headers=bearer(admin_token)).json()["server_config"] == shown


def test_server_config_rejects_masked_secret_on_first_save(client, admin_token):
    response = client.post(
        "/api/config/server",
        json={"url": "https://meet.example.com", "api_key": "k", "api_secret": MASK_TOKEN + "3456"},
        headers=bearer(admin_token),
    )
    assert response.status_code == 400
    assert client.get("/api/config", headers=bearer(admin_token)).json()["server_config"] is None


def test_server_config_rejects_bad_url(client, admin_token):
    response = client.post("/api/config/server", json={"url": "ftp://x"}, headers=bearer(admin_token))
    assert response.status_code == 400


def test_email_config_masks_and_validates_provider(client, admin_token):
    bad = client.post("/api/config/email", json={"provider": "pigeon"}, headers=bearer(admin_token))
    assert bad.status_code == 400

    client.post(
        "/api/config/email",
        json={"provider": "sendgrid", "from_address": "noreply@x.com", "api_key": "SG.abcdefgh"},
        headers=bearer(admin_token),
    )
    shown = client.get("/api/config", headers=bearer(admin_token)).json()["email_config"]
    assert shown == {"provider": "sendgrid", "from_address": "noreply@x.com", "api_key": MASK_TOKEN + "efgh"}


def test_admin_provisions_moderator_who_cannot_delete_self(client, admin_token):
    created = _create_user(client, admin_token, email="m@x.com", password="secret1")
    assert created.status_code == 200

    moderator_token = login(client, "m@x.com", "secret1")
    me = client.get("/api/auth/me", headers=bearer(moderator_token)).json()
    assert me["role"] == "moderator"

    response = client.delete(f"/api/users/{me['id']}", headers=bearer(moderator_token))
    assert response.status_code == 403
    login(client, "m@x.com", "secret1")
