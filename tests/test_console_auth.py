from __future__ import annotations

from coach.api.server import _is_public_path
from conftest import login_local, login_with_linkedin


def test_healthz_is_public(client) -> None:
    """Health check endpoint should be accessible without authentication."""
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_auth_user_requires_auth(client) -> None:
    r = client.get("/api/auth/user")
    assert r.status_code == 401
    assert r.json() == {"message": "Not authenticated"}


def test_auth_user_no_www_authenticate_header(client) -> None:
    """Auth endpoints should not set WWW-Authenticate to avoid browser auth popups."""
    r = client.get("/api/auth/user")
    assert r.status_code == 401
    assert "www-authenticate" not in {k.lower() for k in r.headers.keys()}


def test_garbage_cookie_is_unauthenticated(client) -> None:
    r = client.get("/api/auth/user", headers={"Cookie": "auth-session=not-a-signed-value"})
    assert r.status_code == 401


def test_auth_mode_returns_config(client) -> None:
    """Auth mode endpoint should return configuration without authentication."""
    r = client.get("/api/auth/mode")
    assert r.status_code == 200
    body = r.json()
    assert body.get("ok") is True
    assert body.get("localEnabled") is True
    assert body.get("providers") == [{"name": "linkedin", "loginUrl": "/api/auth/linkedin"}]


def test_public_path_rules() -> None:
    assert _is_public_path("/healthz")
    assert _is_public_path("/api/auth/login")
    assert _is_public_path("/api/auth/linkedin")
    assert _is_public_path("/api/auth/linkedin/callback")
    assert _is_public_path("/auth/linkedin/callback")
    assert not _is_public_path("/api/auth/user")
    assert not _is_public_path("/api/auth/linkedin/profile")
    assert not _is_public_path("/api/posts")
    assert not _is_public_path("/api/profile")


def test_register_then_login(client, store) -> None:
    r = client.post("/api/auth/register", json={"username": "alice", "password": "pw-123456", "email": "a@example.com"})
    assert r.status_code == 201
    assert r.json() == {"message": "User created successfully"}

    r = client.post("/api/auth/login", json={"username": "alice", "password": "pw-123456"})
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Logged in successfully"
    assert body["user"]["username"] == "alice"
    assert body["user"]["email"] == "a@example.com"
    assert "password" not in body["user"]
    assert "auth-session" in r.cookies

    assert client.get("/api/auth/user").json()["user"]["username"] == "alice"


def test_register_duplicate_username(client) -> None:
    client.post("/api/auth/register", json={"username": "alice", "password": "pw"})
    r = client.post("/api/auth/register", json={"username": "alice", "password": "pw2"})
    assert r.status_code == 400
    assert r.json() == {"message": "Username already exists"}


def test_register_validation_error(client) -> None:
    r = client.post("/api/auth/register", json={"username": "alice"})
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid input data"


def test_login_missing_fields(client) -> None:
    r = client.post("/api/auth/login", json={"username": "alice"})
    assert r.status_code == 400
    assert r.json() == {"message": "Missing username or password"}


def test_login_wrong_password(client, store) -> None:
    login_local(client, store, "alice", "right-password")
    client.post("/api/auth/logout")
    r = client.post("/api/auth/login", json={"username": "alice", "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json() == {"message": "Invalid username or password"}


def test_login_unknown_user_same_message(client) -> None:
    r = client.post("/api/auth/login", json={"username": "ghost", "password": "whatever"})
    assert r.status_code == 401
    assert r.json() == {"message": "Invalid username or password"}


def test_login_rate_limited_after_repeated_failures(client, store) -> None:
    login_local(client, store, "alice", "right-password")
    for _ in range(5):
        r = client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
        assert r.status_code == 401
    r = client.post("/api/auth/login", json={"username": "alice", "password": "right-password"})
    assert r.status_code == 429


def test_linkedin_account_cannot_use_password_login(client, store) -> None:
    login_with_linkedin(client)
    client.post("/api/auth/logout")
    r = client.post("/api/auth/login", json={"username": "li-jane", "password": "anything"})
    assert r.status_code == 401


def test_logout_clears_cookie(client, store) -> None:
    login_local(client, store, "alice")
    r = client.post("/api/auth/logout")
    assert r.status_code == 200
    set_cookie = r.headers.get("set-cookie", "")
    assert "auth-session=" in set_cookie
    assert "Max-Age=0" in set_cookie
    assert client.get("/api/auth/user").status_code == 401


def test_session_cookie_attributes(client, store) -> None:
    r = login_local(client, store, "alice")
    set_cookie = r.headers["set-cookie"]
    assert "HttpOnly" in set_cookie
    assert "SameSite=lax" in set_cookie or "samesite=lax" in set_cookie.lower()
    assert "Path=/" in set_cookie
