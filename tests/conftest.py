"""
Pytest config.

Local imports like `import coach` rely on the repo root being on sys.path. When a global
`pytest` entrypoint is used that doesn't always happen during collection, so pin it here.

Shared fixtures build the API around an in-memory store and a fake LinkedIn provider, so
no test talks to the network.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

from fastapi.testclient import TestClient  # noqa: E402

from coach.api.server import create_app  # noqa: E402
from coach.auth.config import AuthConfig, load_auth_config  # noqa: E402
from coach.auth.models import TokenSet  # noqa: E402
from coach.auth.session import SessionManager  # noqa: E402
from coach.storage.memory_store import MemoryStore  # noqa: E402

TEST_SECRET = "test-secret-key-for-testing-purposes-only"


def make_config(**overrides: Any) -> AuthConfig:
    base: Dict[str, Any] = dict(
        linkedin_client_id="test-client-id",
        linkedin_client_secret="test-client-secret",
        linkedin_redirect_uri="http://testserver/api/auth/linkedin/callback",
        linkedin_scopes=["openid", "profile", "email", "w_member_social"],
        linkedin_authorization_url="https://www.linkedin.com/oauth/v2/authorization",
        linkedin_token_url="https://www.linkedin.com/oauth/v2/accessToken",
        linkedin_userinfo_url="https://api.linkedin.com/v2/userinfo",
        http_timeout_seconds=10.0,
        public_base_url="http://testserver",
        session_secret=TEST_SECRET,
        session_ttl_seconds=24 * 60 * 60,
        cookie_secure=False,
        default_return_path="/dashboard",
        login_failure_path="/auth",
    )
    base.update(overrides)
    return AuthConfig(**base)


class FakeLinkedIn:
    """Stands in for `LinkedInProvider`; records calls and can be told to fail."""

    name = "linkedin"

    def __init__(
        self,
        profile: Optional[Dict[str, Any]] = None,
        tokens: Optional[TokenSet] = None,
        exchange_error: Optional[Exception] = None,
        profile_error: Optional[Exception] = None,
    ):
        self.profile = profile or {
            "sub": "li-jane",
            "name": "Jane Doe",
            "email": "jane@example.com",
            "picture": "https://media.example.com/jane.png",
        }
        self.tokens = tokens or TokenSet(access_token="access-1", expires_in_seconds=3600, refresh_token="refresh-1")
        self.exchange_error = exchange_error
        self.profile_error = profile_error
        self.exchanged_codes: List[str] = []
        self.profile_tokens: List[str] = []

    def build_authorization_url(self, state: str) -> str:
        params = {"response_type": "code", "client_id": "test-client-id", "state": state}
        return f"https://www.linkedin.com/oauth/v2/authorization?{urlencode(params)}"

    def exchange_code(self, code: str) -> TokenSet:
        self.exchanged_codes.append(code)
        if self.exchange_error is not None:
            raise self.exchange_error
        return self.tokens

    def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        self.profile_tokens.append(access_token)
        if self.profile_error is not None:
            raise self.profile_error
        return dict(self.profile)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch):
    """No real LLM calls from unit tests; cached config never leaks between tests."""
    monkeypatch.setenv("LLM_MOCK", "1")
    load_auth_config.cache_clear()
    yield
    load_auth_config.cache_clear()


@pytest.fixture
def auth_cfg() -> AuthConfig:
    return make_config()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def sessions(auth_cfg: AuthConfig) -> SessionManager:
    return SessionManager(auth_cfg.session_ttl_seconds)


@pytest.fixture
def linkedin() -> FakeLinkedIn:
    return FakeLinkedIn()


@pytest.fixture
def app(auth_cfg, store, sessions, linkedin):
    return create_app(cfg=auth_cfg, store=store, sessions=sessions, providers={"linkedin": linkedin})


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def state_from_location(location: str) -> str:
    return parse_qs(urlparse(location).query)["state"][0]


def login_with_linkedin(client: TestClient, *, return_to: Optional[str] = "/dashboard", code: str = "auth-code-1"):
    """Drive start + callback the way a browser would; returns the callback response."""
    params = {"returnTo": return_to} if return_to is not None else {}
    start = client.get("/api/auth/linkedin", params=params, follow_redirects=False)
    assert start.status_code == 302
    state = state_from_location(start.headers["location"])
    return client.get(
        "/api/auth/linkedin/callback", params={"code": code, "state": state}, follow_redirects=False
    )


def login_local(client: TestClient, store: MemoryStore, username: str, password: str = "s3cret-pass"):
    from coach.auth.accounts import register_local_account

    if store.get_account_by_username(username) is None:
        register_local_account(store, username, password)
    r = client.post("/api/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return r
