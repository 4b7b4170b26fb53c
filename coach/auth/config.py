"""
Authentication configuration for the Growth Coach API.

Design goals:
- One OAuth provider today (LinkedIn); the provider seam stays explicit.
- Server-side sessions behind an HttpOnly, SameSite=Lax cookie.
- Local username/password login remains available for demos.
"""
from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

logger = logging.getLogger(__name__)

LINKEDIN_AUTHORIZATION_URL = "https://www.linkedin.com/oauth/v2/authorization"
LINKEDIN_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
LINKEDIN_USERINFO_URL = "https://api.linkedin.com/v2/userinfo"
DEFAULT_SCOPES = ["openid", "profile", "email", "w_member_social"]


@dataclass(frozen=True)
class AuthConfig:
    # LinkedIn OAuth
    linkedin_client_id: Optional[str]
    linkedin_client_secret: Optional[str]
    linkedin_redirect_uri: Optional[str]
    linkedin_scopes: List[str]
    linkedin_authorization_url: str
    linkedin_token_url: str
    linkedin_userinfo_url: str
    http_timeout_seconds: float

    # Session configuration
    public_base_url: Optional[str]
    session_secret: str
    session_ttl_seconds: int
    cookie_secure: bool

    # Redirect targets
    default_return_path: str
    login_failure_path: str

    @property
    def linkedin_enabled(self) -> bool:
        """LinkedIn login is enabled once client credentials are configured."""
        return bool(self.linkedin_client_id and self.linkedin_client_secret)

    @property
    def local_enabled(self) -> bool:
        return True


def _parse_scopes(value: str) -> List[str]:
    items = [x.strip() for x in (value or "").replace(",", " ").split()]
    return [x for x in items if x] or list(DEFAULT_SCOPES)


def _env(name: str) -> Optional[str]:
    return (os.getenv(name, "") or "").strip() or None


@lru_cache(maxsize=1)
def load_auth_config() -> AuthConfig:
    """
    Load authentication configuration from environment variables.

    LinkedIn login is enabled if LINKEDIN_CLIENT_ID and LINKEDIN_CLIENT_SECRET are set.
    Local login is always enabled.
    """
    public_base_url = _env("AUTH_PUBLIC_BASE_URL")
    if public_base_url:
        public_base_url = public_base_url.rstrip("/")

    cookie_secure_env = (os.getenv("AUTH_COOKIE_SECURE", "") or "").strip().lower()
    if cookie_secure_env in ("1", "true", "yes", "on"):
        cookie_secure = True
    elif cookie_secure_env in ("0", "false", "no", "off"):
        cookie_secure = False
    else:
        # Default: secure cookies when served over https; otherwise allow local dev.
        cookie_secure = True if (public_base_url or "").startswith("https://") else False

    ttl = int(float((os.getenv("AUTH_SESSION_TTL_SECONDS", "") or "86400").strip() or "86400"))  # 24h default
    if ttl <= 60:
        ttl = 60

    try:
        timeout = float((os.getenv("LINKEDIN_HTTP_TIMEOUT_SECONDS", "") or "10").strip() or "10")
    except ValueError:
        timeout = 10.0
    timeout = max(1.0, min(timeout, 60.0))

    session_secret = _env("AUTH_SESSION_SECRET")
    if not session_secret:
        # Sessions will not survive a restart; fine for dev, not for production.
        logger.warning("AUTH_SESSION_SECRET not set; using a generated per-process secret")
        session_secret = secrets.token_hex(32)

    redirect_uri = _env("LINKEDIN_REDIRECT_URI")
    if not redirect_uri and public_base_url:
        redirect_uri = f"{public_base_url}/api/auth/linkedin/callback"

    return AuthConfig(
        linkedin_client_id=_env("LINKEDIN_CLIENT_ID"),
        linkedin_client_secret=_env("LINKEDIN_CLIENT_SECRET"),
        linkedin_redirect_uri=redirect_uri,
        linkedin_scopes=_parse_scopes(os.getenv("LINKEDIN_SCOPES", "")),
        linkedin_authorization_url=_env("LINKEDIN_AUTHORIZATION_URL") or LINKEDIN_AUTHORIZATION_URL,
        linkedin_token_url=_env("LINKEDIN_TOKEN_URL") or LINKEDIN_TOKEN_URL,
        linkedin_userinfo_url=_env("LINKEDIN_USERINFO_URL") or LINKEDIN_USERINFO_URL,
        http_timeout_seconds=timeout,
        public_base_url=public_base_url,
        session_secret=session_secret,
        session_ttl_seconds=ttl,
        cookie_secure=cookie_secure,
        default_return_path=_env("AUTH_DEFAULT_RETURN_PATH") or "/dashboard",
        login_failure_path=_env("AUTH_LOGIN_FAILURE_PATH") or "/auth",
    )
