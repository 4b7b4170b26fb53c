from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol
from urllib.parse import urlencode

import requests

from coach.auth.config import AuthConfig
from coach.auth.errors import ProviderRejected, ProviderUnreachable
from coach.auth.models import TokenSet

logger = logging.getLogger(__name__)


class AuthProvider(Protocol):
    """
    OAuth identity provider seam.

    One instance per process, handed to the app at construction time so tests can swap in
    a double instead of patching module globals.
    """

    name: str

    def build_authorization_url(self, state: str) -> str:
        """Return the provider URL the browser should be redirected to."""

    def exchange_code(self, code: str) -> TokenSet:
        """Trade a single-use authorization code for tokens."""

    def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        """Return the raw provider profile payload for `access_token`."""


def _body_text(r: requests.Response) -> str:
    try:
        return r.text or ""
    except Exception:
        return ""


def _json_object(r: requests.Response, *, what: str) -> Dict[str, Any]:
    try:
        data = r.json()
    except ValueError:
        raise ProviderRejected(f"Invalid {what} response (not JSON)", detail=_body_text(r), status_code=r.status_code)
    if not isinstance(data, dict):
        raise ProviderRejected(f"Invalid {what} response", detail=_body_text(r), status_code=r.status_code)
    return data


class LinkedInProvider:
    """LinkedIn OAuth 2.0 / OpenID Connect client."""

    name = "linkedin"

    def __init__(self, cfg: AuthConfig, *, session: Optional[requests.Session] = None):
        self._cfg = cfg
        self._http = session or requests.Session()

    @property
    def redirect_uri(self) -> str:
        if not self._cfg.linkedin_redirect_uri:
            raise ValueError("LinkedIn redirect URI not configured (LINKEDIN_REDIRECT_URI or AUTH_PUBLIC_BASE_URL)")
        return self._cfg.linkedin_redirect_uri

    def build_authorization_url(self, state: str) -> str:
        if not self._cfg.linkedin_client_id:
            raise ValueError("LinkedIn client ID not configured")
        params = {
            "response_type": "code",
            "client_id": self._cfg.linkedin_client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self._cfg.linkedin_scopes),
            "state": state,
        }
        return f"{self._cfg.linkedin_authorization_url}?{urlencode(params)}"

    def exchange_code(self, code: str) -> TokenSet:
        if not self._cfg.linkedin_client_id or not self._cfg.linkedin_client_secret:
            raise ValueError("LinkedIn client ID/secret not configured")

        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self._cfg.linkedin_client_id,
            "client_secret": self._cfg.linkedin_client_secret,
            "redirect_uri": self.redirect_uri,
        }
        try:
            r = self._http.post(
                self._cfg.linkedin_token_url,
                data=payload,
                headers={"Accept": "application/json"},
                timeout=self._cfg.http_timeout_seconds,
            )
        except requests.Timeout as e:
            raise ProviderUnreachable("Token exchange timed out", detail=str(e))
        except requests.RequestException as e:
            raise ProviderUnreachable("Token exchange failed (network)", detail=str(e))

        if r.status_code >= 400:
            raise ProviderRejected(
                f"Token exchange failed (status={r.status_code})", detail=_body_text(r), status_code=r.status_code
            )

        data = _json_object(r, what="token")
        access_token = str(data.get("access_token") or "").strip()
        if not access_token:
            raise ProviderRejected("Token response missing access_token", detail=_body_text(r), status_code=r.status_code)

        try:
            expires_in = int(data.get("expires_in") or 0)
        except (TypeError, ValueError):
            expires_in = 0
        refresh_token = str(data.get("refresh_token") or "").strip() or None
        return TokenSet(access_token=access_token, expires_in_seconds=expires_in, refresh_token=refresh_token)

    def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        try:
            r = self._http.get(
                self._cfg.linkedin_userinfo_url,
                headers={"Authorization": f"Bearer {access_token}", "Cache-Control": "no-cache"},
                timeout=self._cfg.http_timeout_seconds,
            )
        except requests.Timeout as e:
            raise ProviderUnreachable("Profile fetch timed out", detail=str(e))
        except requests.RequestException as e:
            raise ProviderUnreachable("Profile fetch failed (network)", detail=str(e))

        if r.status_code >= 400:
            raise ProviderRejected(
                f"Profile fetch failed (status={r.status_code})", detail=_body_text(r), status_code=r.status_code
            )
        return _json_object(r, what="userinfo")


def build_providers(cfg: AuthConfig) -> Dict[str, AuthProvider]:
    """Providers enabled by configuration, keyed by their URL name."""
    providers: Dict[str, AuthProvider] = {}
    if cfg.linkedin_enabled:
        cid = cfg.linkedin_client_id or ""
        logger.info("LinkedIn login enabled (client_id=%s..., redirect_uri=%s)", cid[:6], cfg.linkedin_redirect_uri)
        providers["linkedin"] = LinkedInProvider(cfg)
    return providers
