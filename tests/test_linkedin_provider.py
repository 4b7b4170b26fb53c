"""
Unit tests for the LinkedIn provider with a mocked HTTP session.
"""

from __future__ import annotations

from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from coach.auth.errors import ProviderRejected, ProviderUnreachable
from coach.auth.provider import LinkedInProvider, build_providers
from conftest import make_config


def _response(status: int, *, json_body=None, text: str = "") -> MagicMock:
    r = MagicMock()
    r.status_code = status
    r.text = text
    if json_body is None:
        r.json.side_effect = ValueError("no json")
    else:
        r.json.return_value = json_body
    return r


def test_authorization_url_carries_client_scopes_and_state() -> None:
    provider = LinkedInProvider(make_config(), session=MagicMock())
    url = provider.build_authorization_url("signed-state")

    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://www.linkedin.com/oauth/v2/authorization"
    q = parse_qs(parsed.query)
    assert q["response_type"] == ["code"]
    assert q["client_id"] == ["test-client-id"]
    assert q["redirect_uri"] == ["http://testserver/api/auth/linkedin/callback"]
    assert q["scope"] == ["openid profile email w_member_social"]
    assert q["state"] == ["signed-state"]


def test_authorization_url_requires_redirect_uri() -> None:
    provider = LinkedInProvider(make_config(linkedin_redirect_uri=None), session=MagicMock())
    with pytest.raises(ValueError, match="redirect URI"):
        provider.build_authorization_url("s")


def test_exchange_code_posts_form_and_returns_tokens() -> None:
    http = MagicMock()
    http.post.return_value = _response(
        200, json_body={"access_token": "AT", "expires_in": 5184000, "refresh_token": "RT"}
    )
    provider = LinkedInProvider(make_config(), session=http)

    tokens = provider.exchange_code("the-code")

    assert tokens.access_token == "AT"
    assert tokens.refresh_token == "RT"
    assert tokens.expires_in_seconds == 5184000
    args, kwargs = http.post.call_args
    assert args[0] == "https://www.linkedin.com/oauth/v2/accessToken"
    assert kwargs["data"]["grant_type"] == "authorization_code"
    assert kwargs["data"]["code"] == "the-code"
    assert kwargs["data"]["client_secret"] == "test-client-secret"
    assert kwargs["timeout"] == 10.0


def test_exchange_code_without_refresh_token() -> None:
    http = MagicMock()
    http.post.return_value = _response(200, json_body={"access_token": "AT", "expires_in": 60})
    tokens = LinkedInProvider(make_config(), session=http).exchange_code("c")
    assert tokens.refresh_token is None


def test_exchange_code_rejected_keeps_provider_body() -> None:
    http = MagicMock()
    http.post.return_value = _response(
        400, text='{"error":"invalid_grant","error_description":"code already used"}'
    )
    with pytest.raises(ProviderRejected) as exc:
        LinkedInProvider(make_config(), session=http).exchange_code("used-code")
    assert exc.value.status_code == 400
    assert "invalid_grant" in exc.value.detail


def test_exchange_code_missing_access_token_is_rejected() -> None:
    http = MagicMock()
    http.post.return_value = _response(200, json_body={"expires_in": 60})
    with pytest.raises(ProviderRejected, match="access_token"):
        LinkedInProvider(make_config(), session=http).exchange_code("c")


def test_exchange_code_non_json_is_rejected() -> None:
    http = MagicMock()
    http.post.return_value = _response(200, text="<html>oops</html>")
    with pytest.raises(ProviderRejected):
        LinkedInProvider(make_config(), session=http).exchange_code("c")


def test_exchange_code_timeout_is_unreachable() -> None:
    http = MagicMock()
    http.post.side_effect = requests.Timeout("read timed out")
    with pytest.raises(ProviderUnreachable, match="timed out"):
        LinkedInProvider(make_config(), session=http).exchange_code("c")


def test_exchange_code_connection_error_is_unreachable() -> None:
    http = MagicMock()
    http.post.side_effect = requests.ConnectionError("dns failure")
    with pytest.raises(ProviderUnreachable):
        LinkedInProvider(make_config(), session=http).exchange_code("c")


def test_fetch_profile_sends_bearer_token() -> None:
    http = MagicMock()
    http.get.return_value = _response(200, json_body={"sub": "abc", "name": "Jane Doe"})
    profile = LinkedInProvider(make_config(), session=http).fetch_profile("AT")

    assert profile == {"sub": "abc", "name": "Jane Doe"}
    args, kwargs = http.get.call_args
    assert args[0] == "https://api.linkedin.com/v2/userinfo"
    assert kwargs["headers"]["Authorization"] == "Bearer AT"


def test_fetch_profile_unauthorized_is_rejected() -> None:
    http = MagicMock()
    http.get.return_value = _response(401, text="Invalid access token")
    with pytest.raises(ProviderRejected) as exc:
        LinkedInProvider(make_config(), session=http).fetch_profile("expired")
    assert exc.value.status_code == 401


def test_fetch_profile_non_object_is_rejected() -> None:
    http = MagicMock()
    http.get.return_value = _response(200, json_body=["not", "an", "object"])
    with pytest.raises(ProviderRejected):
        LinkedInProvider(make_config(), session=http).fetch_profile("AT")


def test_build_providers_requires_credentials() -> None:
    assert "linkedin" in build_providers(make_config())
    assert build_providers(make_config(linkedin_client_secret=None)) == {}
