"""
Provider login flow: start redirect -> callback -> tokens -> profile -> account -> session.

Every callback ends in a redirect. Failures at any stage stop the remaining stages and
send the browser to the login-failure page with a generic error code; provider detail
only goes to the server log.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

from coach.auth.accounts import upsert_account
from coach.auth.config import AuthConfig
from coach.auth.errors import AccountUpsertError, MissingSubjectError, ProviderRejected, ProviderUnreachable
from coach.auth.models import Account
from coach.auth.normalize import normalize_profile
from coach.auth.provider import AuthProvider
from coach.auth.session import SessionManager
from coach.auth.util import decode_state, encode_state, random_token, sanitize_return_path
from coach.storage.memory_store import MemoryStore

logger = logging.getLogger(__name__)


class FlowState(str, enum.Enum):
    START = "start"
    REDIRECTED_TO_PROVIDER = "redirected_to_provider"
    CALLBACK_RECEIVED = "callback_received"
    TOKEN_EXCHANGED = "token_exchanged"
    PROFILE_FETCHED = "profile_fetched"
    ACCOUNT_RESOLVED = "account_resolved"
    SESSION_ESTABLISHED = "session_established"
    REDIRECTED_TO_APP = "redirected_to_app"
    FAILED = "failed"


@dataclass(frozen=True)
class LoginStart:
    authorization_url: str
    nonce: str
    return_to: str


@dataclass(frozen=True)
class CallbackResult:
    redirect_to: str
    state: FlowState
    account: Optional[Account] = None
    session_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.session_id is not None


def start_login(provider: AuthProvider, cfg: AuthConfig, return_to: Optional[str]) -> LoginStart:
    """Build the provider redirect. The post-login path rides inside the signed `state`."""
    safe_return = sanitize_return_path(return_to, cfg.default_return_path)
    nonce = random_token(16)
    state = encode_state(cfg.session_secret, nonce=nonce, return_to=safe_return)
    url = provider.build_authorization_url(state)
    logger.info("%s login started; will return to %s", provider.name, safe_return)
    return LoginStart(authorization_url=url, nonce=nonce, return_to=safe_return)


def failure_redirect(cfg: AuthConfig, code: str) -> str:
    return f"{cfg.login_failure_path}?{urlencode({'error': code})}"


def _return_path(cfg: AuthConfig, state: Optional[str], nonce_cookie: Optional[str]) -> str:
    decoded = decode_state(cfg.session_secret, state)
    if decoded is None:
        return cfg.default_return_path
    nonce, return_to = decoded
    # State minted for a different browser: ignore its return path.
    if not nonce_cookie or nonce_cookie != nonce:
        return cfg.default_return_path
    return sanitize_return_path(return_to, cfg.default_return_path)


def _fail(cfg: AuthConfig, code: str) -> CallbackResult:
    return CallbackResult(redirect_to=failure_redirect(cfg, code), state=FlowState.FAILED, error=code)


def complete_login(
    provider: AuthProvider,
    store: MemoryStore,
    sessions: SessionManager,
    cfg: AuthConfig,
    *,
    code: Optional[str],
    state: Optional[str],
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    nonce_cookie: Optional[str] = None,
) -> CallbackResult:
    """Run the callback half of the flow. Never raises for provider/account failures."""
    if error:
        logger.warning("%s callback returned error=%s (%s)", provider.name, error, error_description or "")
        return _fail(cfg, "access_denied")

    code = (code or "").strip()
    if not code:
        logger.warning("%s callback without code", provider.name)
        return _fail(cfg, "login_failed")

    return_to = _return_path(cfg, state, nonce_cookie)
    stage = FlowState.CALLBACK_RECEIVED
    try:
        tokens = provider.exchange_code(code)
        stage = FlowState.TOKEN_EXCHANGED

        raw = provider.fetch_profile(tokens.access_token)
        profile = normalize_profile(raw)
        stage = FlowState.PROFILE_FETCHED

        account = upsert_account(store, profile, tokens.access_token, tokens.refresh_token or "")
        stage = FlowState.ACCOUNT_RESOLVED

        session_id = sessions.establish(account)
        stage = FlowState.SESSION_ESTABLISHED
    except ProviderRejected as e:
        logger.warning(
            "%s rejected login after %s (status=%s): %s | provider body: %s",
            provider.name,
            stage.value,
            e.status_code,
            str(e),
            e.detail,
        )
        return _fail(cfg, "login_failed")
    except ProviderUnreachable as e:
        logger.error("%s unreachable after %s: %s | %s", provider.name, stage.value, str(e), e.detail)
        return _fail(cfg, "login_failed")
    except MissingSubjectError as e:
        logger.warning("%s profile unusable: %s", provider.name, str(e))
        return _fail(cfg, "login_failed")
    except AccountUpsertError:
        logger.exception("%s login could not resolve an account", provider.name)
        return _fail(cfg, "server_error")
    except ValueError as e:
        # Raised by the provider when client id/secret/redirect URI is missing.
        logger.error("%s login is misconfigured (after %s): %s", provider.name, stage.value, str(e))
        return _fail(cfg, "server_error")

    logger.info("%s login complete for account id=%s", provider.name, account.id)
    return CallbackResult(
        redirect_to=return_to,
        state=FlowState.REDIRECTED_TO_APP,
        account=account,
        session_id=session_id,
    )
