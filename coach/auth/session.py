from __future__ import annotations

import secrets
import threading
import time
from typing import Callable, Dict, Optional

from itsdangerous import BadSignature, URLSafeSerializer

from coach.auth.config import AuthConfig
from coach.auth.models import Account, Session
from coach.storage.memory_store import MemoryStore

SESSION_COOKIE_NAME = "auth-session"
SESSION_SALT = "coach-session-v1"


class SessionManager:
    """
    Server-side sessions: opaque id -> (account id, absolute expiry).

    Expiry is checked lazily in `resolve`, and every `sweep_every`-th `establish` also
    purges expired entries so sessions that are never presented again do not pile up.
    """

    def __init__(
        self,
        ttl_seconds: int = 24 * 60 * 60,
        *,
        clock: Callable[[], float] = time.time,
        sweep_every: int = 100,
    ):
        self._ttl = int(ttl_seconds)
        self._sweep_every = max(1, int(sweep_every))
        self._issued = 0
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def establish(self, account: Account) -> str:
        session_id = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[session_id] = Session(
                session_id=session_id,
                principal_id=account.id,
                expiry=self._clock() + self._ttl,
            )
            self._issued += 1
            sweep = self._issued % self._sweep_every == 0
        if sweep:
            self.purge_expired()
        return session_id

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        with self._lock:
            sess = self._sessions.get(session_id)
            if sess is None:
                return None
            if self._clock() >= sess.expiry:
                del self._sessions[session_id]
                return None
            return sess

    def resolve(self, session_id: Optional[str], store: MemoryStore) -> Optional[Account]:
        sess = self.get(session_id)
        if sess is None:
            return None
        return store.get_account(sess.principal_id)

    def destroy(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        with self._lock:
            self._sessions.pop(session_id, None)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            dead = [sid for sid, s in self._sessions.items() if now >= s.expiry]
            for sid in dead:
                del self._sessions[sid]
        return len(dead)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def _serializer(cfg: AuthConfig) -> URLSafeSerializer:
    return URLSafeSerializer(secret_key=cfg.session_secret, salt=SESSION_SALT)


def sign_session_id(cfg: AuthConfig, session_id: str) -> str:
    return _serializer(cfg).dumps(session_id)


def unsign_session_id(cfg: AuthConfig, value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        sid = _serializer(cfg).loads(value)
    except BadSignature:
        return None
    return sid if isinstance(sid, str) and sid else None


def session_cookie_kwargs(cfg: AuthConfig, value: str) -> dict:
    return {
        "key": SESSION_COOKIE_NAME,
        "value": value,
        "max_age": cfg.session_ttl_seconds,
        "httponly": True,
        "secure": cfg.cookie_secure,
        "samesite": "lax",
        "path": "/",
    }


def clear_session_cookie_kwargs(cfg: AuthConfig) -> dict:
    return {
        "key": SESSION_COOKIE_NAME,
        "value": "",
        "max_age": 0,
        "httponly": True,
        "secure": cfg.cookie_secure,
        "samesite": "lax",
        "path": "/",
    }
