from __future__ import annotations

import secrets
from typing import Optional, Tuple

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

STATE_SALT = "coach-oauth-state-v1"
STATE_MAX_AGE_SECONDS = 10 * 60


def random_token(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)


def sanitize_return_path(path: Optional[str], default: str = "/dashboard") -> str:
    """
    Prevent open-redirects: allow only relative paths like `/dashboard`.
    """
    p = (path or "").strip()
    if not p:
        return default
    if not p.startswith("/"):
        return default
    # Disallow scheme-relative: `//evil.com` and `/\evil.com`
    if p.startswith("//") or p.startswith("/\\"):
        return default
    p = p.replace("\r", "").replace("\n", "")
    return p or default


def encode_state(secret: str, *, nonce: str, return_to: str) -> str:
    s = URLSafeTimedSerializer(secret_key=secret, salt=STATE_SALT)
    return s.dumps({"n": nonce, "r": return_to})


def decode_state(secret: str, value: Optional[str]) -> Optional[Tuple[str, str]]:
    """Return (nonce, return_to) for a valid, unexpired state; None otherwise."""
    if not value:
        return None
    s = URLSafeTimedSerializer(secret_key=secret, salt=STATE_SALT)
    try:
        data = s.loads(value, max_age=STATE_MAX_AGE_SECONDS)
    except (SignatureExpired, BadSignature):
        return None
    if not isinstance(data, dict):
        return None
    nonce = data.get("n")
    return_to = data.get("r")
    if not isinstance(nonce, str) or not isinstance(return_to, str):
        return None
    return nonce, return_to
