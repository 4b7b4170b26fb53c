from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request

from coach.auth.models import Account
from coach.auth.session import SESSION_COOKIE_NAME, unsign_session_id


def session_id_from_request(request: Request) -> Optional[str]:
    cfg = request.app.state.auth_config
    return unsign_session_id(cfg, request.cookies.get(SESSION_COOKIE_NAME))


def authenticate_request(request: Request) -> Optional[Account]:
    """
    Resolve the request's session cookie to an Account.

    Tampered, unknown and expired cookies all resolve to None.
    """
    sid = session_id_from_request(request)
    if sid is None:
        return None
    return request.app.state.sessions.resolve(sid, request.app.state.store)


def current_user(request: Request) -> Account:
    """Route dependency: the Account attached by the auth middleware."""
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user
