"""
Growth Coach HTTP API.

Auth model:
- every path is protected unless `_is_public_path` says otherwise (fail closed);
- the middleware resolves the session cookie and attaches the Account to
  `request.state.user` before any handler runs.

Collaborators (store, session manager, providers, config) live on `app.state` and are
injected through `create_app`, so tests can run the whole API against fakes.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coach.auth.accounts import authenticate_local, register_local_account
from coach.auth.config import AuthConfig, load_auth_config
from coach.auth.deps import authenticate_request, current_user, session_id_from_request
from coach.auth.errors import AuthProviderError, DuplicateAccountError, MissingSubjectError
from coach.auth.flow import complete_login, start_login
from coach.auth.models import Account
from coach.auth.normalize import normalize_profile
from coach.auth.provider import AuthProvider, build_providers
from coach.auth.rate_limit import LoginRateLimiter
from coach.auth.session import (
    SessionManager,
    clear_session_cookie_kwargs,
    session_cookie_kwargs,
    sign_session_id,
)
from coach.content.demo import DEMO_PASSWORD, DEMO_USERNAME, mock_profile_data, seed_demo
from coach.content.suggestions import analyze_profile, generate_content_ideas, optimize_post
from coach.core.models import (
    GoalCreate,
    GoalUpdate,
    LoginRequest,
    OptimizeRequest,
    PostCreate,
    PostUpdate,
    ProfileUpdate,
    RegisterRequest,
    SuggestionUpdate,
)
from coach.storage.memory_store import MemoryStore

logger = logging.getLogger(__name__)

router = APIRouter()

# ---- Console authentication ----
_OAUTH_COOKIE_PATH = "/api/auth"
_OAUTH_NONCE_COOKIE = "oauth-nonce"
_OAUTH_TTL_SECONDS = 10 * 60
_RESERVED_AUTH_SEGMENTS = {"user", "login", "logout", "register", "mode"}


def _oauth_cookie_kwargs(cfg: AuthConfig, *, value: str, max_age: int) -> dict:
    return {
        "key": _OAUTH_NONCE_COOKIE,
        "value": value,
        "max_age": max_age,
        "httponly": True,
        "secure": cfg.cookie_secure,
        "samesite": "lax",
        "path": _OAUTH_COOKIE_PATH,
    }


def _is_public_path(path: str) -> bool:
    if path in ("/healthz", "/api/init-demo"):
        return True
    if path == "/auth/linkedin/callback":
        return True
    if path in ("/api/auth/login", "/api/auth/register", "/api/auth/logout", "/api/auth/mode"):
        return True
    # Provider start + callback: /api/auth/{provider} and /api/auth/{provider}/callback
    if path.startswith("/api/auth/"):
        parts = [p for p in path[len("/api/auth/") :].split("/") if p]
        if len(parts) == 1 and parts[0] not in _RESERVED_AUTH_SEGMENTS:
            return True
        if len(parts) == 2 and parts[1] == "callback":
            return True
    return False


def _cfg(request: Request) -> AuthConfig:
    return request.app.state.auth_config


def _store(request: Request) -> MemoryStore:
    return request.app.state.store


def _sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def _provider(request: Request, name: str) -> AuthProvider:
    provider = request.app.state.providers.get(name)
    if provider is None:
        raise HTTPException(status_code=404, detail=f"Unknown auth provider: {name}")
    return provider


def _parse_id(raw: str, label: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID")


def _owned(record: Any, user: Account, label: str) -> Any:
    if record is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    if record.user_id != user.id:
        raise HTTPException(status_code=403, detail="Unauthorized")
    return record


def _changes(body: Any) -> Dict[str, Any]:
    # Partial update: only fields the client sent, and null means "leave as is".
    return {k: getattr(body, k) for k in body.model_fields_set if getattr(body, k) is not None}


def _no_store(resp: JSONResponse | RedirectResponse) -> None:
    resp.headers["Cache-Control"] = "no-store"


# ---- health ----


@router.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


# ---- auth: local ----


@router.post("/api/auth/register", status_code=201)
def auth_register(request: Request, body: RegisterRequest) -> Dict[str, Any]:
    try:
        register_local_account(
            _store(request), body.username.strip(), body.password, email=body.email, full_name=body.full_name
        )
    except DuplicateAccountError:
        raise HTTPException(status_code=400, detail="Username already exists")
    return {"message": "User created successfully"}


@router.post("/api/auth/login")
def auth_login(request: Request, body: LoginRequest) -> JSONResponse:
    """
    Local username/password login.
    Rate-limited per username to slow down brute force attempts.
    """
    cfg = _cfg(request)
    username = (body.username or "").strip()
    password = body.password or ""
    if not username or not password:
        raise HTTPException(status_code=400, detail="Missing username or password")

    limiter: LoginRateLimiter = request.app.state.login_limiter
    allowed, _remaining = limiter.allowed(username)
    if not allowed:
        raise HTTPException(status_code=429, detail="Too many failed login attempts. Please try again later.")

    account = authenticate_local(_store(request), username, password)
    if account is None:
        remaining = limiter.record_failure(username)
        logger.info("Local login failed for %s (%d attempts remaining)", username, remaining)
        raise HTTPException(status_code=401, detail="Invalid username or password")
    limiter.reset(username)

    sessions = _sessions(request)
    sessions.destroy(session_id_from_request(request))
    sid = sessions.establish(account)

    resp = JSONResponse(content={"message": "Logged in successfully", "user": account.to_public_dict()})
    _no_store(resp)
    resp.set_cookie(**session_cookie_kwargs(cfg, sign_session_id(cfg, sid)))
    return resp


@router.post("/api/auth/logout")
def auth_logout(request: Request) -> JSONResponse:
    cfg = _cfg(request)
    _sessions(request).destroy(session_id_from_request(request))
    resp = JSONResponse(content={"message": "Logged out successfully"})
    _no_store(resp)
    resp.set_cookie(**clear_session_cookie_kwargs(cfg))
    return resp


@router.get("/api/auth/user")
def auth_user(user: Account = Depends(current_user)) -> Dict[str, Any]:
    return {"user": user.to_public_dict()}


@router.get("/api/auth/mode")
def auth_mode(request: Request) -> Dict[str, Any]:
    """
    Expose the enabled login options so the UI can render them.
    Public; returns no secrets.
    """
    providers = [{"name": name, "loginUrl": f"/api/auth/{name}"} for name in sorted(request.app.state.providers)]
    return {"ok": True, "providers": providers, "localEnabled": _cfg(request).local_enabled}


@router.get("/api/auth/linkedin/profile")
def auth_linkedin_profile(request: Request, user: Account = Depends(current_user)) -> Dict[str, Any]:
    """Live LinkedIn profile for the current account, fetched with its stored token."""
    if not user.access_token:
        raise HTTPException(status_code=400, detail="No LinkedIn access token found")
    provider = _provider(request, "linkedin")
    try:
        raw = provider.fetch_profile(user.access_token)
        return normalize_profile(raw).to_dict()
    except (AuthProviderError, MissingSubjectError) as e:
        logger.warning("LinkedIn profile fetch failed for account id=%s: %s", user.id, str(e))
        raise HTTPException(status_code=502, detail="Failed to fetch LinkedIn profile")


# ---- auth: provider redirect flow ----


@router.get("/api/auth/{provider_name}")
def auth_provider_start(
    request: Request, provider_name: str, return_to: Optional[str] = Query(None, alias="returnTo")
) -> RedirectResponse:
    cfg = _cfg(request)
    provider = _provider(request, provider_name)
    try:
        start = start_login(provider, cfg, return_to)
    except ValueError as e:
        logger.error("%s login is misconfigured: %s", provider_name, str(e))
        raise HTTPException(status_code=500, detail=f"{provider_name} login is not configured")

    resp = RedirectResponse(url=start.authorization_url, status_code=302)
    _no_store(resp)
    resp.set_cookie(**_oauth_cookie_kwargs(cfg, value=start.nonce, max_age=_OAUTH_TTL_SECONDS))
    return resp


@router.get("/api/auth/{provider_name}/callback")
def auth_provider_callback(
    request: Request,
    provider_name: str,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None),
) -> RedirectResponse:
    """Handle the provider redirect; always answers with a redirect."""
    cfg = _cfg(request)
    provider = _provider(request, provider_name)
    sessions = _sessions(request)

    result = complete_login(
        provider,
        _store(request),
        sessions,
        cfg,
        code=code,
        state=state,
        error=error,
        error_description=error_description,
        nonce_cookie=request.cookies.get(_OAUTH_NONCE_COOKIE),
    )

    resp = RedirectResponse(url=result.redirect_to, status_code=302)
    _no_store(resp)
    if result.session_id is not None:
        sessions.destroy(session_id_from_request(request))
        resp.set_cookie(**session_cookie_kwargs(cfg, sign_session_id(cfg, result.session_id)))
    resp.set_cookie(**_oauth_cookie_kwargs(cfg, value="", max_age=0))
    return resp


@router.get("/auth/linkedin/callback")
def auth_linkedin_callback_alias(request: Request) -> RedirectResponse:
    """Redirect URI some LinkedIn apps are registered with; forwards to the API callback."""
    query = request.url.query
    target = "/api/auth/linkedin/callback" + (f"?{query}" if query else "")
    logger.info("LinkedIn callback received at alternate URL; forwarding")
    resp = RedirectResponse(url=target, status_code=302)
    _no_store(resp)
    return resp


# ---- profile ----


@router.get("/api/profile")
def get_profile(request: Request, user: Account = Depends(current_user)) -> Dict[str, Any]:
    store = _store(request)
    profile = store.get_profile(user.id)
    if profile is None:
        data = mock_profile_data()
        profile = store.create_profile(user.id, profile_data=data, profile_score=data.score)
    return profile.to_json()


@router.put("/api/profile")
def update_profile(request: Request, body: ProfileUpdate, user: Account = Depends(current_user)) -> Dict[str, Any]:
    store = _store(request)
    changes = _changes(body)
    if store.get_profile(user.id) is None:
        return store.create_profile(
            user.id, profile_data=changes.get("profile_data"), profile_score=changes.get("profile_score", 0)
        ).to_json()
    updated = store.update_profile(user.id, changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return updated.to_json()


@router.post("/api/profile/analyze")
def analyze_current_profile(request: Request, user: Account = Depends(current_user)) -> Dict[str, Any]:
    profile = _store(request).get_profile(user.id)
    data = profile.profile_data.to_json() if profile is not None else {}
    data["headline"] = user.headline or ""
    return analyze_profile(data).model_dump(mode="json")


# ---- posts ----


@router.get("/api/posts")
def list_posts(request: Request, user: Account = Depends(current_user)) -> List[Dict[str, Any]]:
    return [p.to_json() for p in _store(request).posts.list_for(user.id)]


@router.post("/api/posts", status_code=201)
def create_post(request: Request, body: PostCreate, user: Account = Depends(current_user)) -> Dict[str, Any]:
    post = _store(request).posts.create(user.id, {k: getattr(body, k) for k in PostCreate.model_fields})
    return post.to_json()


@router.get("/api/posts/scheduled")
def list_scheduled_posts(request: Request, user: Account = Depends(current_user)) -> List[Dict[str, Any]]:
    return [p.to_json() for p in _store(request).list_scheduled_posts(user.id)]


@router.post("/api/posts/optimize")
def optimize(body: OptimizeRequest, user: Account = Depends(current_user)) -> Dict[str, Any]:
    return optimize_post(body.content, body.goal).model_dump(mode="json")


@router.get("/api/posts/{post_id}")
def get_post(request: Request, post_id: str, user: Account = Depends(current_user)) -> Dict[str, Any]:
    pid = _parse_id(post_id, "post")
    return _owned(_store(request).posts.get(pid), user, "Post").to_json()


@router.put("/api/posts/{post_id}")
def update_post(
    request: Request, post_id: str, body: PostUpdate, user: Account = Depends(current_user)
) -> Dict[str, Any]:
    pid = _parse_id(post_id, "post")
    store = _store(request)
    _owned(store.posts.get(pid), user, "Post")
    return store.posts.update(pid, _changes(body)).to_json()


@router.delete("/api/posts/{post_id}")
def delete_post(request: Request, post_id: str, user: Account = Depends(current_user)) -> Dict[str, Any]:
    pid = _parse_id(post_id, "post")
    store = _store(request)
    _owned(store.posts.get(pid), user, "Post")
    store.posts.delete(pid)
    return {"message": "Post deleted successfully"}


# ---- goals ----


@router.get("/api/goals")
def list_goals(request: Request, user: Account = Depends(current_user)) -> List[Dict[str, Any]]:
    return [g.to_json() for g in _store(request).goals.list_for(user.id)]


@router.post("/api/goals", status_code=201)
def create_goal(request: Request, body: GoalCreate, user: Account = Depends(current_user)) -> Dict[str, Any]:
    goal = _store(request).goals.create(user.id, {k: getattr(body, k) for k in GoalCreate.model_fields})
    return goal.to_json()


@router.put("/api/goals/{goal_id}")
def update_goal(
    request: Request, goal_id: str, body: GoalUpdate, user: Account = Depends(current_user)
) -> Dict[str, Any]:
    gid = _parse_id(goal_id, "goal")
    store = _store(request)
    _owned(store.goals.get(gid), user, "Goal")
    return store.goals.update(gid, _changes(body)).to_json()


@router.delete("/api/goals/{goal_id}")
def delete_goal(request: Request, goal_id: str, user: Account = Depends(current_user)) -> Dict[str, Any]:
    gid = _parse_id(goal_id, "goal")
    store = _store(request)
    _owned(store.goals.get(gid), user, "Goal")
    store.goals.delete(gid)
    return {"message": "Goal deleted successfully"}


# ---- content suggestions ----


def _store_new_ideas(store: MemoryStore, user: Account) -> List[Dict[str, Any]]:
    profile = store.get_profile(user.id)
    ideas = generate_content_ideas(profile.profile_data.to_json() if profile is not None else None)
    created = []
    for idea in ideas:
        row = store.suggestions.create(
            user.id,
            {
                "title": idea.title,
                "content": idea.content,
                "category": idea.category,
                "estimated_engagement": idea.estimatedEngagement,
            },
        )
        created.append(row.to_json())
    return created


@router.get("/api/content-suggestions")
def list_suggestions(request: Request, user: Account = Depends(current_user)) -> List[Dict[str, Any]]:
    store = _store(request)
    rows = store.suggestions.list_for(user.id)
    if not rows:
        return _store_new_ideas(store, user)
    return [s.to_json() for s in rows]


@router.post("/api/content-suggestions/generate", status_code=201)
def generate_suggestions(request: Request, user: Account = Depends(current_user)) -> List[Dict[str, Any]]:
    return _store_new_ideas(_store(request), user)


@router.put("/api/content-suggestions/{suggestion_id}")
def update_suggestion(
    request: Request, suggestion_id: str, body: SuggestionUpdate, user: Account = Depends(current_user)
) -> Dict[str, Any]:
    sid = _parse_id(suggestion_id, "suggestion")
    store = _store(request)
    _owned(store.suggestions.get(sid), user, "Suggestion")
    return store.suggestions.update(sid, _changes(body)).to_json()


# ---- analytics ----


@router.get("/api/analytics/overview")
def analytics_overview(request: Request, user: Account = Depends(current_user)) -> Dict[str, Any]:
    profile = _store(request).get_profile(user.id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile data not found")
    return profile.profile_data.activity.to_json()


# ---- demo ----


@router.get("/api/init-demo")
def init_demo(request: Request) -> Dict[str, Any]:
    account = seed_demo(_store(request))
    if account is None:
        return {"message": "Users already exist, skipping demo initialization"}
    return {"message": "Demo data initialized", "login": {"username": DEMO_USERNAME, "password": DEMO_PASSWORD}}


# ---- app factory ----


def _validation_summary(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(x) for x in err.get("loc", ()) if x != "body"]
        where = ".".join(loc) or "body"
        parts.append(f"{err.get('msg', 'invalid value')} at \"{where}\"")
    return "Validation error: " + "; ".join(parts)


def create_app(
    *,
    cfg: Optional[AuthConfig] = None,
    store: Optional[MemoryStore] = None,
    sessions: Optional[SessionManager] = None,
    providers: Optional[Dict[str, AuthProvider]] = None,
) -> FastAPI:
    cfg = cfg or load_auth_config()
    app = FastAPI(title="LinkedIn Growth Coach API")
    app.state.auth_config = cfg
    app.state.store = store if store is not None else MemoryStore()
    app.state.sessions = sessions if sessions is not None else SessionManager(cfg.session_ttl_seconds)
    app.state.providers = providers if providers is not None else build_providers(cfg)
    app.state.login_limiter = LoginRateLimiter(max_failures=5, window_seconds=300)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400, content={"message": "Invalid input data", "errors": _validation_summary(exc)}
        )

    @app.middleware("http")
    async def auth_gate(request: Request, call_next):
        """Log requests and enforce authentication for every non-public path."""
        start_time = time.time()
        path = request.url.path or ""
        try:
            if request.method == "OPTIONS" or _is_public_path(path):
                response = await call_next(request)
            else:
                user = authenticate_request(request)
                if user is None:
                    # No `WWW-Authenticate`: browsers would pop a basic-auth dialog over the login UI.
                    return JSONResponse(status_code=401, content={"message": "Not authenticated"})
                request.state.user = user
                response = await call_next(request)
            logger.debug(
                "%s %s - %d (%.3fs)", request.method, path, response.status_code, time.time() - start_time
            )
            return response
        except Exception as e:
            logger.exception("%s %s - ERROR after %.3fs: %s", request.method, path, time.time() - start_time, str(e))
            raise

    app.include_router(router)
    return app


def run(host: str = "0.0.0.0", port: int = 5000) -> None:
    import uvicorn

    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )
    uvicorn.run(create_app(), host=host, port=port, log_level=uvicorn_log_level)
