"""
FastAPI dependency providers and request guards.

Providers return the services wired onto app.state by the lifespan in app.py.

Guards form the request pipeline in front of resource handlers:

    session:  get_current_user → require_role(...) → require_permission(...)
    api key:  get_api_key_identity → api_rate_limit(...)

Each guard either returns normally or raises an AppError subclass, so a
handler that runs can trust the identity and privileges on request.state.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request, Response

from config import AppSettings
from errors import (
    ForbiddenError,
    PermissionDeniedError,
    RateLimitError,
    UnauthenticatedError,
)
from middleware.api_key_usage import API_KEY_STATE
from schemas.models.user import PERMISSION_FLAGS
from services.api_key_service import ApiKeyIdentity, ApiKeyService
from services.auth_service import AuthService, CurrentUser
from services.authorization import has_permission, has_required_role
from services.rate_limiter import RateLimiter
from services.token_service import extract_bearer_token
from shared.ip_utils import get_client_ip
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)

USER_STATE = "user"


# ── Providers ────────────────────────────────────────────────────────────────


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_api_key_service(request: Request) -> ApiKeyService:
    return request.app.state.api_key_service


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


# ── Session pipeline ─────────────────────────────────────────────────────────


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    auth_service: AuthService = Depends(get_auth_service),
) -> CurrentUser:
    """Verify the session token and attach the freshly read user."""
    user = await auth_service.resolve_session(extract_bearer_token(authorization))
    setattr(request.state, USER_STATE, user)
    return user


def require_role(*allowed_roles: str):
    """Guard: caller's role must reach the level of at least one allowed role."""

    async def _require_role(
        request: Request, user: CurrentUser = Depends(get_current_user)
    ) -> CurrentUser:
        if not has_required_role(user.role, allowed_roles):
            log.warning(
                "role_check_failed",
                user_id=user.id,
                role=user.role,
                required=list(allowed_roles),
                path=request.url.path,
            )
            raise ForbiddenError()
        return user

    return _require_role


def require_permission(flag: str):
    """Guard: the verified user's permission set must enable *flag*.

    Depends on get_current_user, so the session is resolved first whatever
    order the route declares its guards in. FastAPI caches that dependency per
    request, so stacking this under require_role reads the user once.
    """
    if flag not in PERMISSION_FLAGS:
        raise ValueError(f"Unknown permission flag: {flag!r}")

    async def _require_permission(
        request: Request,
        current_user: Optional[CurrentUser] = Depends(get_current_user),
    ) -> CurrentUser:
        user = getattr(request.state, USER_STATE, None) or current_user
        if user is None:
            raise UnauthenticatedError()
        if not has_permission(user.permissions, flag):
            log.warning(
                "permission_check_failed",
                user_id=user.id,
                permission=flag,
                path=request.url.path,
            )
            raise PermissionDeniedError()
        return user

    return _require_permission


# ── API key pipeline ─────────────────────────────────────────────────────────


async def get_api_key_identity(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyIdentity:
    """Resolve the ``pk_`` key; ApiKeyUsageMiddleware records the request later."""
    identity = await api_key_service.authenticate(
        authorization, ip_hash=hash_ip(get_client_ip(request))
    )
    setattr(request.state, API_KEY_STATE, identity)
    return identity


def api_rate_limit(max_requests: Optional[int] = None, window_ms: Optional[int] = None):
    """Guard: fixed-window throttle per API key.

    Unset limits fall back to the configured read limit and window.
    Session-authenticated requests carry no key identity and are not limited.
    """

    async def _api_rate_limit(
        request: Request,
        response: Response,
        limiter: RateLimiter = Depends(get_rate_limiter),
        settings: AppSettings = Depends(get_settings),
    ) -> None:
        identity: Optional[ApiKeyIdentity] = getattr(request.state, API_KEY_STATE, None)
        if identity is None:
            return

        limit = max_requests or settings.rate_limit.api_read_max_requests
        window = window_ms or settings.rate_limit.api_window_ms
        decision = await limiter.check_and_consume(identity.key_id, limit, window)
        if not decision.allowed:
            log.warning(
                "api_rate_limited",
                key_id=identity.key_id,
                limit=limit,
                retry_after=decision.retry_after,
            )
            raise RateLimitError(decision.retry_after, headers=decision.headers())

        response.headers.update(decision.headers())

    return _api_rate_limit
