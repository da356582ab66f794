"""
Integration fixtures: the real routers, guards, middleware and services wired
to in-memory repositories through a test lifespan. No network connections.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Callable

import pytest
from bson import ObjectId
from fastapi import FastAPI

from config import AppSettings, DatabaseSettings, JWTSettings, RateLimitSettings
from errors import register_error_handlers
from infrastructure.usage_log import ApiKeyUsageLogger
from middleware.api_key_usage import ApiKeyUsageMiddleware
from routes.api_key_routes import router as api_key_router
from routes.auth_routes import router as auth_router
from routes.external_api_routes import router as external_api_router
from routes.user_routes import router as user_router
from schemas.models.api_key import ApiKeyDoc
from schemas.models.user import UserDoc, UserPermissions
from services.api_key_service import ApiKeyService
from services.auth_service import AuthService
from services.rate_limiter import InMemoryRateLimiter
from services.token_service import TokenService
from shared.crypto import display_prefix, generate_api_key, hash_api_key, hash_password
from shared.datetime_utils import utcnow

JWT_SECRET = "integration-secret-0123456789-abcdefgh"


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        jwt=JWTSettings(jwt_secret=JWT_SECRET, jwt_private_key="", jwt_public_key=""),
        rate_limit=RateLimitSettings(api_read_max_requests=100, api_window_ms=60000),
    )


@pytest.fixture
def tokens(settings) -> TokenService:
    return TokenService(settings.jwt)


@pytest.fixture
def build_app(settings, tokens, user_repo, account_repo, api_key_repo, usage_repo) -> Callable[..., FastAPI]:
    def _build(extra_routes: Callable[[FastAPI], None] | None = None) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            app.state.settings = settings
            app.state.db = None
            app.state.redis = None
            app.state.auth_service = AuthService(user_repo, account_repo, tokens)
            app.state.api_key_service = ApiKeyService(api_key_repo, usage_repo)
            app.state.rate_limiter = InMemoryRateLimiter()
            app.state.usage_logger = ApiKeyUsageLogger(usage_repo, api_key_repo)
            app.state.usage_logger.start()
            yield
            await app.state.usage_logger.stop(timeout=1.0)

        app = FastAPI(lifespan=lifespan)
        app.add_middleware(ApiKeyUsageMiddleware)
        register_error_handlers(app)
        app.include_router(auth_router)
        app.include_router(user_router)
        app.include_router(api_key_router)
        app.include_router(external_api_router)
        if extra_routes is not None:
            extra_routes(app)
        return app

    return _build


@pytest.fixture
def make_user(user_repo) -> Callable[..., UserDoc]:
    """Synchronously seed a user; returns the stored doc."""

    def _make(
        role: str = "assessor",
        *,
        account_id: ObjectId | None = None,
        permissions: UserPermissions | None = None,
        email: str | None = None,
        password: str = "segredo",
    ) -> UserDoc:
        user = UserDoc(
            _id=ObjectId(),
            account_id=account_id or ObjectId(),
            email=email or f"{ObjectId()}@gabinete.org",
            password_hash=hash_password(password),
            name="Pessoa",
            role=role,
            permissions=permissions,
        )
        user_repo.docs[user.id] = user
        return user

    return _make


@pytest.fixture
def make_api_key(api_key_repo) -> Callable[..., tuple[str, ApiKeyDoc]]:
    """Synchronously seed an API key; returns (plaintext, stored doc)."""

    def _make(
        account_id: ObjectId | None = None,
        *,
        is_active: bool = True,
        expires_in: timedelta | None = timedelta(days=30),
    ) -> tuple[str, ApiKeyDoc]:
        plaintext = generate_api_key()
        now = utcnow()
        key = ApiKeyDoc(
            _id=ObjectId(),
            account_id=account_id or ObjectId(),
            name="Integração",
            key_prefix=display_prefix(plaintext),
            key_hash=hash_api_key(plaintext),
            is_active=is_active,
            expires_at=now + expires_in if expires_in is not None else None,
            created_at=now,
        )
        api_key_repo.docs[key.id] = key
        return plaintext, key

    return _make
