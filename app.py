"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.cache.redis_client import close_redis_client, create_redis_client
from infrastructure.cache.user_cache import UserCache
from infrastructure.usage_log import ApiKeyUsageLogger
from middleware.api_key_usage import ApiKeyUsageMiddleware
from repositories import indexes
from repositories.api_key_repository import ApiKeyRepository, ApiKeyUsageRepository
from repositories.user_repository import AccountRepository, UserRepository
from routes.api_key_routes import router as api_key_router
from routes.auth_routes import router as auth_router
from routes.external_api_routes import router as external_api_router
from routes.health_routes import router as health_router
from routes.user_routes import router as user_router
from services.api_key_service import ApiKeyService
from services.auth_service import AuthService
from services.rate_limiter import (
    InMemoryRateLimiter,
    RedisRateLimiter,
    create_rate_limit_storage,
)
from services.token_service import TokenService
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


async def _sweep_rate_limits(limiter: InMemoryRateLimiter, interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        evicted = limiter.sweep()
        if evicted:
            log.debug("rate_limit_windows_swept", evicted=evicted, remaining=len(limiter))


def wire_services(app: FastAPI, settings: AppSettings, db, redis_client) -> None:
    """Build repositories and services on top of *db* and attach them to app.state."""
    users = UserRepository(db[indexes.USERS])
    accounts = AccountRepository(db[indexes.ACCOUNTS])
    keys = ApiKeyRepository(db[indexes.API_KEYS])
    usage = ApiKeyUsageRepository(db[indexes.API_KEY_USAGE])

    user_cache = None
    if redis_client is not None and settings.redis.user_cache_ttl_seconds > 0:
        user_cache = UserCache(redis_client, settings.redis.user_cache_ttl_seconds)

    app.state.auth_service = AuthService(
        users, accounts, TokenService(settings.jwt), user_cache=user_cache
    )
    app.state.api_key_service = ApiKeyService(keys, usage)
    app.state.usage_logger = ApiKeyUsageLogger(
        usage, keys, max_queue_size=settings.usage_log.usage_log_queue_size
    )

    if settings.rate_limit.rate_limit_backend == "redis" and redis_client is not None:
        app.state.rate_limiter = RedisRateLimiter(
            create_rate_limit_storage(settings.redis.redis_uri)
        )
    else:
        if settings.rate_limit.rate_limit_backend == "redis":
            log.warning("rate_limit_redis_unavailable", fallback="memory")
        app.state.rate_limiter = InMemoryRateLimiter()


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging, production=settings.is_production)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri)
        app.state.mongo_client = mongo_client
        app.state.db = mongo_client[settings.db.db_name]
        app.state.settings = settings

        # Redis is optional; without it limits and sessions stay process-local
        redis_client = await create_redis_client(settings.redis.redis_uri)
        app.state.redis = redis_client

        await indexes.ensure_indexes(app.state.db)
        wire_services(app, settings, app.state.db, redis_client)

        app.state.usage_logger.start()
        sweeper = None
        if isinstance(app.state.rate_limiter, InMemoryRateLimiter):
            sweeper = asyncio.create_task(
                _sweep_rate_limits(
                    app.state.rate_limiter,
                    settings.rate_limit.rate_limit_sweep_interval_seconds,
                ),
                name="rate-limit-sweeper",
            )
        log.info("app_started", env=settings.env)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await app.state.usage_logger.stop(
            timeout=settings.usage_log.usage_log_drain_timeout_seconds
        )
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        await mongo_client.close()
        await close_redis_client(redis_client)
        log.info("app_stopped")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Added first so it sits inside CORS and sees the final status code
    app.add_middleware(ApiKeyUsageMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(api_key_router)
    app.include_router(external_api_router)

    return app
