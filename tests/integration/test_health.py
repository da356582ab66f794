"""Integration tests for GET /health."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import register_error_handlers
from routes.health_routes import router as health_router


def _build_test_app(mongo_ok: bool = True, redis_state: str = "ok") -> FastAPI:
    """
    Minimal app with mocked DB/Redis injected via lifespan.

    redis_state is one of "ok", "error" or "absent".
    """
    mock_db = MagicMock()
    mock_db.client.admin.command = (
        AsyncMock(return_value={"ok": 1})
        if mongo_ok
        else AsyncMock(side_effect=Exception("connection refused"))
    )

    mock_redis = None
    if redis_state != "absent":
        mock_redis = AsyncMock()
        if redis_state == "error":
            mock_redis.ping = AsyncMock(side_effect=Exception("redis down"))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db = mock_db
        app.state.redis = mock_redis
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(health_router)
    return app


@pytest.mark.parametrize(
    "mongo_ok, redis_state, status_code, overall, mongo_check, redis_check",
    [
        (True, "ok", 200, "healthy", "ok", "ok"),
        (False, "ok", 503, "unhealthy", "error", "ok"),
        (True, "error", 200, "degraded", "ok", "error"),
        (True, "absent", 200, "degraded", "ok", "not_configured"),
        (False, "absent", 503, "unhealthy", "error", "not_configured"),
    ],
    ids=["healthy", "mongo_down", "redis_down", "redis_absent", "both_bad"],
)
def test_health_matrix(mongo_ok, redis_state, status_code, overall, mongo_check, redis_check):
    with TestClient(_build_test_app(mongo_ok, redis_state)) as client:
        resp = client.get("/health")
    assert resp.status_code == status_code
    assert resp.json() == {
        "status": overall,
        "checks": {"mongodb": mongo_check, "redis": redis_check},
    }


def test_health_needs_no_credentials():
    with TestClient(_build_test_app()) as client:
        resp = client.get("/health", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 200
