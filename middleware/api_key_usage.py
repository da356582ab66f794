"""Pure ASGI middleware that records API key usage after the response.

The API-key dependency stores the resolved ApiKeyIdentity in the request
state. Once the final body chunk has gone out, this middleware hands a usage
record (endpoint, method, status, IP, user agent) to the ApiKeyUsageLogger on
app.state. Requests without a resolved key are not recorded.
"""

from __future__ import annotations

from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from schemas.models.api_key_usage import ApiKeyUsageDoc
from shared.datetime_utils import utcnow
from shared.ip_utils import get_client_ip, get_user_agent
from shared.logging import get_logger

log = get_logger(__name__)

API_KEY_STATE = "api_key"


class ApiKeyUsageMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # Shared with request.state in the endpoint and its dependencies
        state = scope.setdefault("state", {})
        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            identity = state.get(API_KEY_STATE)
            if identity is not None:
                self._record(scope, identity.key_id, status_code)

    def _record(self, scope: Scope, key_id: str, status_code: int) -> None:
        usage_logger = getattr(scope["app"].state, "usage_logger", None)
        if usage_logger is None:
            log.warning("api_key_usage_logger_missing", key_id=key_id)
            return

        conn = HTTPConnection(scope)
        usage_logger.submit(
            ApiKeyUsageDoc(
                api_key_id=key_id,
                endpoint=conn.url.path,
                method=scope["method"],
                status_code=status_code,
                ip_address=get_client_ip(conn),
                user_agent=get_user_agent(conn),
                created_at=utcnow(),
            )
        )
