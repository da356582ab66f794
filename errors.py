"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses of the shape
``{"error": <message>}``, adding ``code`` only for errors that define one and
any ``extra`` body fields (``retryAfter`` for rate limiting).

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production)
and never leak their detail to the client.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Erro interno do servidor"


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: Optional[str] = None
    default_message: str = INTERNAL_ERROR_MESSAGE

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        extra: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.extra = dict(extra or {})
        self.headers = dict(headers or {})

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message}
        if self.error_code is not None:
            payload["code"] = self.error_code
        payload.update(self.extra)
        return payload


# ── 400 / 404 ────────────────────────────────────────────────────────────────


class ValidationError(AppError):
    status_code = 400
    default_message = "Dados inválidos"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Recurso não encontrado"


# ── 401: credential absent, malformed or invalid ─────────────────────────────


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Não autenticado"


class TokenMissingError(AuthenticationError):
    default_message = "Token não fornecido"


class TokenInvalidError(AuthenticationError):
    default_message = "Token inválido"


class ApiKeyMissingError(AuthenticationError):
    default_message = "API key required"


class MalformedCredentialError(AuthenticationError):
    default_message = "Invalid API key format"


class InvalidApiKeyError(AuthenticationError):
    default_message = "Invalid or expired API key"


class UnauthenticatedError(AuthenticationError):
    default_message = "Usuário não autenticado"


class InvalidCredentialsError(AuthenticationError):
    default_message = "Email ou senha incorretos"


# ── 403: identity known, action disallowed ───────────────────────────────────


class SubjectNotFoundError(AppError):
    status_code = 403
    default_message = "Usuário não encontrado"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "FORBIDDEN"
    default_message = "Acesso negado. Você não tem permissão para esta ação."


class PermissionDeniedError(AppError):
    status_code = 403
    default_message = "Você não tem permissão para acessar este recurso"


# ── 429 / 500 ────────────────────────────────────────────────────────────────


class RateLimitError(AppError):
    status_code = 429
    default_message = "Rate limit exceeded"

    def __init__(
        self,
        retry_after: int,
        *,
        headers: Optional[Mapping[str, str]] = None,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(message, extra={"retryAfter": retry_after}, headers=headers)
        self.retry_after = retry_after


class AuthenticationFailedError(AppError):
    """Unexpected failure while resolving a credential (store down, etc.)."""

    status_code = 500
    default_message = "Authentication failed"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers=exc.headers or None,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "Dados inválidos") if errors else "Dados inválidos"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"error": INTERNAL_ERROR_MESSAGE},
        )
