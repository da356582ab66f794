"""
Common response DTOs shared across multiple endpoints.

ErrorResponse    — standard error shape from AppError.to_dict()
HealthResponse   — GET /health
MessageResponse  — generic {success, message} shape
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorResponse(BaseModel):
    """Standard error JSON body produced by the AppError exception handler."""

    model_config = ConfigDict(populate_by_name=True)

    error: str
    code: Optional[str] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    checks: dict[str, str]


class MessageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: Optional[str] = None


def error_responses(*status_codes: int) -> dict:
    """OpenAPI ``responses`` entries documenting the shared error body."""
    return {code: {"model": ErrorResponse} for code in status_codes}
