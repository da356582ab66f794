"""
Request DTOs for API key management endpoints.

CreateApiKeyRequest — POST /api/api-keys
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from shared.datetime_utils import ensure_utc, parse_datetime


class CreateApiKeyRequest(BaseModel):
    """Request body for POST /api/api-keys."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    # ISO 8601 string or Unix epoch seconds; omitted means one year from now
    expires_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("expires_at", "expiresAt")
    )

    @field_validator("name", mode="after")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("name must have at least 3 characters")
        return v

    @field_validator("expires_at", mode="before")
    @classmethod
    def _parse_expiry(cls, v: Any) -> Optional[datetime]:
        if v is None:
            return None
        if isinstance(v, datetime):
            return ensure_utc(v)
        parsed = parse_datetime(v)
        if parsed is None:
            raise ValueError("expires_at must be an ISO 8601 date or Unix timestamp")
        return parsed
