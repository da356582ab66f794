"""
Response DTOs for API key endpoints.

ApiKeyResponse        — one key entry in GET /api/api-keys
ApiKeyCreatedResponse — POST /api/api-keys (201); includes ``key`` once
ApiKeyIdentityResponse — GET /api/v1/key
ApiKeyUsageResponse   — one entry in GET /api/v1/key/usage
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.api_key import ApiKeyDoc
from schemas.models.api_key_usage import ApiKeyUsageDoc


class ApiKeyResponse(BaseModel):
    """A stored key as listed to admins. Only ``key_prefix`` is ever shown."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: Optional[str] = None
    key_prefix: str = Field(alias="keyPrefix")
    is_active: bool = Field(alias="isActive")
    last_used_at: Optional[datetime] = Field(default=None, alias="lastUsedAt")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @classmethod
    def from_doc(cls, doc: ApiKeyDoc, **extra) -> "ApiKeyResponse":
        return cls(
            id=str(doc.id),
            name=doc.name,
            description=doc.description,
            key_prefix=doc.key_prefix,
            is_active=doc.is_active,
            last_used_at=doc.last_used_at,
            expires_at=doc.expires_at,
            created_at=doc.created_at,
            **extra,
        )


class ApiKeyCreatedResponse(ApiKeyResponse):
    """Response for POST /api/api-keys (201).

    ``key`` is the full secret. This is the only time it is returned; the
    store keeps its hash.
    """

    key: str


class ApiKeyIdentityResponse(BaseModel):
    """Response body for GET /api/v1/key."""

    model_config = ConfigDict(populate_by_name=True)

    key_id: str = Field(alias="keyId")
    account_id: str = Field(alias="accountId")


class ApiKeyUsageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    endpoint: str
    method: str
    status_code: Optional[int] = Field(default=None, alias="statusCode")
    ip_address: Optional[str] = Field(default=None, alias="ipAddress")
    user_agent: Optional[str] = Field(default=None, alias="userAgent")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @classmethod
    def from_doc(cls, usage: ApiKeyUsageDoc) -> "ApiKeyUsageResponse":
        return cls(
            endpoint=usage.endpoint,
            method=usage.method,
            status_code=usage.status_code,
            ip_address=usage.ip_address,
            user_agent=usage.user_agent,
            created_at=usage.created_at,
        )
