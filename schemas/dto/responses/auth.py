"""
Response DTOs for authentication and user administration endpoints.

UserResponse  — a user without credentials; used by /me and /api/users
AuthResponse  — POST /api/auth/register, POST /api/auth/login (200)
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.user import UserDoc, UserPermissions
from services.authorization import resolve_permissions


class UserResponse(BaseModel):
    """Public shape of a user. The password hash never leaves the service."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    account_id: str = Field(alias="accountId")
    email: str
    name: str
    role: str
    permissions: UserPermissions
    phone: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @classmethod
    def from_doc(cls, user: UserDoc) -> "UserResponse":
        return cls(
            id=str(user.id),
            account_id=str(user.account_id),
            email=user.email,
            name=user.name,
            role=user.role,
            permissions=resolve_permissions(user),
            phone=user.phone,
            created_at=user.created_at,
        )


class AuthResponse(BaseModel):
    """Response body for register and login."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    user: UserResponse
