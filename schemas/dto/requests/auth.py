"""
Request DTOs for authentication and user administration endpoints.

LoginRequest       — POST /api/auth/login
RegisterRequest    — POST /api/auth/register
CreateUserRequest  — POST /api/users/create
UpdateUserRequest  — PATCH /api/users/{user_id}
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from schemas.models.user import UserPermissions

RoleName = Literal["admin", "coordenador", "assessor"]


def _strip_name(v: str) -> str:
    v = v.strip()
    if len(v) < 2:
        raise ValueError("Nome deve ter pelo menos 2 caracteres")
    return v


Name = Annotated[str, AfterValidator(_strip_name)]


class PermissionsRequest(UserPermissions):
    """A complete permission set as sent by the client.

    Every flag is required: a partial object is a 400, never a set of silently
    revoked switches.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    dashboard: bool
    contacts: bool
    alliances: bool
    demands: bool
    agenda: bool
    ai: bool
    marketing: bool
    petitions: bool
    users: bool
    settings: bool


def _as_permissions(value: PermissionsRequest) -> UserPermissions:
    return UserPermissions.model_validate(value.model_dump())


FullPermissions = Annotated[PermissionsRequest, AfterValidator(_as_permissions)]


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register.

    The caller becomes the admin of a brand new account.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(min_length=6)
    name: Name
    phone: Optional[str] = None
    permissions: Optional[FullPermissions] = None


class CreateUserRequest(BaseModel):
    """Request body for POST /api/users/create.

    When ``permissions`` is omitted the defaults of ``role`` are stored.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(min_length=6)
    name: Name
    role: RoleName = "assessor"
    permissions: Optional[FullPermissions] = None


class UpdateUserRequest(BaseModel):
    """Request body for PATCH /api/users/{user_id}. Only sent fields change."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    name: Optional[Name] = None
    role: Optional[RoleName] = None
    phone: Optional[str] = None
    permissions: Optional[FullPermissions] = None

    def changes(self) -> dict:
        """Fields the client actually sent, minus explicit nulls."""
        return {
            field: getattr(self, field)
            for field in self.model_fields_set
            if getattr(self, field) is not None
        }
