"""
User document model, roles and feature permissions.

Maps to the `users` MongoDB collection.

Roles form a strict hierarchy (see services.authorization). Permissions are an
independent set of per-feature switches; a user without a stored permission
set falls back to the defaults of their role.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.base import MongoBaseModel, PyObjectId


class Role(str, Enum):
    ASSESSOR = "assessor"
    COORDENADOR = "coordenador"
    ADMIN = "admin"


class UserPermissions(BaseModel):
    """Per-feature access switches checked by the UI and route guards."""

    model_config = ConfigDict(frozen=True)

    dashboard: bool = False
    contacts: bool = False
    alliances: bool = False
    demands: bool = False
    agenda: bool = False
    ai: bool = False
    marketing: bool = False
    petitions: bool = False
    users: bool = False
    settings: bool = False


PERMISSION_FLAGS: frozenset[str] = frozenset(UserPermissions.model_fields)


DEFAULT_PERMISSIONS: Mapping[Role, UserPermissions] = {
    Role.ADMIN: UserPermissions(
        dashboard=True,
        contacts=True,
        alliances=True,
        demands=True,
        agenda=True,
        ai=True,
        marketing=True,
        petitions=True,
        users=True,
        settings=True,
    ),
    # Coordenadores run everything except user management
    Role.COORDENADOR: UserPermissions(
        dashboard=True,
        contacts=True,
        alliances=True,
        demands=True,
        agenda=True,
        ai=True,
        marketing=True,
        petitions=True,
        users=False,
        settings=True,
    ),
    Role.ASSESSOR: UserPermissions(
        dashboard=True,
        contacts=True,
        demands=True,
        agenda=True,
    ),
}


class UserProfile(MongoBaseModel):
    """
    A user without credentials.

    ``role`` is kept as a plain string so records written with a role this
    service does not know still load; such roles rank below every known role.
    """

    account_id: PyObjectId
    email: str
    name: str
    role: str = Role.ASSESSOR.value
    permissions: Optional[UserPermissions] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None


class UserDoc(UserProfile):
    """Document model for the `users` collection."""

    password_hash: str
