"""
Role hierarchy and feature-permission resolution.

Roles are ordered: admin > coordenador > assessor. A guard listing several
roles is satisfied when the caller meets the level of any of them, which is
the same as meeting the least-privileged role in the list.

Pure functions only; the FastAPI guards in dependencies.py wrap them.
"""

from __future__ import annotations

from typing import Iterable, Optional

from schemas.models.user import DEFAULT_PERMISSIONS, Role, UserPermissions, UserProfile

ROLE_HIERARCHY: dict[str, int] = {
    Role.ASSESSOR.value: 1,
    Role.COORDENADOR.value: 2,
    Role.ADMIN.value: 3,
}

# Callers whose role was never resolved are treated as the lowest role
LOWEST_ROLE = Role.ASSESSOR.value


def role_level(role: Optional[str]) -> int:
    """Hierarchy level of *role*; unknown roles rank below every known one."""
    if role is None:
        return 0
    return ROLE_HIERARCHY.get(str(role), 0)


def has_required_role(user_role: Optional[str], allowed_roles: Iterable[str]) -> bool:
    user_level = role_level(user_role or LOWEST_ROLE)
    return any(user_level >= role_level(role) for role in allowed_roles)


def is_admin(role: Optional[str]) -> bool:
    return role == Role.ADMIN.value


def can_modify_resource(user_role: Optional[str], required_role: Optional[str]) -> bool:
    return role_level(user_role) >= role_level(required_role)


def default_permissions_for(role: Optional[str]) -> UserPermissions:
    try:
        return DEFAULT_PERMISSIONS[Role(role)]
    except ValueError:
        return DEFAULT_PERMISSIONS[Role.ASSESSOR]


def resolve_permissions(user: UserProfile) -> UserPermissions:
    """Stored permissions when present, otherwise the role's defaults."""
    if user.permissions is not None:
        return user.permissions
    return default_permissions_for(user.role)


def has_permission(permissions: Optional[UserPermissions], flag: str) -> bool:
    if permissions is None:
        return False
    return bool(getattr(permissions, flag, False))
