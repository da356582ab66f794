"""
Session authentication and user administration.

resolve_session() is the trust boundary for human callers: the token proves
identity only, and the role/permissions handed downstream are always read from
the stored user record, so privilege changes apply on the next request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from errors import (
    ForbiddenError,
    InvalidCredentialsError,
    NotFoundError,
    PermissionDeniedError,
    SubjectNotFoundError,
    ValidationError,
)
from infrastructure.cache.user_cache import UserCache
from repositories.user_repository import AccountRepository, UserRepository
from schemas.models.account import AccountDoc
from schemas.models.user import Role, UserDoc, UserPermissions, UserProfile
from services.authorization import (
    can_modify_resource,
    default_permissions_for,
    is_admin,
    resolve_permissions,
)
from services.token_service import TokenService
from shared.crypto import hash_password, verify_password
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """The verified caller attached to request.state.user."""

    id: str
    account_id: str
    email: str
    name: str
    role: str
    permissions: UserPermissions

    @classmethod
    def from_doc(cls, user: UserProfile) -> "CurrentUser":
        return cls(
            id=str(user.id),
            account_id=str(user.account_id),
            email=user.email,
            name=user.name,
            role=user.role,
            permissions=resolve_permissions(user),
        )


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: UserDoc


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        accounts: AccountRepository,
        tokens: TokenService,
        user_cache: Optional[UserCache] = None,
    ) -> None:
        self._users = users
        self._accounts = accounts
        self._tokens = tokens
        self._cache = user_cache

    # ── Session resolution ───────────────────────────────────────────────────

    async def resolve_session(self, token: Optional[str]) -> CurrentUser:
        claims = self._tokens.verify(token)

        user = await self._load_subject(claims.subject_id)
        if user is None:
            log.warning("session_subject_not_found", user_id=claims.subject_id)
            raise SubjectNotFoundError()

        if claims.role is not None and claims.role != user.role:
            log.debug(
                "session_role_changed",
                user_id=claims.subject_id,
                claimed_role=claims.role,
                current_role=user.role,
            )
        return CurrentUser.from_doc(user)

    async def _load_subject(self, user_id: str) -> Optional[UserProfile]:
        if self._cache is not None:
            cached = await self._cache.get(user_id)
            if cached is not None:
                return cached

        user = await self._users.get_by_id(user_id)
        if user is not None and self._cache is not None:
            await self._cache.set(user)
        return user

    async def forget_subject(self, user_id: str) -> None:
        if self._cache is not None:
            await self._cache.invalidate(user_id)

    # ── Registration / login ─────────────────────────────────────────────────

    def issue_for(self, user: UserDoc) -> str:
        return self._tokens.issue(str(user.id), user.role, str(user.account_id))

    async def register(
        self,
        *,
        email: str,
        password: str,
        name: str,
        phone: Optional[str] = None,
        permissions: Optional[UserPermissions] = None,
    ) -> AuthResult:
        """Create a new account whose first user is its admin."""
        if await self._users.get_by_email(email) is not None:
            raise ValidationError("Email já cadastrado")

        now = utcnow()
        account = await self._accounts.create(AccountDoc(name=name or email, created_at=now))
        user = await self._users.create(
            UserDoc(
                account_id=account.id,
                email=email,
                password_hash=hash_password(password),
                name=name,
                role=Role.ADMIN.value,
                permissions=permissions or default_permissions_for(Role.ADMIN.value),
                phone=phone,
                created_at=now,
            )
        )
        log.info("account_registered", account_id=str(account.id), user_id=str(user.id))
        return AuthResult(token=self.issue_for(user), user=user)

    async def login(self, *, email: str, password: str) -> AuthResult:
        user = await self._users.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            log.warning("login_failed", reason="bad_credentials")
            raise InvalidCredentialsError()

        log.info("user_login", user_id=str(user.id))
        return AuthResult(token=self.issue_for(user), user=user)

    # ── User administration (within the caller's account) ────────────────────

    async def get_user(self, user_id: str) -> UserDoc:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("Usuário não encontrado")
        return user

    async def list_users(self, account_id: str) -> list[UserDoc]:
        return await self._users.list_by_account(account_id)

    async def create_user(
        self,
        account_id: str,
        *,
        email: str,
        password: str,
        name: str,
        role: str,
        permissions: Optional[UserPermissions] = None,
    ) -> UserDoc:
        if await self._users.get_by_email(email) is not None:
            raise ValidationError("Email já cadastrado")

        # Permissions are always stored explicitly for users created by an admin
        user = await self._users.create(
            UserDoc(
                account_id=account_id,
                email=email,
                password_hash=hash_password(password),
                name=name,
                role=role,
                permissions=permissions or default_permissions_for(role),
                created_at=utcnow(),
            )
        )
        log.info("user_created", user_id=str(user.id), role=role)
        return user

    async def update_user(
        self, user_id: str, caller: CurrentUser, changes: dict
    ) -> UserDoc:
        account_id = caller.account_id
        current = await self._users.get_by_id(user_id)
        if current is None or str(current.account_id) != account_id:
            raise NotFoundError("Usuário não encontrado")

        updates = dict(changes)
        new_role = updates.get("role")
        if new_role is not None and not can_modify_resource(caller.role, new_role):
            raise ForbiddenError()

        new_email = updates.get("email")
        if new_email and new_email != current.email:
            if await self._users.get_by_email(new_email) is not None:
                raise ValidationError("Email já está em uso por outro usuário")

        password = updates.pop("password", None)
        if password:
            updates["password_hash"] = hash_password(password)

        if isinstance(updates.get("permissions"), UserPermissions):
            updates["permissions"] = updates["permissions"].model_dump()

        updated = await self._users.update(user_id, account_id, updates)
        if updated is None:
            raise NotFoundError("Usuário não encontrado")

        await self.forget_subject(user_id)
        log.info("user_updated", user_id=user_id, fields=sorted(changes))
        return updated

    async def delete_user(self, user_id: str, caller: CurrentUser) -> None:
        if user_id == caller.id:
            raise ValidationError("Você não pode excluir sua própria conta")

        user = await self._users.get_by_id(user_id)
        if user is None or str(user.account_id) != caller.account_id:
            raise NotFoundError("Usuário não encontrado")

        if is_admin(user.role):
            raise PermissionDeniedError("Não é permitido excluir usuários administradores")

        await self._users.delete(user_id, caller.account_id)
        await self.forget_subject(user_id)
        log.info("user_deleted", user_id=user_id, deleted_by=caller.id)
