"""
API key validation and administration.

Machine callers authenticate with ``Authorization: Bearer pk_<secret>``. The
header shape is checked before any store access so malformed credentials are
rejected without a lookup. Keys are resolved by the SHA-256 of the full key
and must be active and unexpired.

Rejected keys never produce a usage record (there is no key id to attribute
it to); they are reported as a structured ``api_key_rejected`` warning only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from errors import (
    ApiKeyMissingError,
    AuthenticationFailedError,
    InvalidApiKeyError,
    MalformedCredentialError,
    NotFoundError,
    ValidationError,
)
from repositories.api_key_repository import ApiKeyRepository, ApiKeyUsageRepository
from schemas.models.api_key import ApiKeyDoc
from schemas.models.api_key_usage import ApiKeyUsageDoc
from shared.crypto import API_KEY_PREFIX, display_prefix, generate_api_key, hash_api_key
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)

DEFAULT_KEY_LIFETIME = timedelta(days=365)


@dataclass(frozen=True)
class ApiKeyIdentity:
    """The resolved machine caller attached to request.state.api_key."""

    key_id: str
    account_id: str


@dataclass(frozen=True)
class CreatedApiKey:
    key: ApiKeyDoc
    plaintext: str


def parse_api_key_header(authorization: Optional[str]) -> str:
    """Return the ``pk_...`` key from an ``Authorization`` header.

    Raises ApiKeyMissingError when the header is absent and
    MalformedCredentialError for any shape other than ``Bearer pk_<secret>``.
    """
    if authorization is None:
        raise ApiKeyMissingError()

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise MalformedCredentialError()

    key = parts[1]
    if not key.startswith(API_KEY_PREFIX) or len(key) == len(API_KEY_PREFIX):
        raise MalformedCredentialError()
    return key


class ApiKeyService:
    def __init__(
        self,
        keys: ApiKeyRepository,
        usage: Optional[ApiKeyUsageRepository] = None,
    ) -> None:
        self._keys = keys
        self._usage = usage

    async def authenticate(
        self, authorization: Optional[str], *, ip_hash: Optional[str] = None
    ) -> ApiKeyIdentity:
        raw_key = parse_api_key_header(authorization)

        try:
            key = await self._keys.find_by_hash(hash_api_key(raw_key))
        except Exception as e:
            log.error(
                "api_key_lookup_failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=e,
            )
            raise AuthenticationFailedError()

        reason = None
        if key is None:
            reason = "not_found"
        elif not key.is_active:
            reason = "inactive"
        elif key.is_expired(utcnow()):
            reason = "expired"

        if reason is not None:
            log.warning("api_key_rejected", reason=reason, ip_hash=ip_hash)
            raise InvalidApiKeyError()

        return ApiKeyIdentity(key_id=str(key.id), account_id=str(key.account_id))

    # ── Administration ───────────────────────────────────────────────────────

    async def create_key(
        self,
        account_id: str,
        *,
        name: str,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> CreatedApiKey:
        now = utcnow()
        if expires_at is None:
            expires_at = now + DEFAULT_KEY_LIFETIME
        elif expires_at <= now:
            raise ValidationError("expires_at must be in the future")

        plaintext = generate_api_key()
        key = await self._keys.insert(
            ApiKeyDoc(
                account_id=account_id,
                name=name,
                description=description,
                key_prefix=display_prefix(plaintext),
                key_hash=hash_api_key(plaintext),
                expires_at=expires_at,
                is_active=True,
                created_at=now,
            )
        )
        log.info("api_key_created", key_id=str(key.id), account_id=account_id)
        return CreatedApiKey(key=key, plaintext=plaintext)

    async def list_keys(self, account_id: str) -> list[ApiKeyDoc]:
        return await self._keys.list_active_by_account(account_id)

    async def revoke_key(self, key_id: str, account_id: str) -> None:
        if not await self._keys.deactivate(key_id, account_id):
            raise NotFoundError("API key not found")
        log.info("api_key_revoked", key_id=key_id, account_id=account_id)

    async def recent_usage(self, key_id: str, limit: int = 50) -> list[ApiKeyUsageDoc]:
        if self._usage is None:
            return []
        return await self._usage.list_recent(key_id, limit=limit)
