"""Unit tests for API key header parsing, validation and administration."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from errors import (
    ApiKeyMissingError,
    AuthenticationFailedError,
    InvalidApiKeyError,
    MalformedCredentialError,
    NotFoundError,
    ValidationError,
)
from schemas.models.api_key import ApiKeyDoc
from services.api_key_service import (
    DEFAULT_KEY_LIFETIME,
    ApiKeyService,
    parse_api_key_header,
)
from shared.crypto import hash_api_key

KEY = "pk_" + "A" * 43


def _stored(**overrides) -> ApiKeyDoc:
    base = dict(
        _id=ObjectId(),
        account_id=ObjectId(),
        name="Zapier",
        key_prefix="pk_AAAAAAAA...",
        key_hash=hash_api_key(KEY),
        is_active=True,
        expires_at=datetime.now(timezone.utc) + timedelta(days=30),
    )
    base.update(overrides)
    return ApiKeyDoc(**base)


def _repo(found=None) -> MagicMock:
    repo = MagicMock()
    repo.find_by_hash = AsyncMock(return_value=found)
    repo.insert = AsyncMock(side_effect=lambda doc: doc.model_copy(update={"id": ObjectId()}))
    repo.list_active_by_account = AsyncMock(return_value=[])
    repo.deactivate = AsyncMock(return_value=True)
    return repo


# ── Header parsing ────────────────────────────────────────────────────────────


def test_missing_header():
    with pytest.raises(ApiKeyMissingError):
        parse_api_key_header(None)


@pytest.mark.parametrize(
    "header",
    [
        "",
        "Bearer",
        "Basic pk_abc",
        "bearer pk_abc",
        "Bearer sk_abc",
        "Bearer pk_",
        "Bearer  pk_abc",
        "Bearer pk_abc extra",
        "pk_abc",
    ],
)
def test_malformed_header(header):
    with pytest.raises(MalformedCredentialError):
        parse_api_key_header(header)


def test_well_formed_header():
    assert parse_api_key_header(f"Bearer {KEY}") == KEY


# ── authenticate ──────────────────────────────────────────────────────────────


class TestAuthenticate:
    async def test_valid_key(self):
        stored = _stored()
        repo = _repo(stored)
        identity = await ApiKeyService(repo).authenticate(f"Bearer {KEY}")
        assert identity.key_id == str(stored.id)
        assert identity.account_id == str(stored.account_id)
        repo.find_by_hash.assert_awaited_once_with(hash_api_key(KEY))

    @pytest.mark.parametrize("header", [None, "Token abc", "Bearer sk_live"])
    async def test_bad_shape_never_hits_store(self, header):
        repo = _repo(_stored())
        with pytest.raises((ApiKeyMissingError, MalformedCredentialError)):
            await ApiKeyService(repo).authenticate(header)
        repo.find_by_hash.assert_not_awaited()

    @pytest.mark.parametrize(
        "stored",
        [
            None,
            _stored(is_active=False),
            _stored(expires_at=datetime.now(timezone.utc) - timedelta(seconds=1)),
        ],
        ids=["unknown", "revoked", "expired"],
    )
    async def test_rejected_keys(self, stored):
        with pytest.raises(InvalidApiKeyError):
            await ApiKeyService(_repo(stored)).authenticate(f"Bearer {KEY}")

    async def test_key_without_expiry_is_valid(self):
        identity = await ApiKeyService(_repo(_stored(expires_at=None))).authenticate(
            f"Bearer {KEY}"
        )
        assert identity.key_id

    async def test_store_failure_is_500(self):
        repo = _repo()
        repo.find_by_hash.side_effect = RuntimeError("mongo down")
        with pytest.raises(AuthenticationFailedError):
            await ApiKeyService(repo).authenticate(f"Bearer {KEY}")


# ── Administration ────────────────────────────────────────────────────────────


class TestCreateKey:
    async def test_returns_plaintext_once_and_stores_hash(self):
        repo = _repo()
        account_id = str(ObjectId())
        created = await ApiKeyService(repo).create_key(account_id, name="Zapier")

        stored = repo.insert.await_args.args[0]
        assert created.plaintext.startswith("pk_")
        assert stored.key_hash == hash_api_key(created.plaintext)
        assert created.plaintext not in stored.model_dump_json()
        assert stored.key_prefix == created.plaintext[:11] + "..."
        assert created.key.id is not None

    async def test_default_expiry_one_year(self):
        repo = _repo()
        created = await ApiKeyService(repo).create_key(str(ObjectId()), name="Zapier")
        lifetime = created.key.expires_at - created.key.created_at
        assert lifetime == DEFAULT_KEY_LIFETIME

    async def test_past_expiry_rejected(self):
        past = datetime.now(timezone.utc) - timedelta(days=1)
        with pytest.raises(ValidationError):
            await ApiKeyService(_repo()).create_key(
                str(ObjectId()), name="Zapier", expires_at=past
            )


class TestRevokeKey:
    async def test_revoke(self):
        repo = _repo()
        await ApiKeyService(repo).revoke_key("k1", "a1")
        repo.deactivate.assert_awaited_once_with("k1", "a1")

    async def test_unknown_key(self):
        repo = _repo()
        repo.deactivate.return_value = False
        with pytest.raises(NotFoundError):
            await ApiKeyService(repo).revoke_key("k1", "a1")


async def test_recent_usage_without_repository_is_empty():
    assert await ApiKeyService(_repo()).recent_usage("k1") == []


async def test_recent_usage_delegates():
    usage = MagicMock()
    usage.list_recent = AsyncMock(return_value=["r"])
    assert await ApiKeyService(_repo(), usage).recent_usage("k1", limit=5) == ["r"]
    usage.list_recent.assert_awaited_once_with("k1", limit=5)
