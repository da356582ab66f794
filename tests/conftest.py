"""
Shared test fixtures.

In-memory stand-ins for the Mongo repositories, with the same async method
signatures, so services and routes can be exercised without a database.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import pytest
from bson import ObjectId

from schemas.models.account import AccountDoc
from schemas.models.api_key import ApiKeyDoc
from schemas.models.api_key_usage import ApiKeyUsageDoc
from schemas.models.base import to_object_id
from schemas.models.user import UserDoc


class FakeUserRepository:
    def __init__(self) -> None:
        self.docs: dict[ObjectId, UserDoc] = {}
        self.reads = 0

    async def get_by_id(self, user_id: Any) -> Optional[UserDoc]:
        self.reads += 1
        return self.docs.get(to_object_id(user_id))

    async def get_by_email(self, email: str) -> Optional[UserDoc]:
        return next((u for u in self.docs.values() if u.email == email), None)

    async def create(self, user: UserDoc) -> UserDoc:
        stored = user.model_copy(update={"id": user.id or ObjectId()})
        self.docs[stored.id] = stored
        return stored

    async def list_by_account(self, account_id: Any) -> list[UserDoc]:
        oid = to_object_id(account_id)
        return [u for u in self.docs.values() if u.account_id == oid]

    async def update(self, user_id: Any, account_id: Any, updates: dict) -> Optional[UserDoc]:
        current = self.docs.get(to_object_id(user_id))
        if current is None or current.account_id != to_object_id(account_id):
            return None
        data = current.model_dump(by_alias=True)
        data.update(updates)
        updated = UserDoc.model_validate(data)
        self.docs[updated.id] = updated
        return updated

    async def delete(self, user_id: Any, account_id: Any) -> bool:
        current = self.docs.get(to_object_id(user_id))
        if current is None or current.account_id != to_object_id(account_id):
            return False
        del self.docs[current.id]
        return True


class FakeAccountRepository:
    def __init__(self) -> None:
        self.docs: dict[ObjectId, AccountDoc] = {}

    async def create(self, account: AccountDoc) -> AccountDoc:
        stored = account.model_copy(update={"id": ObjectId()})
        self.docs[stored.id] = stored
        return stored


class FakeApiKeyRepository:
    def __init__(self) -> None:
        self.docs: dict[ObjectId, ApiKeyDoc] = {}
        self.lookups = 0

    async def find_by_hash(self, key_hash: str) -> Optional[ApiKeyDoc]:
        self.lookups += 1
        return next((k for k in self.docs.values() if k.key_hash == key_hash), None)

    async def insert(self, key: ApiKeyDoc) -> ApiKeyDoc:
        stored = key.model_copy(update={"id": ObjectId()})
        self.docs[stored.id] = stored
        return stored

    async def list_active_by_account(self, account_id: Any) -> list[ApiKeyDoc]:
        oid = to_object_id(account_id)
        return [k for k in self.docs.values() if k.account_id == oid and k.is_active]

    async def deactivate(self, key_id: Any, account_id: Any) -> bool:
        key = self.docs.get(to_object_id(key_id))
        if key is None or key.account_id != to_object_id(account_id):
            return False
        self.docs[key.id] = key.model_copy(update={"is_active": False})
        return True

    async def touch_last_used(self, key_id: Any, when: datetime) -> None:
        key = self.docs.get(to_object_id(key_id))
        if key is not None:
            self.docs[key.id] = key.model_copy(update={"last_used_at": when})


class FakeApiKeyUsageRepository:
    def __init__(self) -> None:
        self.records: list[ApiKeyUsageDoc] = []

    async def insert(self, usage: ApiKeyUsageDoc) -> None:
        self.records.append(usage)

    async def list_recent(self, api_key_id: Any, limit: int = 50) -> list[ApiKeyUsageDoc]:
        oid = to_object_id(api_key_id)
        matching = [r for r in self.records if r.api_key_id == oid]
        return list(reversed(matching))[:limit]


@pytest.fixture
def user_repo() -> FakeUserRepository:
    return FakeUserRepository()


@pytest.fixture
def account_repo() -> FakeAccountRepository:
    return FakeAccountRepository()


@pytest.fixture
def api_key_repo() -> FakeApiKeyRepository:
    return FakeApiKeyRepository()


@pytest.fixture
def usage_repo() -> FakeApiKeyUsageRepository:
    return FakeApiKeyUsageRepository()
