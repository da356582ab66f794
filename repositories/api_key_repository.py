"""
Async repositories for the `api_keys` and `api_key_usage` collections.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pymongo import DESCENDING

from schemas.models.api_key import ApiKeyDoc
from schemas.models.api_key_usage import ApiKeyUsageDoc
from schemas.models.base import to_object_id


class ApiKeyRepository:
    def __init__(self, collection) -> None:
        self._col = collection

    async def find_by_hash(self, key_hash: str) -> Optional[ApiKeyDoc]:
        return ApiKeyDoc.from_mongo(await self._col.find_one({"key_hash": key_hash}))

    async def insert(self, key: ApiKeyDoc) -> ApiKeyDoc:
        result = await self._col.insert_one(key.to_mongo())
        return key.model_copy(update={"id": result.inserted_id})

    async def list_active_by_account(self, account_id: Any) -> list[ApiKeyDoc]:
        cursor = self._col.find(
            {"account_id": to_object_id(account_id), "is_active": True}
        ).sort("created_at", DESCENDING)
        return [ApiKeyDoc.from_mongo(doc) async for doc in cursor]

    async def deactivate(self, key_id: Any, account_id: Any) -> bool:
        oid = to_object_id(key_id)
        if oid is None:
            return False
        result = await self._col.update_one(
            {"_id": oid, "account_id": to_object_id(account_id)},
            {"$set": {"is_active": False}},
        )
        return result.matched_count == 1

    async def touch_last_used(self, key_id: Any, when: datetime) -> None:
        await self._col.update_one(
            {"_id": to_object_id(key_id)}, {"$set": {"last_used_at": when}}
        )


class ApiKeyUsageRepository:
    def __init__(self, collection) -> None:
        self._col = collection

    async def insert(self, usage: ApiKeyUsageDoc) -> None:
        await self._col.insert_one(usage.to_mongo())

    async def list_recent(self, api_key_id: Any, limit: int = 50) -> list[ApiKeyUsageDoc]:
        cursor = (
            self._col.find({"api_key_id": to_object_id(api_key_id)})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        return [ApiKeyUsageDoc.from_mongo(doc) async for doc in cursor]
