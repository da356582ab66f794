"""
Async repositories for the `users` and `accounts` collections.

Store errors propagate to the caller; the auth pipeline maps them to 500s.
"""

from __future__ import annotations

from typing import Any, Optional

from pymongo import DESCENDING, ReturnDocument

from schemas.models.account import AccountDoc
from schemas.models.base import to_object_id
from schemas.models.user import UserDoc


class UserRepository:
    def __init__(self, collection) -> None:
        self._col = collection

    async def get_by_id(self, user_id: Any) -> Optional[UserDoc]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return UserDoc.from_mongo(await self._col.find_one({"_id": oid}))

    async def get_by_email(self, email: str) -> Optional[UserDoc]:
        return UserDoc.from_mongo(await self._col.find_one({"email": email}))

    async def create(self, user: UserDoc) -> UserDoc:
        result = await self._col.insert_one(user.to_mongo())
        return user.model_copy(update={"id": result.inserted_id})

    async def list_by_account(self, account_id: Any) -> list[UserDoc]:
        cursor = self._col.find({"account_id": to_object_id(account_id)}).sort(
            "created_at", DESCENDING
        )
        return [UserDoc.from_mongo(doc) async for doc in cursor]

    async def update(
        self, user_id: Any, account_id: Any, updates: dict
    ) -> Optional[UserDoc]:
        """Apply *updates* to a user of *account_id*; None when no such user."""
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = await self._col.find_one_and_update(
            {"_id": oid, "account_id": to_object_id(account_id)},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        return UserDoc.from_mongo(doc)

    async def delete(self, user_id: Any, account_id: Any) -> bool:
        oid = to_object_id(user_id)
        if oid is None:
            return False
        result = await self._col.delete_one(
            {"_id": oid, "account_id": to_object_id(account_id)}
        )
        return result.deleted_count == 1


class AccountRepository:
    def __init__(self, collection) -> None:
        self._col = collection

    async def create(self, account: AccountDoc) -> AccountDoc:
        result = await self._col.insert_one(account.to_mongo())
        return account.model_copy(update={"id": result.inserted_id})
