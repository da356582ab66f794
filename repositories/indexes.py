"""
Index creation for the auth collections, run once from the app lifespan.
"""

from __future__ import annotations

from pymongo import ASCENDING, DESCENDING

from shared.logging import get_logger

log = get_logger(__name__)

USERS = "users"
ACCOUNTS = "accounts"
API_KEYS = "api_keys"
API_KEY_USAGE = "api_key_usage"


async def ensure_indexes(db) -> None:
    await db[USERS].create_index([("email", ASCENDING)], unique=True)
    await db[USERS].create_index([("account_id", ASCENDING), ("created_at", DESCENDING)])

    await db[API_KEYS].create_index([("key_hash", ASCENDING)], unique=True)
    await db[API_KEYS].create_index([("account_id", ASCENDING), ("is_active", ASCENDING)])

    await db[API_KEY_USAGE].create_index(
        [("api_key_id", ASCENDING), ("created_at", DESCENDING)]
    )

    log.info("mongo_indexes_ensured")
