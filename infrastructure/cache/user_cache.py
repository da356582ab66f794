"""Short-lived Redis cache for session subject lookups.

Stores UserProfile as JSON (not pickle) so cache entries are debuggable;
the password hash never leaves Mongo. The TTL bounds how long a role or
permission change can go unnoticed; user updates and deletes invalidate the
entry immediately. Every Redis failure degrades to a cache miss.
"""

from typing import Optional

import redis.asyncio as aioredis

from schemas.models.user import UserDoc, UserProfile
from shared.logging import get_logger

log = get_logger(__name__)


class UserCache:
    def __init__(
        self, redis_client: Optional[aioredis.Redis], ttl_seconds: int = 5
    ) -> None:
        self._redis = redis_client
        self.ttl_seconds = ttl_seconds

    def _key(self, user_id: str) -> str:
        return f"session_user:{user_id}"

    async def get(self, user_id: str) -> Optional[UserProfile]:
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(self._key(user_id))
            if raw is None:
                return None
            return UserProfile.model_validate_json(raw)
        except Exception as e:
            log.warning("user_cache_get_error", user_id=user_id, error=str(e))
            return None

    async def set(self, user: UserDoc) -> None:
        if self._redis is None or user.id is None:
            return
        try:
            await self._redis.setex(
                self._key(str(user.id)),
                self.ttl_seconds,
                user.model_dump_json(by_alias=True, exclude={"password_hash"}),
            )
        except Exception as e:
            log.error("user_cache_set_error", user_id=str(user.id), error=str(e))

    async def invalidate(self, user_id: str) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.delete(self._key(user_id))
        except Exception as e:
            log.error("user_cache_invalidate_error", user_id=user_id, error=str(e))
