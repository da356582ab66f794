"""
Fixed-window rate limiting for API-key traffic.

For key k at time t: when no window exists or t is past the window's reset
time, a new window starts (count=1, reset=t+window) and the request is
allowed. Otherwise the request is allowed while count < max_requests and
rejected after that, with ``retry_after = ceil((reset - t) / 1000)`` seconds.

Fixed windows admit up to 2x the nominal rate across a window boundary; that
burst is accepted behaviour of the algorithm.

Two backends share the same contract:

- InMemoryRateLimiter: process-local dict, not shared between workers and
  lost on restart. Mutated without awaits, so the event loop serialises it.
  sweep() evicts expired windows to bound memory.
- RedisRateLimiter: the `limits` fixed-window strategy over its async Redis
  storage, shared by every process that points at the same Redis. Windows
  are whole seconds there, so millisecond windows round up.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Protocol

from limits import RateLimitItemPerSecond
from limits.aio.storage import Storage
from limits.aio.strategies import FixedWindowRateLimiter
from limits.errors import StorageError
from limits.storage import storage_from_string
from redis.exceptions import RedisError

from shared.datetime_utils import ms_to_iso, now_ms as current_ms
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    retry_after: int = 0

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": ms_to_iso(self.reset_at_ms),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class RateLimiter(Protocol):
    async def check_and_consume(
        self,
        key_id: str,
        max_requests: int,
        window_ms: int,
        now_ms: Optional[int] = None,
    ) -> RateLimitDecision: ...


def _retry_after(reset_at_ms: int, now: int) -> int:
    return max(1, math.ceil((reset_at_ms - now) / 1000))


@dataclass
class _Window:
    count: int
    reset_at_ms: int


class InMemoryRateLimiter:
    def __init__(self) -> None:
        self._windows: dict[str, _Window] = {}

    def __len__(self) -> int:
        return len(self._windows)

    async def check_and_consume(
        self,
        key_id: str,
        max_requests: int,
        window_ms: int,
        now_ms: Optional[int] = None,
    ) -> RateLimitDecision:
        now = current_ms() if now_ms is None else now_ms
        window = self._windows.get(key_id)

        if window is None or now > window.reset_at_ms:
            window = _Window(count=1, reset_at_ms=now + window_ms)
            self._windows[key_id] = window
            return RateLimitDecision(
                allowed=True,
                limit=max_requests,
                remaining=max(0, max_requests - 1),
                reset_at_ms=window.reset_at_ms,
            )

        if window.count >= max_requests:
            return RateLimitDecision(
                allowed=False,
                limit=max_requests,
                remaining=0,
                reset_at_ms=window.reset_at_ms,
                retry_after=_retry_after(window.reset_at_ms, now),
            )

        window.count += 1
        return RateLimitDecision(
            allowed=True,
            limit=max_requests,
            remaining=max_requests - window.count,
            reset_at_ms=window.reset_at_ms,
        )

    def sweep(self, now_ms: Optional[int] = None) -> int:
        """Drop windows whose reset time has passed. Returns the number evicted."""
        now = current_ms() if now_ms is None else now_ms
        expired = [k for k, w in self._windows.items() if now > w.reset_at_ms]
        for key_id in expired:
            del self._windows[key_id]
        return len(expired)


def create_rate_limit_storage(redis_uri: str) -> Storage:
    """Async `limits` storage on redis-py for *redis_uri* (redis:// or rediss://)."""
    return storage_from_string(
        f"async+{redis_uri}",
        implementation="redispy",
        key_prefix="ratelimit",
        wrap_exceptions=True,
    )


class RedisRateLimiter:
    """Fixed-window limiter backed by a shared `limits` storage.

    Storage failures fail open: the request is allowed and the error logged,
    so an unreachable Redis never takes the public API down with it.
    """

    def __init__(self, storage: Storage) -> None:
        self._strategy = FixedWindowRateLimiter(storage)

    async def check_and_consume(
        self,
        key_id: str,
        max_requests: int,
        window_ms: int,
        now_ms: Optional[int] = None,
    ) -> RateLimitDecision:
        now = current_ms() if now_ms is None else now_ms
        item = RateLimitItemPerSecond(max_requests, max(1, math.ceil(window_ms / 1000)))

        try:
            allowed = await self._strategy.hit(item, "apikey", key_id)
            stats = await self._strategy.get_window_stats(item, "apikey", key_id)
        except (StorageError, RedisError) as e:
            log.error(
                "rate_limit_backend_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            return RateLimitDecision(
                allowed=True,
                limit=max_requests,
                remaining=max_requests,
                reset_at_ms=now + window_ms,
            )

        reset_at_ms = int(stats.reset_time * 1000)
        if not allowed:
            return RateLimitDecision(
                allowed=False,
                limit=max_requests,
                remaining=0,
                reset_at_ms=reset_at_ms,
                retry_after=_retry_after(reset_at_ms, now),
            )

        return RateLimitDecision(
            allowed=True,
            limit=max_requests,
            remaining=max(0, int(stats.remaining)),
            reset_at_ms=reset_at_ms,
        )
