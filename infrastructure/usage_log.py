"""API key usage trail writer.

submit() is called from the request path and never blocks: records go onto a
bounded asyncio.Queue and a single worker task persists them. When the queue
is full the record is dropped with a warning. Write failures are logged and
swallowed so the audit trail can never affect a response. stop() drains what
is queued (bounded by a timeout) before cancelling the worker.
"""

import asyncio
import contextlib
from typing import Optional

from repositories.api_key_repository import ApiKeyRepository, ApiKeyUsageRepository
from schemas.models.api_key_usage import ApiKeyUsageDoc
from shared.logging import get_logger

log = get_logger(__name__)


class ApiKeyUsageLogger:
    def __init__(
        self,
        usage: ApiKeyUsageRepository,
        keys: ApiKeyRepository,
        max_queue_size: int = 1000,
    ) -> None:
        self._usage = usage
        self._keys = keys
        self._queue: asyncio.Queue[ApiKeyUsageDoc] = asyncio.Queue(maxsize=max_queue_size)
        self._worker: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="api-key-usage-logger")

    def submit(self, record: ApiKeyUsageDoc) -> bool:
        try:
            self._queue.put_nowait(record)
            return True
        except asyncio.QueueFull:
            log.warning(
                "api_key_usage_dropped",
                key_id=str(record.api_key_id),
                reason="queue_full",
            )
            return False

    async def _run(self) -> None:
        while True:
            record = await self._queue.get()
            try:
                await self.write(record)
            finally:
                self._queue.task_done()

    async def write(self, record: ApiKeyUsageDoc) -> None:
        try:
            await self._usage.insert(record)
            await self._keys.touch_last_used(record.api_key_id, record.created_at)
        except Exception as e:
            log.error(
                "api_key_usage_write_failed",
                key_id=str(record.api_key_id),
                error=str(e),
                error_type=type(e).__name__,
            )

    async def stop(self, timeout: float = 5.0) -> None:
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            log.warning("api_key_usage_drain_timeout", pending=self._queue.qsize())
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
