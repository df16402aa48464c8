"""Background recording of credential last-used timestamps.

The gate must not wait on this write, so updates are queued and drained by a
single worker task. Delivery is at-most-once: a full queue drops the update,
and a failed write is logged and forgotten.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime

from keygate.telemetry.metrics import GateMetrics

from .models import utcnow
from .store import CredentialStore

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000


class LastUsedRecorder:
    """Queue-backed writer for Credential.last_used_at."""

    def __init__(
        self,
        store: CredentialStore,
        max_queue_size: int = DEFAULT_QUEUE_SIZE,
        metrics: GateMetrics | None = None,
    ):
        """Initialize recorder.

        Args:
            store: Credential store receiving the updates
            max_queue_size: Pending updates kept before new ones are dropped
            metrics: Optional metrics for dropped updates
        """
        self._store = store
        self._queue: asyncio.Queue[tuple[str, datetime]] = asyncio.Queue(maxsize=max_queue_size)
        self._metrics = metrics
        self._task: asyncio.Task | None = None
        self.dropped = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        """Updates waiting to be written."""
        return self._queue.qsize()

    def schedule(self, credential_id: str, when: datetime | None = None) -> bool:
        """Queue an update without waiting.

        Returns:
            True if queued, False if dropped
        """
        try:
            self._queue.put_nowait((credential_id, when or utcnow()))
        except asyncio.QueueFull:
            self.dropped += 1
            if self._metrics:
                self._metrics.record_last_used_dropped()
            logger.debug(f"[AUTH] Dropped last-used update for {credential_id}")
            return False
        return True

    async def start(self) -> None:
        """Start the worker task."""
        if self.running:
            return
        # A queue binds to the loop that first waits on it; rebuild it so the
        # recorder can be restarted under a new loop.
        queue: asyncio.Queue[tuple[str, datetime]] = asyncio.Queue(maxsize=self._queue.maxsize)
        while not self._queue.empty():
            queue.put_nowait(self._queue.get_nowait())
        self._queue = queue
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Write what is already queued, then stop the worker."""
        if self._task is None:
            return
        await self.flush()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def flush(self) -> None:
        """Wait until every queued update has been processed.

        Without a running worker the queue is drained inline.
        """
        if self.running:
            await self._queue.join()
            return
        while not self._queue.empty():
            credential_id, when = self._queue.get_nowait()
            await self._write(credential_id, when)
            self._queue.task_done()

    async def _run(self) -> None:
        while True:
            credential_id, when = await self._queue.get()
            try:
                await self._write(credential_id, when)
            finally:
                self._queue.task_done()

    async def _write(self, credential_id: str, when: datetime) -> None:
        try:
            await self._store.update_last_used(credential_id, when)
        except Exception as e:
            logger.warning(f"[AUTH] Failed to record last use of {credential_id}: {e}")
