"""Bounded-concurrency upload scheduler."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from backup_folder.exceptions import UploadError
from backup_folder.models.upload import UploadStats, UploadTask
from backup_folder.services.format_service import format_size
from backup_folder.services.retry_service import DEFAULT_MAX_ATTEMPTS, with_retries

if TYPE_CHECKING:
    from backup_folder.storage.base import ObjectStore

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 100


class UploadScheduler:
    """Runs uploads concurrently, at most ``concurrency`` at a time.

    ``submit()`` suspends the caller while the worker budget is saturated, so
    the directory walk and the uploads proceed together. ``drain()`` waits for
    everything submitted so far and raises ``UploadError`` if any upload
    exhausted its retries. Failures never cancel other uploads.

    Blocking ``ObjectStore.put`` calls run on a thread pool of the same size.
    Counters and the in-flight gauge are only touched on the event loop
    thread.

    Args:
        store: Destination object store.
        concurrency: Maximum number of uploads in flight.
        max_attempts: Attempts per file before it counts as failed.
        dry_run: Log what would be uploaded without calling the store.
        quiet: Suppress the per-file progress lines.
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        dry_run: bool = False,
        quiet: bool = False,
    ) -> None:
        if concurrency < 1:
            msg = f"concurrency must be >= 1, got {concurrency}"
            raise ValueError(msg)
        if max_attempts < 1:
            msg = f"max_attempts must be >= 1, got {max_attempts}"
            raise ValueError(msg)
        self._store = store
        self._concurrency = concurrency
        self._max_attempts = max_attempts
        self._dry_run = dry_run
        self._quiet = quiet
        self._semaphore = asyncio.Semaphore(concurrency)
        self._executor: ThreadPoolExecutor | None = None
        self._pending: set[asyncio.Task[None]] = set()
        self._failures: list[tuple[UploadTask, Exception]] = []
        self._completed = 0
        self.stats = UploadStats()
        self.in_flight = 0
        self.peak_in_flight = 0

    @property
    def pending(self) -> int:
        """Number of submitted uploads that have not finished yet."""
        return len(self._pending)

    async def __aenter__(self) -> UploadScheduler:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def submit(self, task: UploadTask) -> None:
        """Schedule ``task``, waiting for a free slot if the budget is used up."""
        await self._semaphore.acquire()
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        running = asyncio.create_task(self._run(task))
        self._pending.add(running)
        running.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait until every submitted upload has completed or failed.

        Raises:
            UploadError: For the first failed upload, after all others finished.
        """
        while self._pending:
            await asyncio.gather(*self._pending)

        if self._failures:
            failures, self._failures = self._failures, []
            task, exc = failures[0]
            raise UploadError(task, failed_count=len(failures)) from exc

    async def close(self) -> None:
        """Let in-flight uploads finish, then release the thread pool. Idempotent."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    async def _run(self, task: UploadTask) -> None:
        try:
            if not self._dry_run:
                await with_retries(
                    lambda: self._put(task),
                    max_attempts=self._max_attempts,
                    description=f"Upload of {task.key}",
                )
        except Exception as exc:
            logger.error(
                "Giving up on %s after %d attempt(s): %s", task.source, self._max_attempts, exc
            )
            self._failures.append((task, exc))
        else:
            self.stats.record(task)
            self._report(task)
        finally:
            self.in_flight -= 1
            self._semaphore.release()

    async def _put(self, task: UploadTask) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._get_executor(), self._store.put, task.source, task.key)

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._concurrency, thread_name_prefix="upload"
            )
        return self._executor

    def _report(self, task: UploadTask) -> None:
        self._completed += 1
        if self._quiet:
            return
        label = "would upload" if self._dry_run else "uploaded"
        logger.info("%d %s %s (%s)", self._completed, label, task.key, format_size(task.size))
