"""Bounded async worker pool."""

import asyncio
import logging
from typing import Awaitable, Callable

from ..exceptions import PoolClosedError

logger = logging.getLogger(__name__)

Task = Callable[[], Awaitable[None]]
PanicHandler = Callable[[BaseException], None]


def _log_panic(error: BaseException) -> None:
    logger.error(f"Task failed with unexpected error: {error!r}", exc_info=error)


class WorkerPool:
    """Fixed number of workers consuming a bounded task queue.

    ``submit`` waits while the queue is full. Once ``cancel`` is called,
    queued tasks are dropped without running; a task already running is
    left to finish.
    """

    def __init__(self, size: int, panic_handler: PanicHandler | None = None) -> None:
        if size < 1:
            raise ValueError(f"pool size must be at least 1: {size}")
        self.size = size
        self.panic_handler = panic_handler or _log_panic
        self._queue: asyncio.Queue[Task] = asyncio.Queue(maxsize=size)
        self._workers: list[asyncio.Task] = []
        self._cancelled = asyncio.Event()
        self._closed = False
        self.running = 0
        self.peak = 0
        self.completed = 0
        self.dropped = 0

    async def __aenter__(self) -> "WorkerPool":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.release()

    @property
    def cancelled(self) -> asyncio.Event:
        return self._cancelled

    def start(self) -> None:
        if self._closed:
            raise PoolClosedError("pool already released")
        if not self._workers:
            self._workers = [
                asyncio.create_task(self._worker(), name=f"imgsync-worker-{i}")
                for i in range(self.size)
            ]

    async def submit(self, task: Task) -> bool:
        """Queue a task, waiting for room if the pool is saturated.

        Returns:
            False if the pool was cancelled and the task was not queued

        Raises:
            PoolClosedError: If the pool has been released
        """
        if self._closed:
            raise PoolClosedError("cannot submit to a released pool")
        if self._cancelled.is_set():
            return False
        await self._queue.put(task)
        return True

    def cancel(self) -> None:
        """Stop starting new tasks."""
        self._cancelled.set()

    async def join(self) -> None:
        """Wait until every queued task has run or been dropped."""
        await self._queue.join()

    async def release(self) -> None:
        """Stop all workers. Queued tasks that have not started are dropped."""
        if self._closed:
            return
        self._closed = True
        self.cancel()
        await self.join()
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

    async def _worker(self) -> None:
        while True:
            task = await self._queue.get()
            try:
                if self._cancelled.is_set():
                    self.dropped += 1
                    continue
                self.running += 1
                self.peak = max(self.peak, self.running)
                try:
                    await task()
                    self.completed += 1
                except Exception as e:
                    self.panic_handler(e)
                finally:
                    self.running -= 1
            finally:
                self._queue.task_done()
