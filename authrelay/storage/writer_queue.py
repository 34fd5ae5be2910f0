"""Single-writer queue that serializes store mutations on one worker task."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Protocol, TypeVar, cast

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)


class WriterQueueProtocol(Protocol):
    """Submit contract shared by the real queue and test doubles."""

    async def submit(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run one async write operation and return its result."""
        ...


@dataclass(slots=True)
class _WriteJob:
    operation: Callable[[], Awaitable[object]]
    completion: asyncio.Future[object]


_STOP: Final[object] = object()


class WriterQueueClosedError(RuntimeError):
    """Raised when work is submitted after the queue was closed."""

    @classmethod
    def default_message(cls) -> WriterQueueClosedError:
        """Build deterministic error text for closed queue submissions."""
        return cls("Writer queue is closed and cannot accept new jobs.")


class WriterQueue:
    """Run submitted write jobs strictly one at a time, in FIFO order."""

    _jobs: asyncio.Queue[_WriteJob | object]
    _worker: asyncio.Task[None] | None
    _lock: asyncio.Lock
    _closed: bool

    def __init__(self) -> None:
        """Create an idle queue; the worker starts on first submit."""
        self._jobs = asyncio.Queue()
        self._worker = None
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def pending(self) -> int:
        """Return the number of jobs waiting for the worker."""
        return self._jobs.qsize()

    async def submit(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Enqueue a write and wait for its result or exception."""
        loop = asyncio.get_running_loop()
        job = _WriteJob(
            operation=cast("Callable[[], Awaitable[object]]", operation),
            completion=loop.create_future(),
        )
        async with self._lock:
            if self._closed:
                raise WriterQueueClosedError.default_message()
            if self._worker is None or self._worker.done():
                self._worker = asyncio.create_task(self._drain())
            await self._jobs.put(job)
        return cast("T", await job.completion)

    async def close(self) -> None:
        """Refuse new jobs, finish queued ones, then stop the worker."""
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            worker = self._worker
            if worker is None:
                return
            await self._jobs.put(_STOP)
        await worker
        self._worker = None

    async def _drain(self) -> None:
        while True:
            item = await self._jobs.get()
            try:
                if item is _STOP:
                    return
                await _run_job(cast("_WriteJob", item))
            finally:
                self._jobs.task_done()


async def _run_job(job: _WriteJob) -> None:
    try:
        result = await job.operation()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Queued write failed with %s", type(exc).__name__)
        if not job.completion.cancelled():
            job.completion.set_exception(exc)
        return
    if not job.completion.cancelled():
        job.completion.set_result(result)
