from __future__ import annotations

import asyncio
import enum
import logging
import time
from pathlib import Path
from typing import Awaitable, Callable

from .errors import WriteFailure

logger = logging.getLogger(__name__)


class SchedulerState(enum.Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    WRITING = "writing"
    FAILED = "failed"


class WriteScheduler:
    """
    Debounces and coalesces writes of a whole store to disk.

    - At most one write runs at a time.
    - Every `sync()` issued before a write starts shares that write's future.
    - Every `sync()` issued while a write runs shares a single follow-up write.
    - Writes are spaced at least `write_delay` ms apart (measured from the end of
      the previous write, or from construction for the first one).

    `writer` is called at write start and is responsible for capturing the
    current state, so a write always persists the newest table.
    """

    def __init__(self, writer: Callable[[], Awaitable[None]], *, path: Path, write_delay: int = 0):
        self._writer = writer
        self._path = path
        self._write_delay = write_delay / 1000.0

        self.state = SchedulerState.IDLE
        self.last_error: WriteFailure | None = None
        self.writes = 0

        self._last_written = time.monotonic()
        self._timer: asyncio.TimerHandle | None = None
        self._pending: asyncio.Future[None] | None = None
        self._outstanding: asyncio.Future[None] | None = None
        self._task: asyncio.Task[None] | None = None

    def sync(self) -> asyncio.Future[None]:
        loop = asyncio.get_running_loop()

        if self.state is SchedulerState.SCHEDULED:
            assert self._pending is not None
            return self._pending

        if self.state is SchedulerState.WRITING:
            if self._outstanding is None:
                logger.debug("write in progress for %s; queueing one more", self._path)
                self._outstanding = loop.create_future()
            return self._outstanding

        # IDLE or FAILED
        self._pending = loop.create_future()
        self._schedule(loop)
        return self._pending

    def _schedule(self, loop: asyncio.AbstractEventLoop) -> None:
        delay = max(0.0, self._last_written + self._write_delay - time.monotonic())
        self.state = SchedulerState.SCHEDULED
        logger.debug("write of %s scheduled in %.3fs", self._path, delay)
        self._timer = loop.call_later(delay, self._start_write)

    def _start_write(self) -> None:
        self._timer = None
        self.state = SchedulerState.WRITING
        self._task = asyncio.get_running_loop().create_task(self._run_write())

    async def _run_write(self) -> None:
        current = self._pending
        assert current is not None
        try:
            await self._writer()
        except Exception as exc:
            if isinstance(exc, WriteFailure):
                failure = exc
            else:
                failure = WriteFailure(str(exc) or type(exc).__name__, self._path, exc)
                failure.__cause__ = exc
            logger.warning("DB SAVE: failed to write %s: %r", self._path, failure.cause or failure)
            self._fail(current, failure)
            return
        finally:
            self._task = None

        self.writes += 1
        self._last_written = time.monotonic()
        self.last_error = None
        _resolve(current)

        if self._outstanding is not None:
            self._pending, self._outstanding = self._outstanding, None
            self._schedule(asyncio.get_running_loop())
        else:
            self._pending = None
            self.state = SchedulerState.IDLE

    def _fail(self, current: asyncio.Future[None], failure: WriteFailure) -> None:
        # Nothing is retried: waiters of the in-flight and of the queued write both see the failure.
        waiters = [current]
        if self._outstanding is not None:
            waiters.append(self._outstanding)
        self._pending = None
        self._outstanding = None
        self.last_error = failure
        self.state = SchedulerState.FAILED
        for fut in waiters:
            if not fut.done():
                fut.set_exception(failure)


def _resolve(fut: asyncio.Future[None]) -> None:
    if not fut.done():
        fut.set_result(None)
