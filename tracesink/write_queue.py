"""Durable write queue: ordered pending entries drained into one append file.

All state lives on a single asyncio event loop. Callers on other threads are
handed over with call_soon_threadsafe, so the queue, the cursor, the live
handle and the busy flag are only ever touched from the loop thread.
"""

import asyncio
import logging
import os

from tracesink.appender import open_append
from tracesink.diagnostics import get_diagnostics_logger, report
from tracesink.errors import CloseFailure, OpenFailure, TraceError, WriteFailure
from tracesink.models import LogEntry

DEFAULT_WRITE_RETRY_DELAY = 1.0
DEFAULT_OPEN_RETRY_DELAY = 5.0


class DurableWriteQueue:
    """FIFO of log entries written one at a time to a single live file.

    Entries before the cursor are written but kept until the writer catches
    up, at which point the list is reset to empty. A failed write leaves the
    cursor in place so the same entry is retried after write_retry_delay. A
    failed open is retried every open_retry_delay, forever.

    Construct it from inside the event loop it should run on, or pass the
    loop explicitly.
    """

    def __init__(
        self,
        opener=open_append,
        write_retry_delay: float = DEFAULT_WRITE_RETRY_DELAY,
        open_retry_delay: float = DEFAULT_OPEN_RETRY_DELAY,
        diagnostics: logging.Logger | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self._opener = opener
        self._write_retry_delay = write_retry_delay
        self._open_retry_delay = open_retry_delay
        self._diag = diagnostics or get_diagnostics_logger()
        self._loop = loop or asyncio.get_running_loop()

        self._queue: list[LogEntry] = []
        self._cursor = 0
        self._handle = None
        self._backup = None
        self._writing = False
        self._path = ""
        self._closed = False

        # Serializes I/O on handles so a switch never closes mid-write
        self._io_lock = asyncio.Lock()
        self._caught_up = asyncio.Event()
        self._caught_up.set()
        self._switch_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def path(self) -> str:
        """Most recently requested file path."""
        return self._path

    @property
    def pending(self) -> int:
        return len(self._queue) - self._cursor

    @property
    def writing(self) -> bool:
        return self._writing

    @property
    def has_handle(self) -> bool:
        return self._handle is not None

    # -- public entry points (never raise) --

    def log_message(self, kind: str, message) -> None:
        """Queue a message; starts the writer if it is idle."""
        self._dispatch(self._enqueue, LogEntry(kind, str(message)))

    def set_file(self, path) -> None:
        """Switch the trace file, closing the current one first."""
        self._dispatch(self._switch_file, os.fspath(path))

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait until every queued entry is written. False on timeout."""
        try:
            await asyncio.wait_for(self._caught_up.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def aclose(self) -> None:
        """Stop all retries and close the live handle.

        Waits for a write already in flight so the handle is never closed
        underneath it.
        """
        self._closed = True
        async with self._io_lock:
            tasks = list(self._tasks)
            for task in tasks:
                task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

            if self.pending:
                self._diag.warning("%d queued entries were not written", self.pending)

            for handle in (self._handle, self._backup):
                if handle is not None and not handle.closed:
                    try:
                        await handle.close()
                    except OSError as exc:
                        self._report(CloseFailure(handle.path), exc)
            self._handle = None
            self._backup = None

    # -- loop-thread internals --

    def _dispatch(self, func, *args) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            func(*args)
            return
        try:
            self._loop.call_soon_threadsafe(func, *args)
        except RuntimeError as exc:
            # loop already closed; nothing left to deliver to
            self._diag.error("Trace sink event loop is gone, dropping call: %s", exc)

    def _enqueue(self, entry: LogEntry) -> None:
        if self._closed:
            self._diag.warning("Trace sink closed, dropping: %s", entry.format_line().rstrip())
            return
        self._queue.append(entry)
        self._caught_up.clear()
        if not self._writing:
            self._pump()

    def _pump(self) -> None:
        """Start the writer if a handle is live; otherwise stay idle."""
        if self._handle is None or self._closed:
            self._writing = False
            return
        self._writing = True
        self._spawn(self._write_loop())

    async def _write_loop(self) -> None:
        try:
            while True:
                handle = self._handle
                if handle is None:
                    return

                if self._cursor < len(self._queue):
                    entry = self._queue[self._cursor]
                    try:
                        async with self._io_lock:
                            await handle.write(entry.encode())
                    except OSError as exc:
                        self._report(WriteFailure(handle.path, self._write_retry_delay), exc)
                        await asyncio.sleep(self._write_retry_delay)
                        continue
                    self._cursor += 1
                    continue

                if self._queue:
                    self._queue.clear()
                    self._cursor = 0
                    self._diag.debug("Queue caught up, reset to empty")
                self._caught_up.set()
                return
        finally:
            self._writing = False

    def _switch_file(self, path: str) -> None:
        if self._closed:
            self._diag.warning("Trace sink closed, ignoring switch to %s", path)
            return
        self._path = path
        if self._switch_task is not None and not self._switch_task.done():
            # the pending switch picks up the newest path when it opens
            return

        if self._handle is not None:
            self._backup = self._handle
            self._handle = None
            self._switch_task = self._spawn(self._close_then_open(self._backup, path))
        else:
            self._switch_task = self._spawn(self._open_loop())

    async def _close_then_open(self, backup, requested: str) -> None:
        try:
            async with self._io_lock:
                await backup.close()
        except OSError as exc:
            self._report(CloseFailure(backup.path), exc)
            newer = self._path if self._path != requested else None
            self._handle = backup
            self._backup = None
            self._path = backup.path
            if not self._writing:
                self._pump()
            if newer is not None:
                # only the failed switch is abandoned; a later request starts its own
                self._diag.info("Switching to %s, requested while the close was pending", newer)
                self._loop.call_soon(self._switch_file, newer)
            return

        self._backup = None
        await self._open_loop()

    async def _open_loop(self) -> None:
        while True:
            path = self._path
            try:
                handle = await self._opener(path)
            except OSError as exc:
                self._report(OpenFailure(path, self._open_retry_delay), exc)
                await asyncio.sleep(self._open_retry_delay)
                continue

            if path != self._path:
                # retargeted while the open was in flight
                await self._discard(handle)
                continue

            self._handle = handle
            self._diag.debug("Writing trace to %s", path)
            if not self._writing:
                self._pump()
            return

    async def _discard(self, handle) -> None:
        try:
            await handle.close()
        except OSError as exc:
            self._report(CloseFailure(handle.path), exc)

    def _spawn(self, coro) -> asyncio.Task:
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._diag.error("Trace sink task failed: %r", exc, exc_info=exc)

    def _report(self, error: TraceError, cause: OSError) -> None:
        error.__cause__ = cause
        report(self._diag, error)
