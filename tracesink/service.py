"""Trace service: severity filter in front of the durable write queue."""

import logging

from tracesink.config import Config
from tracesink.diagnostics import get_diagnostics_logger, report
from tracesink.errors import InvalidLevelError
from tracesink.levels import Severity, SeverityFilter
from tracesink.write_queue import DurableWriteQueue

CONSOLE_LOGGER = "tracesink.console"

_CONSOLE_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


class TraceService:
    """Owns the threshold and the write queue for one process.

    The five wrappers (error, warn, log, info, debug) record the message when
    the threshold allows it and always pass it on to the console logger, so
    writing to the trace file never hides the normal output.
    """

    def __init__(
        self,
        queue: DurableWriteQueue,
        level_filter: SeverityFilter | None = None,
        console: logging.Logger | None = None,
        diagnostics: logging.Logger | None = None,
    ):
        self._queue = queue
        self._filter = level_filter or SeverityFilter()
        self._console = console or logging.getLogger(CONSOLE_LOGGER)
        self._diag = diagnostics or get_diagnostics_logger()

    @classmethod
    def create(cls, config: Config, opener=None, console=None, diagnostics=None) -> "TraceService":
        """Build a service from config and apply its level and file."""
        queue_kwargs = dict(
            write_retry_delay=config.write_retry_delay,
            open_retry_delay=config.open_retry_delay,
            diagnostics=diagnostics,
        )
        if opener is not None:
            queue_kwargs["opener"] = opener
        service = cls(
            DurableWriteQueue(**queue_kwargs),
            console=console,
            diagnostics=diagnostics,
        )
        service.configure(config.level, config.file)
        return service

    @property
    def threshold(self) -> Severity:
        return self._filter.threshold

    @property
    def path(self) -> str:
        return self._queue.path

    @property
    def queue(self) -> DurableWriteQueue:
        return self._queue

    def configure(self, level, path) -> None:
        self.set_level(level)
        self.set_file(path)

    def set_level(self, level) -> None:
        try:
            self._filter.set_level(level)
        except InvalidLevelError as exc:
            report(self._diag, exc)

    def set_file(self, path) -> None:
        self._queue.set_file(path)

    def log_message(self, kind: str, message) -> None:
        self._queue.log_message(kind, message)

    def should_log(self, kind: str) -> bool:
        return self._filter.accepts_kind(kind)

    def record(self, kind: str, message) -> bool:
        """Queue the message if the threshold allows it. No console echo."""
        if not self.should_log(kind):
            return False
        self._queue.log_message(kind, message)
        return True

    def error(self, message) -> None:
        self._emit("error", message)

    def warn(self, message) -> None:
        self._emit("warn", message)

    def log(self, message) -> None:
        self._emit("info", message)

    def info(self, message) -> None:
        self._emit("info", message)

    def debug(self, message) -> None:
        self._emit("debug", message)

    async def drain(self, timeout: float | None = None) -> bool:
        return await self._queue.drain(timeout)

    async def aclose(self) -> None:
        await self._queue.aclose()

    def _emit(self, kind: str, message) -> None:
        self.record(kind, message)
        self._console.log(_CONSOLE_LEVELS[kind], "%s", message)
