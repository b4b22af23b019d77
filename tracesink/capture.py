"""Host capture glue: route records from the logging module into the trace."""

import logging
import threading

_OWN_LOGGER_PREFIX = "tracesink."


def kind_for_levelno(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warn"
    if levelno >= logging.INFO:
        return "info"
    return "debug"


class TraceHandler(logging.Handler):
    """logging.Handler that records each message in a TraceService.

    Other handlers on the same logger still print the record as usual. Records
    from the sink's own loggers are skipped so its reports never loop back in.
    """

    def __init__(self, service, level=logging.NOTSET):
        super().__init__(level)
        self._service = service
        self._local = threading.local()

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.startswith(_OWN_LOGGER_PREFIX):
            return
        if getattr(self._local, "active", False):
            return
        self._local.active = True
        try:
            self._service.record(kind_for_levelno(record.levelno), record.getMessage())
        except Exception:
            self.handleError(record)
        finally:
            self._local.active = False


def install(service, logger: logging.Logger | None = None) -> TraceHandler:
    """Attach a TraceHandler to `logger` (the root logger by default)."""
    target = logger or logging.getLogger()
    handler = TraceHandler(service)
    target.addHandler(handler)
    return handler


def uninstall(handler: TraceHandler, logger: logging.Logger | None = None) -> None:
    target = logger or logging.getLogger()
    target.removeHandler(handler)
