"""Trace sink — appends log lines read from stdin to a crash-safe trace file.

Each input line may start with a level name (ERROR, WARN, WARNING, INFO,
DEBUG); anything else is logged at INFO.
"""

import asyncio
import logging
import signal
import sys

from tracesink.capture import install, uninstall
from tracesink.config import load_config
from tracesink.service import TraceService

logger = logging.getLogger("stdin")

LINE_LEVELS = {
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def split_level(line: str) -> tuple[int, str]:
    """Split "LEVEL message" into a logging level and the message."""
    head, _, rest = line.partition(" ")
    level = LINE_LEVELS.get(head.upper())
    if level is None:
        return logging.INFO, line
    return level, rest


async def main(argv: list[str] | None = None) -> int:
    config = load_config(argv)
    service = TraceService.create(config)
    handler = install(service)
    logging.getLogger(__name__).debug(
        "Config: level=%s, file=%s, write_retry=%.1fs, open_retry=%.1fs",
        config.level, config.file, config.write_retry_delay, config.open_retry_delay,
    )

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    exit_code = 0
    read_task = asyncio.create_task(_pipe_stdin())
    stop_task = asyncio.create_task(stop.wait())
    try:
        await asyncio.wait({read_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop_task.cancel()
        if read_task.done() and not read_task.cancelled() and read_task.exception() is not None:
            logging.getLogger(__name__).error(
                "Reading stdin failed: %s", read_task.exception(), exc_info=read_task.exception(),
            )
            exit_code = 1
        else:
            read_task.cancel()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        if not await service.drain(timeout=config.write_retry_delay * 5):
            logging.getLogger(__name__).warning("Trace file not caught up at shutdown")
        uninstall(handler)
        await service.aclose()
    return exit_code


def _log_line(line: str) -> None:
    line = line.rstrip("\r\n")
    if not line:
        return
    level, message = split_level(line)
    logger.log(level, "%s", message)


async def _pipe_stdin() -> None:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    try:
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    except ValueError:
        # pipe transports refuse regular files, e.g. `main.py < app.log`
        await _read_stdin_file()
        return
    while True:
        raw = await reader.readline()
        if not raw:
            return
        _log_line(raw.decode("utf-8", errors="replace"))


async def _read_stdin_file() -> None:
    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            return
        _log_line(line)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        stream=sys.stderr,
    )
    sys.exit(asyncio.run(main()))
