import asyncio
import errno
import logging

import pytest

from tracesink.write_queue import DurableWriteQueue


class FakeFile:
    """In-memory append handle with scripted failures."""

    def __init__(self, fs: "FakeFS", path: str):
        self._fs = fs
        self.path = path
        self.closed = False

    async def write(self, data: bytes) -> None:
        self._fs.in_flight += 1
        try:
            if self._fs.write_gate is not None:
                await self._fs.write_gate.wait()
            else:
                await asyncio.sleep(0)
            if self.closed:
                raise OSError(errno.EBADF, "write to closed file")
            self._fs.write_attempts += 1
            if self._fs.write_failures > 0:
                self._fs.write_failures -= 1
                raise OSError(errno.EBUSY, "Resource busy")
            self._fs.files[self.path] += data
        finally:
            self._fs.in_flight -= 1

    async def close(self) -> None:
        await asyncio.sleep(0)
        if self._fs.close_failures > 0:
            self._fs.close_failures -= 1
            raise OSError(errno.EIO, "I/O error")
        self.closed = True


class FakeFS:
    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.open_failures: dict[str, int] = {}
        self.open_attempts: list[str] = []
        self.write_failures = 0
        self.write_attempts = 0
        self.close_failures = 0
        self.write_gate: asyncio.Event | None = None
        self.in_flight = 0

    async def open(self, path: str) -> FakeFile:
        await asyncio.sleep(0)
        self.open_attempts.append(path)
        if self.open_failures.get(path, 0) > 0:
            self.open_failures[path] -= 1
            raise PermissionError(errno.EACCES, "Permission denied", path)
        self.files.setdefault(path, b"")
        return FakeFile(self, path)

    def text(self, path: str) -> str:
        return self.files.get(path, b"").decode("utf-8")


@pytest.fixture
def fake_fs():
    return FakeFS()


@pytest.fixture
def diagnostics():
    logger = logging.getLogger("tests.diagnostics")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def make_queue(fake_fs, diagnostics):
    """Factory for queues on the fake file system; call it inside the test's loop."""

    def factory(**overrides):
        kwargs = dict(
            opener=fake_fs.open,
            write_retry_delay=0.01,
            open_retry_delay=0.01,
            diagnostics=diagnostics,
        )
        kwargs.update(overrides)
        return DurableWriteQueue(**kwargs)

    return factory


@pytest.fixture
def wait_until():
    async def _wait(predicate, timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.001)

    return _wait


def error_reports(caplog, fragment: str) -> list[logging.LogRecord]:
    return [
        r for r in caplog.records
        if r.name == "tests.diagnostics" and r.levelno == logging.ERROR and fragment in r.getMessage()
    ]


@pytest.fixture
def reports(caplog):
    caplog.set_level(logging.DEBUG, logger="tests.diagnostics")
    return lambda fragment: error_reports(caplog, fragment)
