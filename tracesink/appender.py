"""Append-mode file handle used by the write queue."""

import os

import aiofiles

# rw for owner, group and other; the process umask still applies
FILE_MODE = 0o666


def _append_opener(path: str, flags: int) -> int:
    return os.open(path, flags, FILE_MODE)


class AppendFile:
    """One open, unbuffered append-mode file.

    Writes go straight to the descriptor: once write() returns, every byte
    has been handed to the OS.
    """

    def __init__(self, path: str, raw):
        self.path = path
        self._raw = raw

    @property
    def closed(self) -> bool:
        return self._raw.closed

    async def write(self, data: bytes) -> None:
        while data:
            written = await self._raw.write(data)
            data = data[written:]

    async def close(self) -> None:
        await self._raw.close()


async def open_append(path: str) -> AppendFile:
    """Open `path` for appending, creating it if missing."""
    raw = await aiofiles.open(path, mode="ab", buffering=0, opener=_append_opener)
    return AppendFile(path, raw)
