"""Log entry value type."""

from dataclasses import dataclass


@dataclass(frozen=True)
class LogEntry:
    kind: str       # "error", "warn", "info" or "debug"
    message: str

    def format_line(self) -> str:
        """Render as it appears in the trace file: [KIND] message\\r\\n"""
        return f"[{self.kind.upper()}] {self.message}\r\n"

    def encode(self) -> bytes:
        return self.format_line().encode("utf-8", errors="replace")
