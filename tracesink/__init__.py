"""Queued, crash-safe trace file sink."""

from tracesink.levels import Severity
from tracesink.service import TraceService

__all__ = ["Severity", "TraceService"]
