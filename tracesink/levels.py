"""Severity ranks and the threshold filter."""

from enum import IntEnum

from tracesink.errors import InvalidLevelError


class Severity(IntEnum):
    NONE = 0
    DEBUG = 1
    INFO = 2
    WARNING = 3
    ERROR = 4


# Entry kinds as they appear in the log file, mapped to their rank
KIND_RANKS = {
    "error": Severity.ERROR,
    "warn": Severity.WARNING,
    "info": Severity.INFO,
    "debug": Severity.DEBUG,
}


def parse_level(level) -> Severity:
    """Map a level name such as "Warning" to its Severity.

    Raises InvalidLevelError for anything that is not a known level.
    """
    if isinstance(level, Severity):
        return level
    if isinstance(level, str):
        try:
            return Severity[level.strip().upper()]
        except KeyError:
            pass
    raise InvalidLevelError(level)


def should_log(threshold: Severity, rank: Severity) -> bool:
    """Return True if an event of `rank` passes `threshold`.

    NONE never matches a real event, so a NONE threshold silences everything.
    """
    if threshold == Severity.NONE or rank == Severity.NONE:
        return False
    return threshold <= rank


class SeverityFilter:
    """Holds the current threshold and decides whether an event is kept."""

    def __init__(self, threshold: Severity = Severity.NONE):
        self._threshold = threshold

    @property
    def threshold(self) -> Severity:
        return self._threshold

    def set_level(self, level) -> Severity:
        # parse before assigning so a bad name leaves the threshold alone
        self._threshold = parse_level(level)
        return self._threshold

    def accepts(self, rank: Severity) -> bool:
        return should_log(self._threshold, rank)

    def accepts_kind(self, kind: str) -> bool:
        rank = KIND_RANKS.get(kind.lower())
        if rank is None:
            return False
        return self.accepts(rank)
