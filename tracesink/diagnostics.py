"""Self-logging guard: reports about the sink itself bypass the sink.

The internal logger does not propagate, so a TraceHandler installed on the
root logger never sees these records and a failing file cannot feed its own
failure back into the queue.
"""

import logging
import sys

DIAGNOSTICS_LOGGER = "tracesink.internal"

_FORMAT = "%(asctime)s [trace-sink] %(levelname)s %(message)s"


def get_diagnostics_logger() -> logging.Logger:
    logger = logging.getLogger(DIAGNOSTICS_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def report(logger: logging.Logger, error: Exception) -> None:
    """Log a TraceError together with the OS error behind it, if any."""
    cause = error.__cause__
    if cause is not None:
        logger.error("%s (%s)", error, cause)
    else:
        logger.error("%s", error)
