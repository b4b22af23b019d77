"""Error taxonomy for the trace sink."""


class TraceError(Exception):
    """Base class for every failure the trace sink reports."""


class InvalidLevelError(TraceError):
    def __init__(self, level):
        super().__init__(f"{level} is not a valid trace level!")
        self.level = level


class OpenFailure(TraceError):
    def __init__(self, path: str, retry_delay: float):
        super().__init__(
            f"Failed to open {path} for logging. Trying again in {retry_delay:g} seconds."
        )
        self.path = path


class CloseFailure(TraceError):
    def __init__(self, path: str):
        super().__init__(f"Failed to close old log file {path}")
        self.path = path


class WriteFailure(TraceError):
    def __init__(self, path: str, retry_delay: float):
        super().__init__(
            f"There was an error writing a message to {path}. "
            f"Trying again in {retry_delay:g} seconds."
        )
        self.path = path
