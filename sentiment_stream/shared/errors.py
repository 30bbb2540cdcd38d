"""
Error taxonomy for the sentiment stream client.

Connection failures become connection status, decode failures are logged and
skipped. Neither is allowed to escape the stream manager's public methods.
"""

class SentimentStreamError(Exception):
    """Base class for every error raised inside the stream pipeline."""


class StreamConnectionError(SentimentStreamError, ConnectionError):
    """Transport-level failure: non-200 status, network drop, reset."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(SentimentStreamError, ValueError):
    """A data frame that is not valid JSON or does not match the delta schema."""

    def __init__(self, message: str, payload: str = ""):
        super().__init__(message)
        self.payload = payload


class UnknownCategoryError(SentimentStreamError, ValueError):
    def __init__(self, label: str):
        super().__init__(f"Unknown sentiment category: {label!r}")
        self.label = label
