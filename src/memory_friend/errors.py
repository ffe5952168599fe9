"""Error types for Memory Friend.

Every error carries the HTTP status the API surface should answer with.
"""


class MemoryFriendError(Exception):
    """Base class for all Memory Friend errors."""

    status_code: int = 500

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(MemoryFriendError):
    """Malformed or missing input."""

    status_code = 400


class NotFoundError(MemoryFriendError):
    """A referenced record does not exist."""

    status_code = 404


class StorageError(MemoryFriendError):
    """Backend read or write failure."""

    status_code = 500


class ConfigurationError(MemoryFriendError):
    """A required external credential is missing."""

    status_code = 500


class RateLimitError(MemoryFriendError):
    """The completion endpoint answered 429."""

    status_code = 429


class QuotaExhaustedError(MemoryFriendError):
    """The completion endpoint answered 402 (credits exhausted)."""

    status_code = 402


class ServiceUnavailableError(MemoryFriendError):
    """Any other completion endpoint failure, including network errors."""

    status_code = 500
