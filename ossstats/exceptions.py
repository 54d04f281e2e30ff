"""Custom exceptions for the OSS stats collector."""

from datetime import datetime
from typing import List, Mapping, Optional


class OssStatsError(Exception):
    """Base exception for collector errors."""
    pass


class ConfigurationError(OssStatsError):
    """Exception for configuration errors."""
    pass


class NetworkError(OssStatsError):
    """Exception for network-related errors."""
    pass


class TransportError(NetworkError):
    """Connection failure, timeout or unreadable response."""
    pass


class HTTPStatusError(NetworkError):
    """Response with status >= 400, carrying the raw body for classification."""

    def __init__(self, status_code: int, body: str = "", headers: Optional[Mapping[str, str]] = None,
                 url: str = ""):
        self.status_code = status_code
        self.body = body
        self.headers = headers if headers is not None else {}
        self.url = url
        super().__init__(f"HTTP {status_code}: {body[:200]}")


class NotFoundError(HTTPStatusError):
    """Exception for 404 responses."""
    pass


class DecodeError(OssStatsError):
    """Exception for malformed JSON bodies or unexpected payload shapes."""
    pass


class RateLimited(NetworkError):
    """Quota and backoff attempts are exhausted."""

    def __init__(self, reset_at: Optional[datetime] = None, message: str = "", stats=None):
        self.reset_at = reset_at
        self.message = message
        self.stats = stats
        reset = reset_at.isoformat() if reset_at else "unknown"
        if message:
            super().__init__(f"rate limited: {message} (resets at {reset})")
        else:
            super().__init__(f"rate limited (resets at {reset})")


class AuthenticationFailed(OssStatsError):
    """Exception for unambiguous authentication failures."""

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(f"authentication failed: {message}" if message else "authentication failed")


class UserNotFound(OssStatsError):
    """The search for the user's merged pull requests returned nothing."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"user not found: {username}")


class PartialResults(OssStatsError):
    """The run finished but some enrichment calls failed."""

    def __init__(self, stats, errors: List[Exception], message: str = ""):
        self.stats = stats
        self.errors = list(errors)
        self.message = message
        if message:
            super().__init__(f"partial results: {message} ({len(self.errors)} errors encountered)")
        else:
            super().__init__(f"partial results ({len(self.errors)} errors encountered)")


class Cancelled(OssStatsError):
    """The caller's cancellation signal was observed."""

    def __init__(self, message: str = "operation cancelled", stats=None):
        self.stats = stats
        super().__init__(message)
