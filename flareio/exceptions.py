"""Error types raised by the Flare API client.

Every error derives from ``FlareError`` so callers can catch the whole family
in one place. Lower-level causes (``requests`` exceptions, JSON decoding
errors) are chained via ``__cause__``.
"""

from __future__ import annotations


class FlareError(RuntimeError):
    """Base class for all flareio errors."""

    pass


class ConfigError(FlareError):
    """Raised when client configuration is missing or invalid."""

    pass


class InvalidURLError(FlareError, ValueError):
    """Raised when a request URL cannot be built from the base URL and path."""

    pass


class AuthError(FlareError):
    """Raised when an API token cannot be generated."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RequestFailedError(FlareError):
    """Raised when a request could not be completed within the retry budget."""

    pass


class PagingError(FlareError):
    """Raised when a page of a paginated endpoint cannot be fetched or decoded."""

    pass
