"""Client for the Flare API.

This package provides:
- Bearer token generation from an API key, cached and renewed on expiry
- An HTTP client with bounded retries on rate limiting and server errors
- Lazy iteration over endpoints following the ``next``/``from`` paging pattern
"""

from .client import ApiClient
from .exceptions import (
    AuthError,
    ConfigError,
    FlareError,
    InvalidURLError,
    PagingError,
    RequestFailedError,
)
from .paging import PageResult

__version__ = "0.1.0"

__all__ = [
    "ApiClient",
    "AuthError",
    "ConfigError",
    "FlareError",
    "InvalidURLError",
    "PageResult",
    "PagingError",
    "RequestFailedError",
]
