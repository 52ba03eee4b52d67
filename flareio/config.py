"""Client configuration: defaults, retry bounds and environment loading."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .exceptions import ConfigError
from .utils.env import load_env_file_if_present

logger = logging.getLogger(__name__)

API_URL = "https://api.flare.io/"
TOKEN_PATH = "/tokens/generate"
TOKEN_LIFETIME_MINUTES = 45
# Fixed identifier, deliberately not tied to the installed package version.
USER_AGENT = "python-flareio/0.1.0"
DEFAULT_TIMEOUT = 30.0

API_KEY_ENV = "FLARE_API_KEY"
TENANT_ID_ENV = "FLARE_TENANT_ID"
BASE_URL_ENV = "FLARE_BASE_URL"


@dataclass(frozen=True)
class RetryPolicy:
    """Bounds for retrying transient failures.

    ``max_attempts`` counts the first attempt, so the default allows four
    retries. The wait before the n-th retry is ``backoff_min * 2 ** (n - 1)``
    seconds, capped at ``backoff_max``.
    """

    max_attempts: int = 5
    backoff_min: float = 2.0
    backoff_max: float = 15.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.backoff_min < 0 or self.backoff_max < self.backoff_min:
            raise ConfigError(
                f"Invalid backoff bounds: min={self.backoff_min}, max={self.backoff_max}"
            )

    @property
    def max_retries(self) -> int:
        return self.max_attempts - 1


def load_api_key(env_key: str = API_KEY_ENV, dotenv: bool = True) -> str:
    """Return the Flare API key from environment or .env.

    Raises ConfigError if missing.
    """
    if dotenv:
        load_env_file_if_present()
    api_key = os.getenv(env_key)
    if not api_key:
        raise ConfigError(f"Missing API key. Set {env_key} in environment or .env")
    return api_key


def load_tenant_id(env_key: str = TENANT_ID_ENV) -> int:
    """Return the tenant id from the environment, 0 when unset."""
    raw = os.getenv(env_key, "").strip()
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{env_key} must be an integer, got {raw!r}") from e


def load_base_url(env_key: str = BASE_URL_ENV) -> str:
    base_url = os.getenv(env_key) or API_URL
    if base_url != API_URL:
        logger.debug(f"Using base URL override from {env_key}: {base_url}")
    return base_url
