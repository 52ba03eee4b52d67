"""API key credentials and the bearer token lifecycle.

A long-lived API key is exchanged for a short-lived bearer token at
``POST /tokens/generate``. Tokens are cached in memory for 45 minutes and
renewed on demand; they are never persisted.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import requests

from .config import TOKEN_LIFETIME_MINUTES, load_api_key, load_tenant_id
from .exceptions import AuthError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credential:
    """API key plus optional tenant id (0 means the key's default tenant)."""

    api_key: str
    tenant_id: int = 0

    def __repr__(self) -> str:
        return f"Credential(api_key='***', tenant_id={self.tenant_id})"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> Credential:
        api_key = load_api_key(dotenv=dotenv)
        return cls(api_key=api_key, tenant_id=load_tenant_id())

    def token_payload(self) -> dict[str, Any]:
        if self.tenant_id:
            return {"tenant_id": self.tenant_id}
        return {}


@dataclass(frozen=True)
class Token:
    value: str
    expires_at: datetime

    def __repr__(self) -> str:
        return f"Token(value='***', expires_at={self.expires_at.isoformat()})"

    def is_valid(self, now: datetime) -> bool:
        """Tokens are valid strictly before their expiry instant."""
        return now < self.expires_at


class TokenStore:
    """Holds the current token, if any, and answers whether it is still valid."""

    def __init__(self, clock: Clock | None = None, lifetime: timedelta | None = None):
        self.clock = clock or utc_now
        self.lifetime = lifetime or timedelta(minutes=TOKEN_LIFETIME_MINUTES)
        self.token: Token | None = None

    def is_valid(self) -> bool:
        return self.token is not None and self.token.is_valid(self.clock())

    def store(self, value: str) -> Token:
        """Cache a freshly issued token, starting its lifetime now."""
        self.token = Token(value=value, expires_at=self.clock() + self.lifetime)
        return self.token

    def clear(self) -> None:
        self.token = None


class TokenManager:
    """Issues bearer tokens for a credential and caches them.

    ``get_or_generate_token`` is the only way authenticated requests obtain a
    token. The check-and-refresh runs under a lock so concurrent callers
    sharing a client trigger at most one issuance at a time.
    """

    def __init__(
        self,
        credential: Credential,
        session: requests.Session,
        token_url: str,
        timeout: float,
        clock: Clock | None = None,
    ):
        self.credential = credential
        self.session = session
        self.token_url = token_url
        self.timeout = timeout
        self.store = TokenStore(clock=clock)
        self._lock = threading.RLock()

    def generate_token(self) -> str:
        """Exchange the API key for a new bearer token and cache it.

        Sends the raw API key (not a bearer scheme) in ``Authorization`` and
        the tenant id, when set, as the JSON body. Any status other than 200
        or a body without a string ``token`` raises AuthError. No retry
        happens here beyond what the transport itself does.
        """
        with self._lock:
            logger.debug(f"Generating API token (tenant_id={self.credential.tenant_id or 'default'})")
            try:
                res = self.session.post(
                    self.token_url,
                    data=json.dumps(self.credential.token_payload()),
                    headers={
                        "Authorization": self.credential.api_key,
                        "Content-Type": "application/json",
                    },
                    timeout=self.timeout,
                )
            except requests.exceptions.RequestException as e:
                logger.warning(f"Token generation request failed: {e}")
                raise AuthError(f"Failed to generate API token: {e}") from e

            with res:
                if res.status_code != 200:
                    raise AuthError(
                        f"Unexpected response code while generating API token: {res.status_code}",
                        status_code=res.status_code,
                    )
                try:
                    data = res.json()
                except ValueError as e:
                    raise AuthError(
                        "Token response is not valid JSON", status_code=res.status_code
                    ) from e

            token = data.get("token") if isinstance(data, dict) else None
            if not isinstance(token, str) or not token:
                raise AuthError(
                    "Token generation succeeded but token missing in response",
                    status_code=res.status_code,
                )

            issued = self.store.store(token)
            logger.info(f"Generated API token, valid until {issued.expires_at.isoformat()}")
            return token

    def get_or_generate_token(self) -> str:
        with self._lock:
            if self.store.is_valid():
                return self.store.token.value
            return self.generate_token()

    def invalidate(self) -> None:
        with self._lock:
            self.store.clear()


def build_auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
