from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import IO, Any, Union
from urllib.parse import urlsplit, urlunsplit

import requests

from .auth import Clock, Credential, TokenManager, build_auth_headers
from .config import (
    API_URL,
    DEFAULT_TIMEOUT,
    TOKEN_PATH,
    USER_AGENT,
    RetryPolicy,
    load_base_url,
)
from .exceptions import InvalidURLError, RequestFailedError
from .paging import CURSOR_PARAM, PageResult, iterate_pages
from .retry import session_with_retries

logger = logging.getLogger(__name__)

Body = Union[bytes, str, IO[bytes]]


def build_url(base_url: str, path: str) -> str:
    """Join ``path`` onto ``base_url``.

    ``path`` is relative to the base URL's own path and must not be a full URL.
    """
    base = urlsplit(base_url)
    if base.scheme not in ("http", "https") or not base.netloc:
        raise InvalidURLError(f"Invalid base URL: {base_url!r}")
    target = urlsplit(path)
    if target.scheme or target.netloc:
        raise InvalidURLError(f"Path must be relative to the base URL, got {path!r}")
    if target.query or target.fragment:
        raise InvalidURLError(f"Path must not carry a query or fragment, got {path!r}")
    joined = base.path.rstrip("/") + "/" + target.path.lstrip("/")
    return urlunsplit((base.scheme, base.netloc, joined, "", ""))


@dataclass
class ApiClient:
    """Flare API client: authentication, retries and pagination.

    Tokens are generated from ``api_key`` on first use and renewed once they
    expire. A client may be shared between threads for token handling, but
    paging iterators must not be shared between consumers.

    Examples:
        >>> client = ApiClient.from_env()
        >>> with client.get("/tokens/test") as resp:
        ...     print(resp.json())
        >>> for page in client.iter_get("/leaksdb/v2/sources"):
        ...     print(len(page.json()["items"]))
    """

    api_key: str
    tenant_id: int = 0
    base_url: str = API_URL
    timeout: float = DEFAULT_TIMEOUT
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    clock: Clock | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.credential = Credential(api_key=self.api_key, tenant_id=self.tenant_id)
        self.session = session_with_retries(self.retry)
        self.session.headers["User-Agent"] = USER_AGENT
        self.tokens = TokenManager(
            self.credential,
            self.session,
            token_url=build_url(self.base_url, TOKEN_PATH),
            timeout=self.timeout,
            clock=self.clock,
        )

    def __repr__(self) -> str:
        return f"ApiClient(tenant_id={self.tenant_id}, base_url={self.base_url!r})"

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @classmethod
    def from_env(cls, dotenv: bool = True, **kwargs: Any) -> ApiClient:
        """Create a client from FLARE_API_KEY, FLARE_TENANT_ID and FLARE_BASE_URL."""
        credential = Credential.from_env(dotenv=dotenv)
        kwargs.setdefault("base_url", load_base_url())
        return cls(api_key=credential.api_key, tenant_id=credential.tenant_id, **kwargs)

    def with_tenant_id(self, tenant_id: int) -> ApiClient:
        """Return a new client acting on ``tenant_id``, with its own token cache."""
        return dataclasses.replace(self, tenant_id=tenant_id)

    def close(self) -> None:
        self.session.close()

    def generate_token(self) -> str:
        return self.tokens.generate_token()

    def get_or_generate_token(self) -> str:
        return self.tokens.get_or_generate_token()

    def build_request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        body: Body | None = None,
    ) -> requests.Request:
        url = build_url(self.base_url, path)
        if hasattr(body, "read"):
            # every attempt must send the same bytes
            body = body.read()
        return requests.Request(method, url, params=dict(params or {}), data=body)

    def execute(self, request: requests.Request, authenticated: bool = True) -> requests.Response:
        """Send ``request`` through the retrying transport.

        When ``authenticated``, a bearer token is obtained first; failing to
        get one raises AuthError before anything is sent. Retries on 429, 5xx
        and connection failures happen in the transport. Any other response,
        4xx included, is returned as is with its body unread, so callers must
        close it.
        """
        if authenticated:
            request.headers.update(build_auth_headers(self.get_or_generate_token()))

        prepared = self.session.prepare_request(request)
        logger.debug(f"{prepared.method} {prepared.url}")
        try:
            res = self.session.send(prepared, stream=True, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(f"{prepared.method} {prepared.url} failed: {e}")
            raise RequestFailedError(f"{prepared.method} {prepared.url} failed: {e}") from e
        logger.debug(f"{prepared.method} {prepared.url} -> {res.status_code}")
        return res

    def request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        *,
        body: Body | None = None,
        content_type: str | None = None,
        authenticated: bool = True,
    ) -> requests.Response:
        request = self.build_request(method, path, params=params, body=body)
        if content_type:
            request.headers["Content-Type"] = content_type
        return self.execute(request, authenticated=authenticated)

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> requests.Response:
        """Authenticated GET at ``path`` with ``params`` in the query string."""
        return self.request("GET", path, params)

    def post(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        content_type: str = "application/json",
        body: Body | None = None,
    ) -> requests.Response:
        """Authenticated POST at ``path``; ``content_type`` describes ``body``."""
        return self.request("POST", path, params, body=body, content_type=content_type)

    def post_json(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> requests.Response:
        try:
            encoded = json.dumps(body if body is not None else {})
        except (TypeError, ValueError) as e:
            raise RequestFailedError(f"Failed to marshal body to JSON: {e}") from e
        return self.post(path, params, "application/json", encoded)

    def iter_get(
        self, path: str, params: Mapping[str, Any] | None = None
    ) -> Iterator[PageResult]:
        """Iterate over the pages of a GET endpoint using the ``from`` query parameter."""

        def fetch_page(cursor: str) -> requests.Response:
            page_params = dict(params or {})
            if cursor:
                page_params[CURSOR_PARAM] = cursor
            return self.get(path, page_params)

        return iterate_pages(fetch_page)

    def iter_post_json(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Iterator[PageResult]:
        """Iterate over the pages of a POST endpoint using a ``from`` field in the JSON body."""

        def fetch_page(cursor: str) -> requests.Response:
            page_body = dict(body or {})
            if cursor:
                page_body[CURSOR_PARAM] = cursor
            return self.post_json(path, params, page_body)

        return iterate_pages(fetch_page)
