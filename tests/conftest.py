from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import responses

from flareio import ApiClient
from flareio.config import RetryPolicy

BASE_URL = "https://api.flare.test/"

ENV_KEYS = [
    "FLARE_API_KEY",
    "FLARE_TENANT_ID",
    "FLARE_BASE_URL",
    "QUOTED_VALUE",
    "SINGLE_QUOTED",
    "EXPORTED",
    "EMPTY_VALUE",
]


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the process environment and any local .env file."""
    for key in ENV_KEYS:
        # setenv first so teardown also removes values written by the .env loader
        monkeypatch.setenv(key, "placeholder")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def fast_retry():
    """Default attempt bound without waiting between attempts."""
    return RetryPolicy(backoff_min=0.0, backoff_max=0.0)


@pytest.fixture
def api_url():
    def _url(path: str) -> str:
        return BASE_URL.rstrip("/") + path

    return _url


@pytest.fixture
def unauthenticated_client(fast_retry, clock):
    client = ApiClient(api_key="test-api-key", base_url=BASE_URL, retry=fast_retry, clock=clock)
    yield client
    client.close()


@pytest.fixture
def client(unauthenticated_client):
    """Client holding a valid cached token, so no token request is made."""
    unauthenticated_client.tokens.store.store("test-api-token")
    return unauthenticated_client


@pytest.fixture
def mocked_api():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps
