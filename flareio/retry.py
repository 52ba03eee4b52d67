"""Retrying transport mounted on the client's ``requests.Session``."""

from __future__ import annotations

from itertools import takewhile
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import RetryPolicy

RETRY_STATUSES = frozenset([429, *range(500, 600)])
RETRY_METHODS = frozenset(["GET", "POST", "PUT", "PATCH", "DELETE"])


class BoundedBackoffRetry(Retry):
    """urllib3 ``Retry`` with an exponential backoff that has a floor and a cap.

    Stock ``Retry`` does not wait at all before the first retry. Here the wait
    before the n-th consecutive retry is ``backoff_min * 2 ** (n - 1)``,
    capped at ``backoff_max``. A server ``Retry-After`` on 429 or 503 is slept
    as given, without the cap. 413 is not retried even with ``Retry-After``.
    """

    RETRY_AFTER_STATUS_CODES = frozenset([429, 503])

    def __init__(self, *args: Any, backoff_min: float = 0.0, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.backoff_min = backoff_min

    def new(self, **kw: Any) -> BoundedBackoffRetry:
        retry = super().new(**kw)
        retry.backoff_min = self.backoff_min
        return retry

    def get_backoff_time(self) -> float:
        consecutive_errors = len(
            list(takewhile(lambda x: x.redirect_location is None, reversed(self.history)))
        )
        if consecutive_errors == 0:
            return 0.0
        return float(min(self.backoff_max, self.backoff_min * 2 ** (consecutive_errors - 1)))


def build_retry(policy: RetryPolicy) -> BoundedBackoffRetry:
    retries = policy.max_retries
    return BoundedBackoffRetry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=policy.backoff_min,
        backoff_min=policy.backoff_min,
        backoff_max=policy.backoff_max,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=RETRY_METHODS,
        raise_on_status=True,
    )


def session_with_retries(policy: RetryPolicy | None = None) -> requests.Session:
    sess = requests.Session()
    adapter = HTTPAdapter(max_retries=build_retry(policy or RetryPolicy()))
    sess.mount("http://", adapter)
    sess.mount("https://", adapter)
    return sess
