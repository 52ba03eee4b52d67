"""Cursor-based pagination over the Flare paging envelope.

Paginated endpoints answer with a JSON object carrying a ``next`` cursor.
A non-empty ``next`` is sent back as ``from`` to get the following page;
a null, missing or empty ``next`` marks the last page.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

import requests

from .exceptions import FlareError, PagingError

logger = logging.getLogger(__name__)

CURSOR_PARAM = "from"

FetchPage = Callable[[str], requests.Response]


@dataclass
class PageResult:
    """One fetched page.

    ``response`` has already been read in full and released; its body stays
    available through ``response.content``/``response.json()`` so callers can
    decode the payload with their own schema.
    """

    response: requests.Response
    next: str

    def json(self) -> Any:
        return self.response.json()


def read_page(fetch_page: FetchPage, cursor: str) -> PageResult:
    """Fetch one page and extract its ``next`` cursor."""
    try:
        response = fetch_page(cursor)
    except FlareError as e:
        raise PagingError(f"Failed to fetch next page: {e}") from e

    try:
        body = response.content
    except requests.exceptions.RequestException as e:
        raise PagingError(f"Failed to read response: {e}") from e
    finally:
        response.close()

    if response.status_code != 200:
        text = body.decode("utf-8", errors="replace")
        raise PagingError(
            f"Got HTTP status code {response.status_code} while fetching next page: {text}"
        )

    try:
        payload = response.json()
    except ValueError as e:
        raise PagingError(f"Failed to decode response: {e}") from e
    if not isinstance(payload, dict):
        raise PagingError(
            f"Failed to decode response: expected a JSON object, got {type(payload).__name__}"
        )

    next_cursor = payload.get("next")
    if next_cursor is None:
        next_cursor = ""
    if not isinstance(next_cursor, str):
        raise PagingError(
            f"Failed to decode response: 'next' must be a string or null, got {next_cursor!r}"
        )
    return PageResult(response=response, next=next_cursor)


def iterate_pages(fetch_page: FetchPage) -> Iterator[PageResult]:
    """Lazily yield pages, threading the server cursor between fetches.

    Every call starts a fresh run from an empty cursor. Page N+1 is requested
    only after page N has been read and the consumer asked for more, so
    stopping the iteration early sends no further requests. A failure is
    raised as PagingError once and ends the iteration.
    """
    cursor = ""
    page_index = 0
    while True:
        page = read_page(fetch_page, cursor)
        page_index += 1
        logger.debug(f"Fetched page {page_index} (has next: {bool(page.next)})")
        cursor = page.next
        yield page
        if not cursor:
            return
