"""Cursor pagination over Notion list endpoints.

Two flavors share the same rule (continue while ``has_more``, passing the
previous ``next_cursor`` as ``start_cursor``):

- ``fetch_all``: an async iterator used by the discovery engine. It drives a
  single bound query through the client until the listing is exhausted.
- ``NotionCursorPaginator``: a Singer SDK paginator used by the REST streams,
  where the SDK owns the request loop.
"""

from __future__ import annotations

import logging
import typing as t

from singer_sdk.pagination import BaseAPIPaginator

from .errors import UnknownRemoteError
from .models import Page, PageParams

if t.TYPE_CHECKING:
    import requests

T = t.TypeVar("T")

# A list call with its query already bound; only the cursor varies.
PageFetcher = t.Callable[[PageParams], t.Awaitable[Page[T]]]

logger = logging.getLogger(__name__)


async def fetch_all(
    fetch_page: PageFetcher[T],
    *,
    page_size: int | None = None,
) -> t.AsyncIterator[T]:
    """Yield every item of a paginated listing, in response order.

    How it works:
    1. Call ``fetch_page`` without a cursor.
    2. Yield the page's items.
    3. While the page reports ``has_more``, call again with its
       ``next_cursor``. Page N+1 is never requested before page N arrived.

    Bind the query (block ID, filter, sort) into ``fetch_page`` with
    ``functools.partial`` or a closure: a cursor is only valid for the query
    that produced it, so it must never be replayed against another one.

    The iterator is lazy and finite. Iterating it again re-runs the listing
    from the first page. Items are unique only as long as the remote
    ordering stays stable for the duration of the listing.

    Args:
        fetch_page: Awaitable list call receiving the pagination parameters.
        page_size: Items per call, or None for the endpoint default.

    Yields:
        Each item of each page.

    Raises:
        NotionAPIError: Whatever the failing call raised, unwrapped. Use
            ``collect`` when a failure must discard everything fetched so far.
    """
    cursor: str | None = None
    seen_cursors: set[str] = set()
    page_count = 0

    while True:
        page = await fetch_page(PageParams(page_size=page_size, start_cursor=cursor))
        page_count += 1
        logger.debug(
            "Fetched page %d (%d items, has_more=%s)",
            page_count,
            len(page.items),
            page.has_more,
        )

        for item in page.items:
            yield item

        if not page.has_more:
            return

        cursor = page.next_cursor
        if cursor in seen_cursors:
            msg = f"Pagination loop detected: cursor {cursor!r} returned twice"
            raise UnknownRemoteError(msg)
        seen_cursors.add(cursor)


async def collect(
    fetch_page: PageFetcher[T],
    *,
    page_size: int | None = None,
) -> list[T]:
    """Exhaust ``fetch_all`` into a list. All or nothing: errors propagate."""
    return [item async for item in fetch_all(fetch_page, page_size=page_size)]


class NotionCursorPaginator(BaseAPIPaginator[t.Optional[str]]):
    """Paginator for the ``{"results", "has_more", "next_cursor"}`` envelope.

    The SDK calls ``advance`` after every response. It stops when
    ``has_more`` is false and raises on a repeated cursor.
    """

    def __init__(self) -> None:
        super().__init__(None)

    @staticmethod
    def _page(response: requests.Response) -> Page[dict]:
        return Page.from_envelope(response.json(), lambda record: record)

    def has_more(self, response: requests.Response) -> bool:
        return self._page(response).has_more

    def get_next(self, response: requests.Response) -> str | None:
        return self._page(response).next_cursor
