"""Tests for the cursor pagination primitive."""

from __future__ import annotations

import json

import pytest
import requests

from tap_notion_discovery.errors import RateLimitError, UnknownRemoteError
from tap_notion_discovery.models import Page, PageParams
from tap_notion_discovery.pagination import NotionCursorPaginator, collect, fetch_all


class CountingFetcher:
    """Serves ``total`` integers in pages, recording each call's parameters."""

    def __init__(self, total: int, fail_at: str | None = None) -> None:
        self.items = list(range(total))
        self.fail_at = fail_at
        self.calls: list[PageParams] = []

    async def __call__(self, page_params: PageParams) -> Page[int]:
        self.calls.append(page_params)
        if self.fail_at is not None and page_params.start_cursor == self.fail_at:
            raise RateLimitError("429 rate_limited", status_code=429)
        start = int(page_params.start_cursor or 0)
        end = start + (page_params.page_size or 100)
        has_more = end < len(self.items)
        return Page(self.items[start:end], has_more, str(end) if has_more else None)


class TestFetchAll:
    """Exhaustion, ordering and failure behavior of fetch_all."""

    @pytest.mark.asyncio
    async def test_exhausts_all_pages_in_order(self):
        """250 items at 100 per page take 3 calls and arrive in order."""
        fetcher = CountingFetcher(250)

        items = await collect(fetcher, page_size=100)

        assert items == list(range(250))
        assert len(set(items)) == 250
        assert [call.start_cursor for call in fetcher.calls] == [None, "100", "200"]
        assert all(call.page_size == 100 for call in fetcher.calls)

    @pytest.mark.asyncio
    async def test_empty_listing(self):
        fetcher = CountingFetcher(0)

        assert await collect(fetcher) == []
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_exact_multiple_of_page_size(self):
        fetcher = CountingFetcher(200)

        assert len(await collect(fetcher, page_size=100)) == 200
        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    async def test_is_lazy(self):
        """Later pages are not requested until the consumer gets there."""
        fetcher = CountingFetcher(250)
        iterator = fetch_all(fetcher, page_size=100)

        first = await iterator.__anext__()

        assert first == 0
        assert len(fetcher.calls) == 1
        await iterator.aclose()

    @pytest.mark.asyncio
    async def test_restart_runs_from_scratch(self):
        fetcher = CountingFetcher(150)

        first = await collect(fetcher, page_size=100)
        second = await collect(fetcher, page_size=100)

        assert first == second
        assert [call.start_cursor for call in fetcher.calls] == [None, "100", None, "100"]

    @pytest.mark.asyncio
    async def test_failure_aborts_without_partial_result(self):
        """An error on the third page propagates unwrapped from collect."""
        fetcher = CountingFetcher(250, fail_at="200")

        with pytest.raises(RateLimitError) as excinfo:
            await collect(fetcher, page_size=100)

        assert excinfo.value.status_code == 429
        assert len(fetcher.calls) == 3

    @pytest.mark.asyncio
    async def test_repeated_cursor_is_detected(self):
        calls = []

        async def stuck(page_params: PageParams) -> Page[int]:
            calls.append(page_params.start_cursor)
            return Page([len(calls)], has_more=True, next_cursor="same")

        with pytest.raises(UnknownRemoteError, match="loop"):
            await collect(stuck)

        assert calls == [None, "same"]

    @pytest.mark.asyncio
    async def test_cursor_cycle_is_detected(self):
        """A cursor seen earlier in the listing, not only the last one, stops it."""
        next_cursor = {None: "a", "a": "b", "b": "a"}
        calls = []

        async def cycling(page_params: PageParams) -> Page[int]:
            calls.append(page_params.start_cursor)
            return Page([len(calls)], has_more=True, next_cursor=next_cursor[page_params.start_cursor])

        with pytest.raises(UnknownRemoteError, match="loop"):
            await collect(cycling)

        assert calls == [None, "a", "b"]


def _response(body: dict) -> requests.Response:
    response = requests.Response()
    response.status_code = 200
    response._content = json.dumps(body).encode()
    return response


class TestNotionCursorPaginator:
    """The SDK paginator follows has_more/next_cursor."""

    def test_advances_until_has_more_is_false(self):
        paginator = NotionCursorPaginator()
        assert paginator.current_value is None

        paginator.advance(_response({"results": [], "has_more": True, "next_cursor": "c1"}))
        assert paginator.current_value == "c1"
        assert not paginator.finished

        paginator.advance(_response({"results": [], "has_more": False, "next_cursor": None}))
        assert paginator.finished

    def test_ignores_stray_cursor_on_last_page(self):
        paginator = NotionCursorPaginator()

        paginator.advance(_response({"results": [], "has_more": False, "next_cursor": "stale"}))

        assert paginator.finished
