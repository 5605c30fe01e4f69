"""REST client handling: request context, NotionClient facade and NotionStream.

This module holds everything that talks HTTP to Notion:

- ``RequestContext``: the explicit auth/version/transport settings of a
  caller. It is passed into every facade call; nothing in this package reads
  tokens from the environment or from config files on its own.
- ``NotionClient``: one awaitable method per list/get endpoint used by the
  discovery engine. Each call maps a non-2xx response to the error taxonomy in
  ``errors.py`` and returns plain models. It performs no pagination and no
  tree logic; see ``pagination.py``, ``traversal.py`` and ``discovery.py``.
- ``NotionStream``: the Singer SDK ``RESTStream`` specialization shared by
  the streams in ``streams.py`` (base URL, headers, Bearer auth, pagination
  on the standard Notion envelope, typed error mapping).
"""

from __future__ import annotations

import asyncio
import decimal
import logging
import sys
import typing as t
from dataclasses import dataclass, field

import backoff
import requests
from singer_sdk.authenticators import BearerTokenAuthenticator
from singer_sdk.helpers.jsonpath import extract_jsonpath
from singer_sdk.streams import RESTStream

from .errors import (
    NotionAPIError,
    RateLimitError,
    TransportError,
    UnknownRemoteError,
    error_for_status,
    is_retriable,
)
from .models import Node, Page, PageParams
from .pagination import NotionCursorPaginator

if sys.version_info >= (3, 12):
    from typing import override
else:
    from typing_extensions import override

if t.TYPE_CHECKING:
    from singer_sdk.helpers.types import Context

DEFAULT_API_URL = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2022-06-28"
DEFAULT_PAGE_SIZE = 100
DEFAULT_TIMEOUT = 60

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Auth and transport settings for one caller.

    Built once by the caller and threaded through the facade, the
    pagination primitive and the engine.
    """

    auth_token: str = field(repr=False)
    notion_version: str = DEFAULT_NOTION_VERSION
    base_url: str = DEFAULT_API_URL
    user_agent: str | None = None
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_config(cls, config: t.Mapping[str, t.Any]) -> RequestContext:
        """Build a context from tap configuration (see ``tap.py``)."""
        return cls(
            auth_token=config.get("auth_token", ""),
            notion_version=config.get("notion_version") or DEFAULT_NOTION_VERSION,
            base_url=(config.get("api_url") or DEFAULT_API_URL).rstrip("/"),
            user_agent=config.get("user_agent"),
            timeout=config.get("request_timeout") or DEFAULT_TIMEOUT,
        )

    @property
    def base_headers(self) -> dict[str, str]:
        """Headers sent with every request, except for authorization."""
        headers = {"Notion-Version": self.notion_version}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers

    @property
    def headers(self) -> dict[str, str]:
        return {**self.base_headers, "Authorization": f"Bearer {self.auth_token}"}


def retry_wait(factor: float = 1.0) -> t.Generator[float | None, t.Any, None]:
    """``backoff`` wait generator for the facade's retries.

    ``backoff`` sends each failure into the generator. A 429 carrying
    ``Retry-After`` waits exactly that long; anything else waits an
    exponentially growing, fully jittered delay.
    """
    delays = backoff.expo(factor=factor)
    next(delays)
    error = yield None
    while True:
        delay = next(delays)
        if isinstance(error, RateLimitError) and error.retry_after is not None:
            error = yield error.retry_after
        else:
            error = yield backoff.full_jitter(delay)


class NotionClient:
    """Awaitable facade over the Notion endpoints the engine consumes.

    HTTP goes through a ``requests.Session``. Each blocking call runs in a
    worker thread (``asyncio.to_thread``), so any number of calls can be in
    flight while the engine itself stays on a single event loop.

    With ``max_retries`` above zero, each call is wrapped with ``backoff``
    and retried on rate limits, transport failures and 5xx responses, waiting
    as long as ``retry_wait`` says. Otherwise every call is attempted exactly
    once.

    A session passed in stays open on ``close``; the caller owns it.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        max_retries: int = 0,
        backoff_factor: float = 1.0,
    ) -> None:
        self._owns_session = session is None
        self._session = session or requests.Session()
        self.max_retries = max_retries
        if max_retries > 0:
            self._send = backoff.on_exception(  # type: ignore[method-assign]
                retry_wait,
                NotionAPIError,
                max_tries=max_retries + 1,
                giveup=lambda error: not is_retriable(error),
                jitter=None,
                logger=logger,
                factor=backoff_factor,
            )(self._send)

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> NotionClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    async def list_block_children(
        self,
        context: RequestContext,
        block_id: str,
        page_params: PageParams | None = None,
    ) -> Page[Node]:
        """GET /blocks/{block_id}/children: one page of a block's children.

        Pages are blocks too, so a page ID returns its top-level content.
        """
        envelope = await self._request(
            context,
            "GET",
            f"/blocks/{block_id}/children",
            params=(page_params or PageParams()).as_dict(),
        )
        return Page.from_envelope(envelope, Node.from_record)

    async def search(
        self,
        context: RequestContext,
        query: t.Mapping[str, t.Any] | None = None,
        page_params: PageParams | None = None,
    ) -> Page[Node]:
        """POST /search: one page of everything shared with the integration.

        ``query`` (``filter``, ``sort``, ``query``) is sent verbatim. Notion
        expects the cursor and page size in the JSON body for this endpoint.
        """
        body = {**(query or {}), **(page_params or PageParams()).as_dict()}
        envelope = await self._request(context, "POST", "/search", json=body)
        return Page.from_envelope(envelope, Node.from_record)

    async def query_database(
        self,
        context: RequestContext,
        database_id: str,
        query: t.Mapping[str, t.Any] | None = None,
        page_params: PageParams | None = None,
    ) -> Page[Node]:
        """POST /databases/{database_id}/query: one page of database entries."""
        body = {**(query or {}), **(page_params or PageParams()).as_dict()}
        envelope = await self._request(
            context,
            "POST",
            f"/databases/{database_id}/query",
            json=body,
        )
        return Page.from_envelope(envelope, Node.from_record)

    async def retrieve_block(self, context: RequestContext, block_id: str) -> Node:
        """GET /blocks/{block_id}."""
        return Node.from_record(
            await self._request(context, "GET", f"/blocks/{block_id}"),
        )

    async def retrieve_page(self, context: RequestContext, page_id: str) -> Node:
        """GET /pages/{page_id}."""
        return Node.from_record(
            await self._request(context, "GET", f"/pages/{page_id}"),
        )

    async def _request(
        self,
        context: RequestContext,
        method: str,
        path: str,
        *,
        params: dict[str, t.Any] | None = None,
        json: dict[str, t.Any] | None = None,
    ) -> t.Any:
        return await asyncio.to_thread(self._send, context, method, path, params, json)

    def _send(
        self,
        context: RequestContext,
        method: str,
        path: str,
        params: dict[str, t.Any] | None,
        json: dict[str, t.Any] | None,
    ) -> t.Any:
        url = f"{context.base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                headers=context.headers,
                params=params or None,
                json=json,
                timeout=context.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            msg = f"{method} {path} failed: {exc}"
            raise TransportError(msg) from exc

        if not response.ok:
            raise error_for_status(
                response.status_code,
                _json_or_none(response),
                reason=response.reason or "",
                response=response,
            )

        try:
            return response.json(parse_float=decimal.Decimal)
        except ValueError as exc:
            msg = f"{method} {path} returned a non-JSON body"
            raise UnknownRemoteError(
                msg,
                status_code=response.status_code,
                response=response,
            ) from exc


def _json_or_none(response: requests.Response) -> t.Any:
    try:
        return response.json()
    except ValueError:
        return None


class NotionStream(RESTStream):
    """Base stream for the Notion API.

    Implements Notion-specific defaults for base URL, pagination, headers and
    error mapping. Streams backed by the discovery engine reuse
    ``request_context`` and ``build_client`` instead of the SDK request loop.
    """

    # Most list endpoints return an envelope with `results` and `next_cursor`.
    records_jsonpath = "$.results[*]"

    @override
    @property
    def url_base(self) -> str:
        """Return the Notion API base URL, without a trailing slash."""
        return self.request_context.base_url

    @override
    @property
    def authenticator(self) -> BearerTokenAuthenticator:
        """Return a new authenticator object using the Notion integration token."""
        return BearerTokenAuthenticator(token=self.config.get("auth_token", ""))

    @property
    @override
    def http_headers(self) -> dict:
        """Return the HTTP headers including Notion-Version and optional UA."""
        return self.request_context.base_headers

    @property
    def request_context(self) -> RequestContext:
        """The explicit request context handed to the discovery engine."""
        return RequestContext.from_config(self.config)

    @property
    def page_size(self) -> int:
        return self.config.get("page_size") or DEFAULT_PAGE_SIZE

    def build_client(self) -> NotionClient:
        """Return a facade configured with this tap's retry policy."""
        return NotionClient(max_retries=self.config.get("max_retries") or 0)

    @override
    def get_new_paginator(self) -> NotionCursorPaginator:
        """Return a paginator following `has_more`/`next_cursor`."""
        return NotionCursorPaginator()

    @override
    def get_url_params(
        self,
        context: Context | None,
        next_page_token: t.Any | None,
    ) -> dict[str, t.Any]:
        """Return URL parameters for Notion GET list endpoints.

        How it works:
        1. The SDK calls this automatically before each request
        2. For GET requests, adds pagination params to the URL:
           - First request: ?page_size=100
           - Subsequent requests: ?page_size=100&start_cursor=abc123
        3. For POST requests (like /v1/search), returns empty params dict since
           Notion expects cursor & page_size in the JSON body instead

        Args:
            context: The stream context.
            next_page_token: The next cursor value from the previous response, or None
                for the first request.

        Returns:
            A dictionary of URL query parameters.
        """
        if getattr(self, "rest_method", "GET").upper() == "POST":
            return {}
        return PageParams(page_size=self.page_size, start_cursor=next_page_token).as_dict()

    @override
    def validate_response(self, response: requests.Response) -> None:
        """Raise the typed Notion error for any non-2xx response.

        Rate limits and 5xx map to ``RetriableAPIError`` subclasses, so the
        SDK's backoff still applies to them.
        """
        if response.ok:
            return
        raise error_for_status(
            response.status_code,
            _json_or_none(response),
            reason=response.reason or "",
            response=response,
        )

    @override
    def parse_response(self, response: requests.Response) -> t.Iterable[dict]:
        """Parse the response and return an iterator of result records.

        Example:
            API response: {"results": [{"id": "1"}, {"id": "2"}], "next_cursor": "abc"}
            This method yields: {"id": "1"}, then {"id": "2"}

        Args:
            response: The HTTP ``requests.Response`` object.

        Yields:
            Each record from the source.
        """
        yield from extract_jsonpath(
            self.records_jsonpath,
            input=response.json(parse_float=decimal.Decimal),
        )
