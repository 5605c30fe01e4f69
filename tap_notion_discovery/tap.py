"""Singer Tap entrypoint for Notion workspace discovery.

This module defines the TapNotionDiscovery class, which is the entrypoint the
Singer SDK uses to run the tap. It declares:

- The tap name and configuration schema (settings users can provide).
- The list of streams which expose the workspace map.

Start here to see what configuration is supported and which streams are
exposed. The engine behind the streams lives in pagination.py, traversal.py
and discovery.py.
"""

from __future__ import annotations

import sys

from singer_sdk import Tap
from singer_sdk import typing as th  # JSON schema typing helpers

from . import streams
from .client import DEFAULT_API_URL, DEFAULT_NOTION_VERSION, DEFAULT_PAGE_SIZE, DEFAULT_TIMEOUT
from .discovery import DEFAULT_ROOT_QUERY
from .models import DEFAULT_BOUNDARY_KINDS

if sys.version_info >= (3, 12):
    from typing import override
else:
    from typing_extensions import override


class TapNotionDiscovery(Tap):
    """Singer Tap mapping a Notion workspace.

    Responsibilities:
    - Declare the tap name and the JSONSchema for configuration options.
    - Instantiate and return the list of available streams via `discover_streams`.

    Stream relationships:
    - RootPagesStream infers the integration's entry points and emits page
      contexts consumed by PageContentStream.
    - SearchStream is independent: the raw flat listing.
    """

    name = "tap-notion-discovery"

    config_jsonschema = th.PropertiesList(
        th.Property(
            "auth_token",
            th.StringType(nullable=False),
            required=True,
            secret=True,  # Integration token from Notion
            title="Auth Token",
            description="The Notion integration token (starts with 'secret_' or 'ntn_').",
        ),
        th.Property(
            "notion_version",
            th.StringType(nullable=True),
            title="Notion API Version",
            description=f"Override the Notion-Version header (default '{DEFAULT_NOTION_VERSION}').",
        ),
        th.Property(
            "api_url",
            th.StringType(nullable=True),
            title="API URL",
            description=f"Base URL of the Notion API (default '{DEFAULT_API_URL}').",
        ),
        th.Property(
            "user_agent",
            th.StringType(nullable=True),
            description="A custom User-Agent header to send with each request.",
        ),
        th.Property(
            "page_size",
            th.IntegerType(nullable=True),
            default=DEFAULT_PAGE_SIZE,
            description="Items per page for list/search endpoints (max 100).",
        ),
        th.Property(
            "request_timeout",
            th.IntegerType(nullable=True),
            default=DEFAULT_TIMEOUT,
            description="Seconds to wait for each HTTP response.",
        ),
        th.Property(
            "max_retries",
            th.IntegerType(nullable=True),
            default=0,
            description=(
                "Retries with exponential backoff on rate limits, connection "
                "failures and 5xx responses for root and content discovery. "
                "0 attempts every request exactly once."
            ),
        ),
        th.Property(
            "max_concurrency",
            th.IntegerType(nullable=True),
            description=(
                "Upper bound on simultaneous requests while walking a page's "
                "block tree. Unbounded when unset."
            ),
        ),
        th.Property(
            "boundary_types",
            th.ArrayType(th.StringType),
            default=sorted(kind.value for kind in DEFAULT_BOUNDARY_KINDS),
            description=(
                "Block types reported but never expanded while walking a page. "
                "Their content is fetched separately, by ID."
            ),
        ),
        th.Property(
            "root_query",
            th.ObjectType(),
            default=DEFAULT_ROOT_QUERY,
            description=(
                "Search body (filter/sort/query) used to list the objects roots "
                "are inferred from. Sent to Notion verbatim."
            ),
        ),
        th.Property(
            "search_query",
            th.StringType(nullable=True),
            description="Optional search query string for the 'search' stream.",
        ),
        th.Property(
            "search_filter",
            th.ObjectType(),
            description="Optional search filter for the 'search' stream, sent verbatim.",
        ),
        th.Property(
            "search_sort",
            th.ObjectType(),
            description="Optional search sort for the 'search' stream, sent verbatim.",
        ),
    ).to_dict()

    @override
    def discover_streams(self) -> list[streams.NotionStream]:
        """Instantiate and return the list of available streams.

        - SearchStream: flat listing (POST /v1/search).
        - RootPagesStream: inferred root pages and databases.
        - PageContentStream: child of RootPagesStream, every block of each
          root page in pre-order with depth and lineage fields.
        """
        return [
            streams.SearchStream(self),
            streams.RootPagesStream(self),
            streams.PageContentStream(self),
        ]


if __name__ == "__main__":
    TapNotionDiscovery.cli()
