"""Stream classes exposing the Notion workspace map.

All streams inherit from `NotionStream` (see client.py), which handles base
URL, headers, authentication and pagination on Notion's standard envelope.

- `SearchStream` is a plain SDK-driven REST stream over POST /v1/search.
- `RootPagesStream` and `PageContentStream` delegate to the discovery engine
  (discovery.py, traversal.py) instead of the SDK request loop, because their
  records come out of a whole listing or a whole block tree rather than a
  single endpoint.

Use this file to understand:
- Which records each stream emits and which lineage fields are added.
- How `page_id` flows from root pages to their content.
"""

from __future__ import annotations

import asyncio
import typing as t

from singer_sdk import typing as th  # JSON Schema typing helpers

from .client import NotionStream
from .discovery import DEFAULT_ROOT_QUERY, infer_roots
from .models import DEFAULT_BOUNDARY_KINDS, KindCategory, NodeKind, PageParams, boundary_kinds_from_types
from .traversal import fetch_tree

if t.TYPE_CHECKING:
    from singer_sdk.helpers.types import Context

# Fields shared by pages, databases and data sources
_OBJECT_PROPERTIES = (
    th.Property("object", th.StringType),
    th.Property("id", th.StringType),
    th.Property("url", th.StringType),
    th.Property("created_time", th.DateTimeType),
    th.Property("last_edited_time", th.DateTimeType),
    th.Property("archived", th.BooleanType),
    th.Property("parent", th.ObjectType()),
    # Page properties, or database/data source schema
    th.Property("properties", th.ObjectType()),
    # Database and data source titles (pages keep theirs in `properties`)
    th.Property("title", th.ArrayType(th.ObjectType())),
)

# One payload property per block type, named after the type itself
_BLOCK_PAYLOAD_PROPERTIES = tuple(
    th.Property(kind.value, th.ObjectType())
    for kind in NodeKind
    if kind.category is KindCategory.CONTENT or kind.value.startswith("child_")
)


class SearchStream(NotionStream):
    """Workspace search stream (POST /v1/search).

    Emits the raw flat listing that root inference works from. The optional
    `search_filter` and `search_sort` settings are sent to Notion verbatim.
    """

    name = "search"
    path = "/search"
    primary_keys: t.ClassVar[list[str]] = ["id"]
    replication_key = None
    rest_method = "POST"

    schema = th.PropertiesList(*_OBJECT_PROPERTIES).to_dict()

    def prepare_request_payload(
            self,
            context: Context | None,
            next_page_token: t.Any | None,
    ) -> dict | None:
        """Compose the POST body for Notion search.

        Notion expects cursor and page_size in the JSON body for POST endpoints.

        Args:
            context: Stream context (unused for this independent stream)
            next_page_token: Pagination cursor for fetching subsequent pages

        Returns:
            dict: The request body dictionary for the POST request
        """
        payload: dict[str, t.Any] = {}

        query = self.config.get("search_query")
        if query:
            payload["query"] = query

        search_filter = self.config.get("search_filter")
        if search_filter:
            payload["filter"] = search_filter

        search_sort = self.config.get("search_sort")
        if search_sort:
            payload["sort"] = search_sort

        payload.update(
            PageParams(page_size=self.page_size, start_cursor=next_page_token).as_dict(),
        )
        return payload


class RootPagesStream(NotionStream):
    """Root pages of the integration (inferred from POST /v1/search).

    A page is a root if its parent is the workspace, or if its parent page is
    not visible to the integration. Each record carries `_root_reason`
    (`workspace` or `parent_not_visible`).

    Child streams receive `{"page_id": ...}` for every page root.
    """

    name = "root_pages"
    path = "/search"
    rest_method = "POST"
    primary_keys: t.ClassVar[list[str]] = ["id"]
    replication_key = None

    schema = th.PropertiesList(
        *_OBJECT_PROPERTIES,
        # Why this object is an entry point
        th.Property("_root_reason", th.StringType),
    ).to_dict()

    def get_records(self, context: Context | None) -> t.Iterable[dict]:  # type: ignore[override]
        """Infer the roots and yield one record per root, in listing order.

        The whole listing is fetched before any record is emitted; a failure
        on any page aborts the stream.
        """
        query = self.config.get("root_query") or DEFAULT_ROOT_QUERY

        with self.build_client() as client:
            root_set = asyncio.run(
                infer_roots(client, self.request_context, query, page_size=self.page_size),
            )

        self.logger.info(
            "Found %d root(s) (scanned %d total)",
            len(root_set),
            root_set.scanned,
        )
        for node in root_set:
            yield {**node.record, "_root_reason": root_set.reason(node.id).value}

    def get_child_context(self, record: dict, context: Context | None) -> dict | None:
        """Propagate page context to PageContentStream.

        Database roots are skipped; their entries are not block trees.
        """
        if record.get("object") == "page":
            return {"page_id": record["id"]}

        return None


class PageContentStream(NotionStream):
    """All blocks of each root page, in reading order.

    Walks the page's block tree with `fetch_tree`: nested blocks (toggles,
    columns, synced blocks...) are expanded concurrently, child pages and
    child databases are emitted but never entered. Records come out in
    pre-order and are enriched with:

    - `_page_id`: the page the traversal started from
    - `_parent_id`: the page or block the record is a direct child of
    - `_depth`: 1 for top-level blocks, +1 per nesting level
    - `_position`: index of the record in the page's pre-order

    Parent stream: RootPagesStream (receives page_id through context)
    """

    name = "page_content"
    path = "/blocks/{page_id}/children"
    parent_stream_type = RootPagesStream
    primary_keys: t.ClassVar[list[str]] = ["id"]

    schema = th.PropertiesList(
        th.Property("object", th.StringType),
        th.Property("id", th.StringType),
        # Block type (paragraph, heading_1, child_page, etc.)
        th.Property("type", th.StringType),
        th.Property("has_children", th.BooleanType),
        th.Property("archived", th.BooleanType),
        th.Property("created_time", th.DateTimeType),
        th.Property("last_edited_time", th.DateTimeType),
        th.Property("parent", th.ObjectType()),
        *_BLOCK_PAYLOAD_PROPERTIES,
        # Enrichment fields added by this stream (not from Notion API)
        th.Property("_page_id", th.StringType),
        th.Property("_parent_id", th.StringType),
        th.Property("_depth", th.IntegerType),
        th.Property("_position", th.IntegerType),
    ).to_dict()

    @property
    def boundary_kinds(self) -> frozenset[NodeKind]:
        """Block types reported as leaves, from the `boundary_types` setting."""
        configured = self.config.get("boundary_types")
        if configured is None:
            return DEFAULT_BOUNDARY_KINDS
        return boundary_kinds_from_types(configured)

    def get_records(self, context: Context | None) -> t.Iterable[dict]:  # type: ignore[override]
        """Fetch the page's block tree and yield its blocks in pre-order.

        Args:
            context: Stream context dictionary containing page_id from parent stream

        Yields:
            dict: Block records with the lineage fields described above
        """
        if not context or "page_id" not in context:
            return

        page_id = context["page_id"]

        with self.build_client() as client:
            traversal = asyncio.run(
                fetch_tree(
                    client,
                    self.request_context,
                    page_id,
                    self.boundary_kinds,
                    page_size=self.page_size,
                    max_concurrency=self.config.get("max_concurrency"),
                ),
            )

        for position, entry in enumerate(traversal):
            yield {
                **entry.node.record,
                "_page_id": page_id,
                "_parent_id": entry.parent_id,
                "_depth": entry.depth,
                "_position": position,
            }
