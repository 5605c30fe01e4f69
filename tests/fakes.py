"""In-memory Notion workspace used in place of NotionClient."""

from __future__ import annotations

import asyncio
import typing as t

from tap_notion_discovery.models import Node, Page, PageParams


def block(
    block_id: str,
    type_: str = "paragraph",
    *,
    parent_id: str = "root",
    parent_type: str = "block_id",
    has_children: bool = False,
) -> dict:
    """Return a raw block object as Notion sends it."""
    payload: dict[str, t.Any] = {"rich_text": [{"plain_text": f"text of {block_id}"}]}
    if type_ in ("child_page", "child_database"):
        payload = {"title": f"title of {block_id}"}
    return {
        "object": "block",
        "id": block_id,
        "type": type_,
        "has_children": has_children,
        "archived": False,
        "parent": {"type": parent_type, parent_type: parent_id},
        type_: payload,
    }


def page(page_id: str, parent: dict) -> dict:
    """Return a raw page object with the given raw parent."""
    return {
        "object": "page",
        "id": page_id,
        "archived": False,
        "parent": parent,
        "properties": {
            "Name": {"type": "title", "title": [{"plain_text": f"Page {page_id}"}]},
        },
    }


def workspace_parent() -> dict:
    return {"type": "workspace", "workspace": True}


def page_parent(page_id: str) -> dict:
    return {"type": "page_id", "page_id": page_id}


def database_parent(database_id: str) -> dict:
    return {"type": "database_id", "database_id": database_id}


def paginate(records: list[dict], page_params: PageParams) -> Page[Node]:
    """Serve ``records`` one page at a time; cursors are string offsets."""
    size = page_params.page_size or 100
    start = int(page_params.start_cursor or 0)
    end = start + size
    has_more = end < len(records)
    return Page(
        items=[Node.from_record(record) for record in records[start:end]],
        has_more=has_more,
        next_cursor=str(end) if has_more else None,
    )


class FakeNotionClient:
    """Serves block children and search results from dictionaries.

    Args:
        children: Parent ID to the raw records of its children.
        search_results: Raw records returned by ``search``, in order.
        delays: Seconds to sleep before answering for a given parent ID.
        failures: Exception to raise when listing a given parent ID, or
            when ``search`` is called with a given cursor (key
            ``("search", cursor)``).
    """

    def __init__(
        self,
        children: dict[str, list[dict]] | None = None,
        search_results: list[dict] | None = None,
        *,
        delays: dict[str, float] | None = None,
        failures: dict[t.Any, Exception] | None = None,
        blocks: dict[str, dict] | None = None,
    ) -> None:
        self.children = children or {}
        self.search_results = search_results or []
        self.delays = delays or {}
        self.failures = failures or {}
        self.blocks = blocks or {}
        self.calls: list[tuple[str, t.Any, str | None]] = []
        self.completed: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def list_block_children(
        self,
        context: t.Any,
        block_id: str,
        page_params: PageParams | None = None,
    ) -> Page[Node]:
        page_params = page_params or PageParams()
        self.calls.append(("children", block_id, page_params.start_cursor))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(block_id, 0))
            if block_id in self.failures:
                raise self.failures[block_id]
            result = paginate(self.children.get(block_id, []), page_params)
        finally:
            self.in_flight -= 1
        self.completed.append(block_id)
        return result

    async def search(
        self,
        context: t.Any,
        query: t.Mapping[str, t.Any] | None = None,
        page_params: PageParams | None = None,
    ) -> Page[Node]:
        page_params = page_params or PageParams()
        self.calls.append(("search", query, page_params.start_cursor))
        await asyncio.sleep(0)
        failure = self.failures.get(("search", page_params.start_cursor))
        if failure is not None:
            raise failure
        return paginate(self.search_results, page_params)

    async def retrieve_block(self, context: t.Any, block_id: str) -> Node:
        self.calls.append(("block", block_id, None))
        await asyncio.sleep(0)
        return Node.from_record(self.blocks[block_id])
