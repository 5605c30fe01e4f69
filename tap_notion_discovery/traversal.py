"""Recursive, concurrent expansion of a page's block tree.

Notion exposes a page's content only one level at a time
(``GET /blocks/{id}/children``). ``fetch_tree`` lists the children of the
root, then expands every child that has children of its own, all siblings of
one level at once, until it reaches leaves or opaque boundaries (by default
child pages and child databases, which callers fetch separately by ID).

Every recursive call returns its own list of entries. The parent splices
each child's list right after that child once the whole level has joined, so
the output is in pre-order regardless of which request finished first.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import typing as t

from .models import (
    DEFAULT_BOUNDARY_KINDS,
    Node,
    NodeKind,
    Page,
    PageParams,
    TraversalEntry,
    TraversalResult,
)
from .pagination import collect

if t.TYPE_CHECKING:
    from .client import NotionClient, RequestContext

T = t.TypeVar("T")

logger = logging.getLogger(__name__)


def should_expand(node: Node, boundary_kinds: t.Collection[NodeKind]) -> bool:
    """Return True if the traversal descends into ``node``."""
    return node.has_children and node.kind not in boundary_kinds


async def join_all(awaitables: t.Iterable[t.Awaitable[T]]) -> list[T]:
    """Run awaitables concurrently and return their results in input order.

    Waits for the full set. On the first failure the remaining tasks are
    cancelled and awaited, then that failure is raised unchanged.
    """
    tasks = [asyncio.ensure_future(awaitable) for awaitable in awaitables]
    if not tasks:
        return []
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def fetch_tree(
    client: NotionClient,
    context: RequestContext,
    root_id: str,
    boundary_kinds: t.Collection[NodeKind] = DEFAULT_BOUNDARY_KINDS,
    *,
    page_size: int | None = None,
    max_concurrency: int | None = None,
    include_root: bool = False,
) -> TraversalResult:
    """Fetch every block under ``root_id``, depth-tagged, in pre-order.

    How it works:
    1. List all children of a node (exhausting pagination).
    2. Tag each child with its parent's depth plus one, keeping listing order.
    3. Expand the children that have children and are not boundaries, one
       task per child, and wait for all of them.
    4. Insert each child's subtree right after the child.

    Args:
        client: The Notion facade.
        context: Auth and transport settings, passed to every call.
        root_id: The page or block to expand. The root is always expanded,
            even if its own kind is a boundary.
        boundary_kinds: Kinds reported as leaves and never expanded.
        page_size: Items per list call.
        max_concurrency: Upper bound on in-flight requests, or None.
        include_root: Also retrieve the root and emit it first, at depth 0.

    Returns:
        The traversal. Direct children of the root have depth 1.

    Raises:
        NotionAPIError: The first error of any request. Outstanding requests
            are cancelled and no partial result is returned.
    """
    boundary_kinds = frozenset(boundary_kinds)
    limiter = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def limited(call: t.Callable[[], t.Awaitable[T]]) -> T:
        if limiter is None:
            return await call()
        async with limiter:
            return await call()

    async def fetch_children_page(parent_id: str, page_params: PageParams) -> Page[Node]:
        return await limited(
            functools.partial(client.list_block_children, context, parent_id, page_params),
        )

    async def expand(parent_id: str, depth: int) -> list[TraversalEntry]:
        children = await collect(
            functools.partial(fetch_children_page, parent_id),
            page_size=page_size,
        )
        positions = [
            position
            for position, child in enumerate(children)
            if should_expand(child, boundary_kinds)
        ]
        logger.debug(
            "Block %s: %d children at depth %d, expanding %d",
            parent_id,
            len(children),
            depth,
            len(positions),
        )

        subtrees = dict(
            zip(
                positions,
                await join_all(expand(children[position].id, depth + 1) for position in positions),
            ),
        )

        entries: list[TraversalEntry] = []
        for position, child in enumerate(children):
            entries.append(TraversalEntry(node=child, depth=depth, parent_id=parent_id))
            entries.extend(subtrees.get(position, ()))
        return entries

    if include_root:
        root, descendants = await join_all(
            [
                limited(functools.partial(client.retrieve_block, context, root_id)),
                expand(root_id, 1),
            ],
        )
        entries = [TraversalEntry(node=root, depth=0, parent_id=None), *descendants]
    else:
        entries = await expand(root_id, 1)

    logger.info("Traversed %d blocks under %s", len(entries), root_id)
    return TraversalResult(
        root_id=root_id,
        entries=tuple(entries),
        boundary_kinds=boundary_kinds,
    )
