"""Root inference: find the entry points an integration can navigate from.

Notion has no "list top-level pages" or "list ancestors" endpoint. The only
enumeration is ``POST /search``, a flat list of everything shared with the
integration. A node is a root for this integration if:

1. Its parent is the workspace itself (a true top-level page), or
2. Its parent is a page the integration cannot see.

Case 2 covers pages shared individually from deep inside the workspace: the
page has a parent, but the parent is outside the integration's grant, so the
page is where navigation has to start.

"Parent not in the listing" cannot be told apart from "parent does not
exist" with this API. Both are treated as roots.
"""

from __future__ import annotations

import functools
import logging
import typing as t

from .models import Node, ParentType, RootReason, RootSet
from .pagination import collect

if t.TYPE_CHECKING:
    from .client import NotionClient, RequestContext

# Pages only: databases are entry points of their own, not page trees.
DEFAULT_ROOT_QUERY: dict[str, t.Any] = {
    "filter": {"property": "object", "value": "page"},
}

logger = logging.getLogger(__name__)


def root_reason(node: Node, visible_ids: t.AbstractSet[str]) -> RootReason | None:
    """Return why ``node`` is a root, or None if it is not one.

    Children of databases and data sources are never roots, visible or not:
    the container is addressed by its own ID. Children of blocks, and of
    parent types this package does not know, are not roots either.
    """
    parent = node.parent
    if parent.type is ParentType.WORKSPACE:
        return RootReason.WORKSPACE
    if parent.type is ParentType.PAGE and parent.id not in visible_ids:
        return RootReason.PARENT_NOT_VISIBLE
    return None


def select_roots(nodes: t.Sequence[Node]) -> RootSet:
    """Apply the root predicate to an exhausted flat listing."""
    visible_ids = frozenset(node.id for node in nodes)

    roots: list[Node] = []
    reasons: dict[str, RootReason] = {}
    for node in nodes:
        reason = root_reason(node, visible_ids)
        if reason is None or node.id in reasons:
            continue
        roots.append(node)
        reasons[node.id] = reason

    return RootSet(roots=tuple(roots), reasons=reasons, scanned=len(nodes))


async def infer_roots(
    client: NotionClient,
    context: RequestContext,
    query: t.Mapping[str, t.Any] | None = None,
    *,
    page_size: int | None = None,
) -> RootSet:
    """List everything visible and return the roots.

    Args:
        client: The Notion facade.
        context: Auth and transport settings.
        query: Search body (``filter``, ``sort``, ``query``) sent verbatim.
            Defaults to pages only.
        page_size: Items per search call.

    Returns:
        The roots, in listing order.

    Raises:
        NotionAPIError: If any page of the listing fails. An incomplete
            listing would turn visible parents into false roots, so no
            partial result is returned.
    """
    if query is None:
        query = DEFAULT_ROOT_QUERY

    nodes = await collect(
        functools.partial(client.search, context, query),
        page_size=page_size,
    )
    root_set = select_roots(nodes)

    logger.info("Found %d root(s) (scanned %d total)", len(root_set), root_set.scanned)
    return root_set
