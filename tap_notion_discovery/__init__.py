"""tap_notion_discovery package: map a Notion workspace as Singer streams.

Contents:
- tap.py: Tap entrypoint (configuration and stream discovery).
- client.py: Request context, awaitable NotionClient facade and the
  NotionStream base class (auth, headers, pagination, error mapping).
- pagination.py: Cursor pagination primitive (`fetch_all`) and SDK paginator.
- traversal.py: Concurrent block-tree expansion (`fetch_tree`).
- discovery.py: Root inference from the flat search listing (`infer_roots`).
- models.py: Nodes, parent references, pages and traversal results.
- errors.py: Typed Notion API errors.
- streams.py: Singer streams built on the pieces above.
"""

from .client import NotionClient, RequestContext
from .discovery import infer_roots
from .errors import (
    AuthError,
    NotFoundError,
    NotionAPIError,
    RateLimitError,
    ServerError,
    TransportError,
    UnknownRemoteError,
    ValidationError,
)
from .models import (
    DEFAULT_BOUNDARY_KINDS,
    Node,
    NodeKind,
    Page,
    ParentReference,
    ParentType,
    RootSet,
    TraversalEntry,
    TraversalResult,
)
from .pagination import collect, fetch_all
from .traversal import fetch_tree

__all__ = [
    "DEFAULT_BOUNDARY_KINDS",
    "AuthError",
    "Node",
    "NodeKind",
    "NotFoundError",
    "NotionAPIError",
    "NotionClient",
    "Page",
    "ParentReference",
    "ParentType",
    "RateLimitError",
    "RequestContext",
    "RootSet",
    "ServerError",
    "TransportError",
    "TraversalEntry",
    "TraversalResult",
    "UnknownRemoteError",
    "ValidationError",
    "collect",
    "fetch_all",
    "fetch_tree",
    "infer_roots",
]
