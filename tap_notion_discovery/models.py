"""Plain data structures shared by the client, the engine and the streams.

Nothing in here performs I/O. The structures are built from raw Notion JSON
records (``Node.from_record``, ``Page.from_envelope``) and handed between the
pagination primitive, the subtree fetcher and root inference. Streams turn
them back into Singer records.

The kind of a node is a closed enum (``NodeKind``). Per-kind behavior lives in
one table (``KIND_CATEGORIES``) instead of ``if`` chains spread over the
engine: to support a new Notion block type, add a member to the enum and, if
it is a container, an entry to ``_CONTAINER_CATEGORIES``.
"""

from __future__ import annotations

import enum
import typing as t
from dataclasses import dataclass, field

from .errors import UnknownRemoteError

T = t.TypeVar("T")


class KindCategory(str, enum.Enum):
    """Coarse classification of a node kind."""

    CONTENT = "content"
    CONTAINER_PAGE = "container_page"
    CONTAINER_DATABASE = "container_database"


class NodeKind(str, enum.Enum):
    """Every node type the engine knows about.

    Values are the Notion ``type`` of a block, or the ``object`` of a
    top-level page, database or data source.
    """

    # Text blocks
    PARAGRAPH = "paragraph"
    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    BULLETED_LIST_ITEM = "bulleted_list_item"
    NUMBERED_LIST_ITEM = "numbered_list_item"
    TO_DO = "to_do"
    TOGGLE = "toggle"
    CODE = "code"
    QUOTE = "quote"
    CALLOUT = "callout"
    EQUATION = "equation"
    # Layout and grouping blocks
    DIVIDER = "divider"
    COLUMN_LIST = "column_list"
    COLUMN = "column"
    TABLE = "table"
    TABLE_ROW = "table_row"
    TABLE_OF_CONTENTS = "table_of_contents"
    BREADCRUMB = "breadcrumb"
    SYNCED_BLOCK = "synced_block"
    TEMPLATE = "template"
    # Media and links
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"
    PDF = "pdf"
    BOOKMARK = "bookmark"
    EMBED = "embed"
    LINK_PREVIEW = "link_preview"
    LINK_TO_PAGE = "link_to_page"
    # Containers nested inside a page
    CHILD_PAGE = "child_page"
    CHILD_DATABASE = "child_database"
    # Top-level objects
    PAGE = "page"
    DATABASE = "database"
    DATA_SOURCE = "data_source"

    UNSUPPORTED = "unsupported"

    @classmethod
    def _missing_(cls, value: object) -> NodeKind:
        # Notion adds block types over time; treat unknown ones as content.
        return cls.UNSUPPORTED

    @property
    def category(self) -> KindCategory:
        return KIND_CATEGORIES[self]


_CONTAINER_CATEGORIES: dict[NodeKind, KindCategory] = {
    NodeKind.CHILD_PAGE: KindCategory.CONTAINER_PAGE,
    NodeKind.PAGE: KindCategory.CONTAINER_PAGE,
    NodeKind.CHILD_DATABASE: KindCategory.CONTAINER_DATABASE,
    NodeKind.DATABASE: KindCategory.CONTAINER_DATABASE,
    NodeKind.DATA_SOURCE: KindCategory.CONTAINER_DATABASE,
}

KIND_CATEGORIES: dict[NodeKind, KindCategory] = {
    kind: _CONTAINER_CATEGORIES.get(kind, KindCategory.CONTENT) for kind in NodeKind
}

# Child pages and child databases are reported by ID, never expanded.
DEFAULT_BOUNDARY_KINDS: frozenset[NodeKind] = frozenset(
    {NodeKind.CHILD_PAGE, NodeKind.CHILD_DATABASE},
)


def boundary_kinds_from_types(types: t.Iterable[str]) -> frozenset[NodeKind]:
    """Convert configured type names (e.g. ``"child_page"``) to kinds.

    Raises:
        ValueError: If a name is not a known node kind. A typo here would
            otherwise silently expand containers.
    """
    known = {kind.value for kind in NodeKind}
    unknown = sorted(set(types) - known)
    if unknown:
        msg = f"Unknown boundary type(s): {', '.join(unknown)}"
        raise ValueError(msg)
    return frozenset(NodeKind(value) for value in types)


class ParentType(str, enum.Enum):
    """Discriminator of ``ParentReference``."""

    WORKSPACE = "workspace"
    PAGE = "page_id"
    CONTAINER = "container_id"
    BLOCK = "block_id"
    # Any parent type Notion adds later (teamspaces and the like)
    OTHER = "other"


# Raw Notion parent ``type`` values and the variant they map to.
_RAW_PARENT_TYPES: dict[str, ParentType] = {
    "workspace": ParentType.WORKSPACE,
    "page_id": ParentType.PAGE,
    "database_id": ParentType.CONTAINER,
    "data_source_id": ParentType.CONTAINER,
    "block_id": ParentType.BLOCK,
}


@dataclass(frozen=True)
class ParentReference:
    """Where a node lives: the workspace, a page, a container or a block.

    Exactly one variant is populated. The workspace variant carries no ID;
    the ``OTHER`` variant keeps the ID only when Notion sent a string.
    """

    type: ParentType
    id: str | None = None

    def __post_init__(self) -> None:
        if self.type is ParentType.WORKSPACE and self.id is not None:
            msg = "A workspace parent carries no ID"
            raise ValueError(msg)
        if self.type not in (ParentType.WORKSPACE, ParentType.OTHER) and not self.id:
            msg = f"A {self.type.value} parent requires an ID"
            raise ValueError(msg)

    @classmethod
    def workspace(cls) -> ParentReference:
        return cls(ParentType.WORKSPACE)

    @classmethod
    def from_record(cls, parent: t.Mapping[str, t.Any]) -> ParentReference:
        """Parse a Notion ``parent`` object.

        Example:
            ``{"type": "page_id", "page_id": "abc"}`` becomes
            ``ParentReference(ParentType.PAGE, "abc")``.
        """
        raw_type = parent.get("type")
        parent_type = _RAW_PARENT_TYPES.get(raw_type)  # type: ignore[arg-type]
        if parent_type is None:
            raw_id = parent.get(raw_type) if isinstance(raw_type, str) else None
            return cls(ParentType.OTHER, raw_id if isinstance(raw_id, str) else None)
        if parent_type is ParentType.WORKSPACE:
            return cls.workspace()
        return cls(parent_type, parent.get(raw_type))


@dataclass(frozen=True)
class Node:
    """Any fetchable unit: a block, a page or a database.

    ``record`` keeps the raw JSON so streams can emit the full object.
    """

    id: str
    kind: NodeKind
    has_children: bool
    parent: ParentReference
    record: dict = field(default_factory=dict, compare=False, hash=False, repr=False)

    @classmethod
    def from_record(cls, record: dict) -> Node:
        """Build a node from a block, page, database or data source object."""
        obj = record.get("object")
        if obj == "block":
            kind = NodeKind(record.get("type", NodeKind.UNSUPPORTED.value))
        else:
            kind = NodeKind(obj)

        return cls(
            id=record["id"],
            kind=kind,
            # Pages and databases do not report has_children; they always
            # may have content.
            has_children=bool(record.get("has_children", obj != "block")),
            parent=ParentReference.from_record(record.get("parent") or {}),
            record=record,
        )

    @property
    def category(self) -> KindCategory:
        return self.kind.category

    @property
    def object(self) -> str:
        return self.record.get("object", "block")

    @property
    def text(self) -> str:
        """Return the node's plain text: rich text for content, title for containers."""
        payload = self.record.get(self.record.get("type", ""), {})
        if not isinstance(payload, dict):
            payload = {}

        if self.kind in (NodeKind.CHILD_PAGE, NodeKind.CHILD_DATABASE):
            return payload.get("title", "")
        if self.kind is NodeKind.PAGE:
            for prop in (self.record.get("properties") or {}).values():
                if prop.get("type") == "title":
                    return _plain_text(prop.get("title"))
            return ""
        if self.category is KindCategory.CONTAINER_DATABASE:
            return _plain_text(self.record.get("title"))
        return _plain_text(payload.get("rich_text"))


def _plain_text(rich_text: t.Any) -> str:
    if not rich_text:
        return ""
    return "".join(part.get("plain_text", "") for part in rich_text)


@dataclass(frozen=True)
class PageParams:
    """Pagination parameters of one list call."""

    page_size: int | None = None
    start_cursor: str | None = None

    def as_dict(self) -> dict[str, t.Any]:
        """Return the parameters Notion expects, omitting unset ones."""
        params: dict[str, t.Any] = {}
        if self.start_cursor:
            params["start_cursor"] = self.start_cursor
        if self.page_size:
            params["page_size"] = self.page_size
        return params


@dataclass(frozen=True)
class Page(t.Generic[T]):
    """One fetch result of a cursor-paginated list endpoint.

    ``next_cursor`` is set exactly when ``has_more`` is true. A cursor is
    only valid for the query that produced it.
    """

    items: list[T]
    has_more: bool = False
    next_cursor: str | None = None

    def __post_init__(self) -> None:
        if self.has_more != (self.next_cursor is not None):
            msg = "next_cursor must be set if and only if has_more is true"
            raise ValueError(msg)

    @classmethod
    def from_envelope(
        cls,
        envelope: t.Any,
        parse: t.Callable[[dict], T],
    ) -> Page[T]:
        """Parse Notion's ``{"results", "has_more", "next_cursor"}`` envelope.

        A stray cursor on the last page is dropped. ``has_more`` without a
        cursor cannot be continued and is reported as a remote fault.

        Raises:
            UnknownRemoteError: If the envelope does not have the expected shape.
        """
        if not isinstance(envelope, dict) or not isinstance(envelope.get("results"), list):
            msg = "Response envelope has no 'results' list"
            raise UnknownRemoteError(msg)

        has_more = bool(envelope.get("has_more"))
        next_cursor = envelope.get("next_cursor") or None
        if not has_more:
            next_cursor = None
        elif next_cursor is None:
            msg = "Response has 'has_more' set but no 'next_cursor'"
            raise UnknownRemoteError(msg)

        return cls(
            items=[parse(record) for record in envelope["results"]],
            has_more=has_more,
            next_cursor=next_cursor,
        )


@dataclass(frozen=True)
class TraversalEntry:
    """A node placed in a traversal, with its depth and direct parent."""

    node: Node
    depth: int
    parent_id: str | None


@dataclass(frozen=True)
class TraversalResult:
    """Depth-tagged nodes of one subtree, in pre-order.

    The traversal root has depth 0 and its direct children depth 1. The
    root only appears in ``entries`` when it was requested explicitly.
    """

    root_id: str
    entries: tuple[TraversalEntry, ...]
    boundary_kinds: frozenset[NodeKind] = DEFAULT_BOUNDARY_KINDS

    def __iter__(self) -> t.Iterator[TraversalEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> TraversalEntry:
        return self.entries[index]

    @property
    def nodes(self) -> list[Node]:
        return [entry.node for entry in self.entries]

    @property
    def boundaries(self) -> list[Node]:
        """Nodes left unexpanded because their kind is an opaque boundary.

        Callers fetch these separately, by ID.
        """
        return [
            entry.node
            for entry in self.entries
            if entry.node.kind in self.boundary_kinds and entry.depth > 0
        ]


class RootReason(str, enum.Enum):
    """Why a node qualified as a root."""

    WORKSPACE = "workspace"
    PARENT_NOT_VISIBLE = "parent_not_visible"


@dataclass(frozen=True)
class RootSet:
    """Effective entry points of the workspace for one integration.

    Roots keep the order of the flat listing they were inferred from.
    """

    roots: tuple[Node, ...]
    reasons: t.Mapping[str, RootReason]
    scanned: int

    def __iter__(self) -> t.Iterator[Node]:
        return iter(self.roots)

    def __len__(self) -> int:
        return len(self.roots)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.reasons

    @property
    def ids(self) -> list[str]:
        return [node.id for node in self.roots]

    def reason(self, node_id: str) -> RootReason:
        return self.reasons[node_id]
