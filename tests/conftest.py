"""Shared fixtures."""

from __future__ import annotations

import pytest

from tap_notion_discovery.client import RequestContext
from tests.fakes import block


@pytest.fixture
def request_context() -> RequestContext:
    return RequestContext(auth_token="secret_test")


@pytest.fixture
def nested_children() -> dict[str, list[dict]]:
    """A page with nested toggles, a column list and boundary containers.

    root
    ├── A  toggle
    │   ├── A1
    │   └── A2  toggle
    │       └── A2a
    ├── B
    ├── C  toggle
    │   └── C1
    ├── D  child_page      (has children, never expanded)
    ├── E  column_list
    │   └── E1
    └── F  child_database  (has children, never expanded)
    """
    return {
        "root": [
            block("A", "toggle", has_children=True, parent_id="root", parent_type="page_id"),
            block("B", parent_id="root", parent_type="page_id"),
            block("C", "toggle", has_children=True, parent_id="root", parent_type="page_id"),
            block("D", "child_page", has_children=True, parent_id="root", parent_type="page_id"),
            block("E", "column_list", has_children=True, parent_id="root", parent_type="page_id"),
            block("F", "child_database", has_children=True, parent_id="root", parent_type="page_id"),
        ],
        "A": [
            block("A1", parent_id="A"),
            block("A2", "toggle", has_children=True, parent_id="A"),
        ],
        "A2": [block("A2a", parent_id="A2")],
        "C": [block("C1", parent_id="C")],
        "D": [block("D1", parent_id="D")],
        "E": [block("E1", "column", parent_id="E")],
        "F": [block("F1", parent_id="F")],
    }
