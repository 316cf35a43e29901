from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, Optional

import pytest

from notion_task_sync.models.field_mapping import FieldMappingSet
from notion_task_sync.models.schema import ExternalSchema
from notion_task_sync.services.mapping_resolver import MappingResolver, MappingSelections

SCHEMA_RESPONSE: Dict[str, Any] = {
    "object": "data_source",
    "id": "ds-1",
    "title": [{"plain_text": "Tasks"}],
    "properties": {
        "Name": {"id": "title", "name": "Name", "type": "title", "title": {}},
        "Done": {"id": "chk", "name": "Done", "type": "checkbox", "checkbox": {}},
        "Status": {
            "id": "st",
            "name": "Status",
            "type": "status",
            "status": {
                "options": [
                    {"id": "A", "name": "Done", "color": "green"},
                    {"id": "B", "name": "Todo", "color": "gray"},
                    {"id": "C", "name": "Doing", "color": "blue"},
                ]
            },
        },
        "Category": {
            "id": "cat",
            "name": "Category",
            "type": "select",
            "select": {"options": [{"id": "c1", "name": "Work"}, {"id": "c2", "name": "Home"}]},
        },
        "Due": {"id": "due", "name": "Due", "type": "date", "date": {}},
        "Do": {"id": "do", "name": "Do", "type": "date", "date": {}},
        "Priority": {
            "id": "pri",
            "name": "Priority",
            "type": "select",
            "select": {"options": [{"id": "p1", "name": "High"}, {"id": "p2", "name": "Low"}]},
        },
        "Estimate": {"id": "est", "name": "Estimate", "type": "number", "number": {}},
        "Notes": {"id": "notes", "name": "Notes", "type": "rich_text", "rich_text": {}},
        "Files": {"id": "files", "name": "Files", "type": "files", "files": {}},
    },
}

CATEGORY_OPTIONS = {"c1": "Work", "c2": "Home"}
PRIORITY_OPTIONS = {"p1": "High", "p2": "Low"}
STATUS_OPTIONS = {"A": "Done", "B": "Todo", "C": "Doing"}


def build_page(
    page_id: str,
    *,
    title: Optional[str] = "Task",
    done: bool = False,
    status: Optional[str] = None,
    category: Optional[str] = None,
    due: Optional[str] = None,
    do: Optional[str] = None,
    priority: Optional[str] = None,
    estimate: Optional[float] = None,
    notes: str = "",
    drop: Iterable[str] = (),
) -> Dict[str, Any]:
    """Страница Notion в том виде, в котором её возвращает API."""

    def option(value: Optional[str], names: Dict[str, str]) -> Optional[Dict[str, str]]:
        return {"id": value, "name": names[value]} if value else None

    def runs(text: Optional[str]) -> list:
        return [{"type": "text", "plain_text": text, "text": {"content": text}}] if text else []

    properties = {
        "Name": {"id": "title", "type": "title", "title": runs(title)},
        "Done": {"id": "chk", "type": "checkbox", "checkbox": done},
        "Status": {"id": "st", "type": "status", "status": option(status, STATUS_OPTIONS)},
        "Category": {"id": "cat", "type": "select", "select": option(category, CATEGORY_OPTIONS)},
        "Due": {"id": "due", "type": "date", "date": {"start": due, "end": None} if due else None},
        "Do": {"id": "do", "type": "date", "date": {"start": do, "end": None} if do else None},
        "Priority": {"id": "pri", "type": "select", "select": option(priority, PRIORITY_OPTIONS)},
        "Estimate": {"id": "est", "type": "number", "number": estimate},
        "Notes": {"id": "notes", "type": "rich_text", "rich_text": runs(notes)},
    }
    for name in drop:
        properties.pop(name, None)
    return {"object": "page", "id": page_id, "archived": False, "properties": properties}


@pytest.fixture
def schema_response() -> Dict[str, Any]:
    return copy.deepcopy(SCHEMA_RESPONSE)


@pytest.fixture
def schema(schema_response) -> ExternalSchema:
    return ExternalSchema.from_response(schema_response)


@pytest.fixture
def resolver(schema) -> MappingResolver:
    return MappingResolver(schema)


@pytest.fixture
def full_selections() -> MappingSelections:
    return MappingSelections(
        title="title",
        completed="st",
        completed_true_option="A",
        completed_false_option="B",
        category="cat",
        due_date="due",
        priority="pri",
        do_date="do",
    )


@pytest.fixture
def enum_mappings(resolver, full_selections) -> FieldMappingSet:
    return resolver.build(full_selections)


@pytest.fixture
def checkbox_mappings(resolver) -> FieldMappingSet:
    return resolver.build(MappingSelections(title="title", completed="chk"))


@pytest.fixture
def make_page():
    return build_page
