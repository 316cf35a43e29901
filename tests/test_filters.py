from datetime import date
from typing import Any, Dict

import pytest

from notion_task_sync.models.lists import FilterClause, ListDefinition, SortOrder, system_lists
from notion_task_sync.services.codec import TaskCodec
from notion_task_sync.services.filters import (
    PUSHDOWN_OPERATORS,
    build_sort_options,
    combine_filters,
    filter_for_list,
    matches,
    plan_query,
    to_remote_filter,
)

TODAY = date(2026, 10, 18)


def notion_evaluate(fragment: Dict[str, Any], page: Dict[str, Any]) -> bool:
    """Упрощённая модель того, как Notion применяет фрагмент фильтра к странице."""
    if "and" in fragment:
        return all(notion_evaluate(item, page) for item in fragment["and"])
    prop = next(p for p in page["properties"].values() if p["id"] == fragment["property"])
    key = next(k for k in fragment if k != "property")
    condition = fragment[key]
    value = prop.get(prop["type"])

    if "is_empty" in condition:
        return not value
    if "is_not_empty" in condition:
        return bool(value)
    if key in ("select", "status"):
        return bool(value) and value["name"] == condition["equals"]
    if key == "number":
        return value is not None and value == condition["equals"]
    if key == "date":
        if not value:
            return False
        start = value["start"][:10]
        op, literal = next(iter(condition.items()))
        return {"equals": start == literal, "before": start < literal, "after": start > literal}[op]
    raise AssertionError(f"unexpected fragment {fragment}")


@pytest.fixture
def pages(make_page):
    return [
        make_page("p1", category="c1", priority="p1", due="2026-10-18", do="2026-10-18", status="A"),
        make_page("p2", category="c2", due="2026-10-17", do="2026-10-19T09:30:00.000+02:00", status="B"),
        make_page("p3", priority="p2", due="2026-10-25", status="C"),
        make_page("p4"),
    ]


@pytest.fixture
def records(pages, enum_mappings):
    return TaskCodec().decode_batch(pages, enum_mappings).records


CLAUSES = [
    FilterClause(type="category", field="__category__", operator="equals", value="c1"),
    FilterClause(type="category", field="__category__", operator="equals", value="Home"),
    FilterClause(type="category", field="__category__", operator="is_empty"),
    FilterClause(type="category", field="__category__", operator="is_not_empty"),
    FilterClause(type="status", field="__completed__", operator="equals", value="A"),
    FilterClause(type="status", field="st", operator="equals", value="Todo"),
    FilterClause(type="status", field="__completed__", operator="is_empty"),
    FilterClause(type="status", field="__completed__", operator="is_not_empty"),
    FilterClause(type="priority", field="__priority__", operator="equals", value="p1"),
    FilterClause(type="priority", field="__priority__", operator="is_empty"),
    FilterClause(type="priority", field="__priority__", operator="is_not_empty"),
    FilterClause(type="priority", field="est", operator="is_empty"),
    FilterClause(type="date", field="__dueDate__", operator="equals", value="today"),
    FilterClause(type="date", field="__dueDate__", operator="equals", value="2026-10-25"),
    FilterClause(type="date", field="__dueDate__", operator="before", value="2026-10-18"),
    FilterClause(type="date", field="__dueDate__", operator="after", value="today"),
    FilterClause(type="date", field="__doDate__", operator="is_empty"),
    FilterClause(type="date", field="__doDate__", operator="is_not_empty"),
    FilterClause(type="date", field="__doDate__", operator="equals", value="2026-10-19"),
]


@pytest.mark.parametrize("clause", CLAUSES, ids=lambda c: f"{c.type.value}-{c.field}-{c.operator.value}")
def test_remote_and_local_agree(clause, pages, records, enum_mappings, schema):
    fragment = to_remote_filter(clause, enum_mappings, schema=schema, today=TODAY)
    assert fragment is not None
    for page, record in zip(pages, records):
        local = matches(clause, record, enum_mappings, today=TODAY)
        assert local == notion_evaluate(fragment, page), page["id"]


def test_every_supported_pair_is_covered():
    covered = {(clause.type, clause.operator) for clause in CLAUSES}
    expected = {(kind, op) for kind, ops in PUSHDOWN_OPERATORS.items() for op in ops}
    assert expected <= covered


def test_equals_today_emits_current_local_date(enum_mappings, records):
    clause = FilterClause(type="date", field="__dueDate__", operator="equals", value="today")
    assert to_remote_filter(clause, enum_mappings) == {
        "property": "due",
        "date": {"equals": date.today().isoformat()},
    }
    assert matches(clause, records[0], enum_mappings, today=date(2026, 10, 18))


def test_category_option_id_is_sent_as_option_name(enum_mappings, schema):
    clause = FilterClause(type="category", field="__category__", operator="equals", value="c1")
    assert to_remote_filter(clause, enum_mappings, schema=schema) == {
        "property": "cat",
        "select": {"equals": "Work"},
    }


@pytest.mark.parametrize(
    "clause",
    [
        FilterClause(type="custom", field="__title__", operator="contains", value="task"),
        FilterClause(type="date", field="__dueDate__", operator="contains", value="x"),
        FilterClause(type="category", field="__category__", operator="before", value="2026-01-01"),
        FilterClause(type="status", field="__completed__", operator="equals", value=True),
        FilterClause(type="date", field="__dueDate__", operator="equals", value="not a date"),
        FilterClause(type="category", field="__category__", operator="equals"),
    ],
)
def test_unsupported_pairs_are_not_pushed_down(clause, enum_mappings):
    assert to_remote_filter(clause, enum_mappings) is None


def test_checkbox_status_filter_is_evaluated_locally(checkbox_mappings, make_page):
    clause = FilterClause(type="status", field="__completed__", operator="equals", value=True)
    assert to_remote_filter(clause, checkbox_mappings) is None
    record = TaskCodec().decode_record(make_page("p1", done=True), checkbox_mappings)
    assert matches(clause, record, checkbox_mappings)


def test_unmapped_placeholder_fails_open(checkbox_mappings, make_page):
    record = TaskCodec().decode_record(make_page("p1"), checkbox_mappings)
    clause = FilterClause(type="priority", field="__priority__", operator="is_not_empty")
    assert to_remote_filter(clause, checkbox_mappings) is None
    assert matches(clause, record, checkbox_mappings)


def test_contains_on_title(records, enum_mappings):
    clause = FilterClause(type="custom", field="__title__", operator="contains", value="TAS")
    assert all(matches(clause, record, enum_mappings) for record in records)


def test_empty_filter_list_is_identity(records, enum_mappings):
    definition = ListDefinition(id="all", name="All")
    assert filter_for_list(records, definition, enum_mappings) == records


def test_filter_for_list_combines_with_and(records, enum_mappings):
    definition = ListDefinition(
        id="x",
        name="x",
        filters=[
            FilterClause(type="date", field="__dueDate__", operator="is_not_empty"),
            FilterClause(type="priority", field="__priority__", operator="is_not_empty"),
        ],
    )
    assert [record.id for record in filter_for_list(records, definition, enum_mappings)] == ["p1", "p3"]


def test_plan_query_splits_clauses(enum_mappings, schema):
    definition = ListDefinition(
        id="x",
        name="x",
        filters=[
            FilterClause(type="date", field="__doDate__", operator="equals", value="today"),
            FilterClause(type="custom", field="__title__", operator="contains", value="milk"),
            FilterClause(type="priority", field="__priority__", operator="is_not_empty"),
        ],
    )
    plan = plan_query(definition, enum_mappings, schema=schema, today=TODAY)
    assert plan.remote_filter == {
        "and": [
            {"property": "do", "date": {"equals": "2026-10-18"}},
            {"property": "pri", "select": {"is_not_empty": True}},
        ]
    }
    assert [clause.operator.value for clause in plan.local_clauses] == ["contains"]


def test_system_lists_plan_for_my_day(enum_mappings):
    my_day = system_lists()[0]
    plan = plan_query(my_day, enum_mappings, today=TODAY)
    assert plan.remote_filter == {"property": "do", "date": {"equals": "2026-10-18"}}
    assert plan.local_clauses == []


def test_combine_filters():
    assert combine_filters([]) is None
    assert combine_filters([None, {"a": 1}]) == {"a": 1}
    assert combine_filters([{"a": 1}, {"b": 2}]) == {"and": [{"a": 1}, {"b": 2}]}


def test_unknown_placeholder_is_rejected():
    with pytest.raises(ValueError):
        FilterClause(type="date", field="__someday__", operator="is_empty")


@pytest.mark.parametrize(
    "sort_order, expected",
    [
        (SortOrder.DUE_DATE, [{"property": "due", "direction": "ascending"}]),
        (SortOrder.PRIORITY, [{"property": "pri", "direction": "descending"}]),
        (SortOrder.ALPHABETICAL, [{"property": "title", "direction": "ascending"}]),
        (SortOrder.MANUAL, None),
    ],
)
def test_sort_options(sort_order, expected, enum_mappings):
    assert build_sort_options(sort_order, enum_mappings) == expected


def test_sort_falls_back_when_field_unmapped(checkbox_mappings):
    assert build_sort_options(SortOrder.DUE_DATE, checkbox_mappings) is None
    assert build_sort_options(SortOrder.PRIORITY, checkbox_mappings) is None


def test_literal_property_uses_schema_type(enum_mappings, schema):
    clause = FilterClause(type="priority", field="est", operator="is_empty")
    assert to_remote_filter(clause, enum_mappings, schema=schema) == {"property": "est", "number": {"is_empty": True}}
    assert to_remote_filter(clause, enum_mappings) == {"property": "est", "select": {"is_empty": True}}
