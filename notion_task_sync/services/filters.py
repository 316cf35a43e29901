"""Трансляция фильтров списков в запросы Notion и их локальное вычисление.

Оба пути обязаны давать одинаковый результат: если условие удалось
перенести в запрос, локальная проверка той же страницы вернёт то же самое.
Всё, что нельзя перенести, ``to_remote_filter`` отдаёт как ``None``, и такое
условие проверяется локально.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from dateutil import parser

from notion_task_sync.models.field_mapping import FieldMapping, FieldMappingSet
from notion_task_sync.models.lists import FilterClause, FilterOperator, FilterType, ListDefinition, SortOrder
from notion_task_sync.models.records import TaskRecord
from notion_task_sync.models.schema import ExternalSchema, PropertyType

TODAY = "today"

_PRESENCE = frozenset({FilterOperator.EQUALS, FilterOperator.IS_EMPTY, FilterOperator.IS_NOT_EMPTY})

PUSHDOWN_OPERATORS: Dict[FilterType, FrozenSet[FilterOperator]] = {
    FilterType.CATEGORY: _PRESENCE,
    FilterType.STATUS: _PRESENCE,
    FilterType.PRIORITY: _PRESENCE,
    FilterType.DATE: _PRESENCE | {FilterOperator.BEFORE, FilterOperator.AFTER},
}

PUSHDOWN_SOURCE_TYPES: Dict[FilterType, FrozenSet[PropertyType]] = {
    FilterType.CATEGORY: frozenset({PropertyType.SELECT, PropertyType.MULTI_SELECT}),
    FilterType.STATUS: frozenset({PropertyType.STATUS, PropertyType.SELECT}),
    FilterType.PRIORITY: frozenset({PropertyType.SELECT, PropertyType.MULTI_SELECT, PropertyType.NUMBER}),
    FilterType.DATE: frozenset({PropertyType.DATE}),
}

# тип свойства для литеральных id, которых нет в соответствиях
DEFAULT_SOURCE_TYPE: Dict[FilterType, PropertyType] = {
    FilterType.CATEGORY: PropertyType.SELECT,
    FilterType.STATUS: PropertyType.STATUS,
    FilterType.PRIORITY: PropertyType.SELECT,
    FilterType.DATE: PropertyType.DATE,
}


@dataclass
class QueryPlan:
    """Разбиение условий списка на серверную и локальную части."""

    remote_filter: Optional[Dict[str, Any]] = None
    local_clauses: List[FilterClause] = field(default_factory=list)


# region helpers
def _parse_date(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return parser.isoparse(str(value))
    except (ValueError, OverflowError):
        return None


def _is_date_only(value: Any) -> bool:
    if isinstance(value, datetime):
        return False
    if isinstance(value, date):
        return True
    return "T" not in str(value)


def _date_literal(value: Any, today: date) -> Optional[str]:
    if value == TODAY:
        return today.isoformat()
    parsed = _parse_date(value)
    if parsed is None:
        return None
    return parsed.date().isoformat() if _is_date_only(value) else parsed.isoformat()


def _source_type(
    clause: FilterClause,
    property_id: str,
    mappings: FieldMappingSet,
    schema: Optional[ExternalSchema],
) -> PropertyType:
    mapping: Optional[FieldMapping] = mappings.mapping_for(clause.field)
    if mapping is not None:
        return mapping.source_type
    prop = schema.get(property_id) if schema else None
    if prop is not None:
        return prop.type
    return DEFAULT_SOURCE_TYPE.get(clause.type, PropertyType.UNSUPPORTED)


def _option_name(schema: Optional[ExternalSchema], property_id: str, value: Any) -> str:
    text = str(value)
    prop = schema.get(property_id) if schema else None
    if prop is not None:
        for option in prop.options:
            if option.id == text:
                return option.name
    return text


def _plain_text(runs: Optional[List[Dict[str, Any]]]) -> str:
    return "".join(run.get("plain_text") or run.get("text", {}).get("content", "") for run in runs or [])


# endregion


def to_remote_filter(
    clause: FilterClause,
    mappings: FieldMappingSet,
    *,
    schema: Optional[ExternalSchema] = None,
    today: Optional[date] = None,
) -> Optional[Dict[str, Any]]:
    """Переводит условие в фрагмент фильтра Notion или возвращает None."""
    if clause.operator not in PUSHDOWN_OPERATORS.get(clause.type, frozenset()):
        return None
    property_id = mappings.resolve_placeholder(clause.field)
    if property_id is None:
        return None
    source = _source_type(clause, property_id, mappings, schema)
    if source not in PUSHDOWN_SOURCE_TYPES[clause.type]:
        return None

    key = source.value
    if clause.operator == FilterOperator.IS_EMPTY:
        return {"property": property_id, key: {"is_empty": True}}
    if clause.operator == FilterOperator.IS_NOT_EMPTY:
        return {"property": property_id, key: {"is_not_empty": True}}
    if clause.value is None or isinstance(clause.value, (list, bool)):
        return None

    if source == PropertyType.DATE:
        literal = _date_literal(clause.value, today or date.today())
        if literal is None:
            return None
        return {"property": property_id, "date": {clause.operator.value: literal}}
    if source == PropertyType.NUMBER:
        try:
            return {"property": property_id, "number": {"equals": float(clause.value)}}
        except ValueError:
            return None
    name = _option_name(schema, property_id, clause.value)
    if source == PropertyType.MULTI_SELECT:
        return {"property": property_id, "multi_select": {"contains": name}}
    return {"property": property_id, key: {"equals": name}}


def combine_filters(fragments: Iterable[Optional[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    valid = [item for item in fragments if item is not None]
    if not valid:
        return None
    if len(valid) == 1:
        return valid[0]
    return {"and": valid}


# region local evaluation
def is_property_empty(prop: Optional[Dict[str, Any]]) -> bool:
    if not prop:
        return True
    prop_type = prop.get("type")
    if prop_type == "checkbox":
        return False
    if prop_type in ("title", "rich_text", "multi_select"):
        return not prop.get(prop_type)
    if prop_type in ("select", "status", "date", "number"):
        return prop.get(prop_type) is None
    return True


def _matches_equals(prop: Optional[Dict[str, Any]], value: Any, today: date) -> bool:
    if not prop:
        return False
    prop_type = prop.get("type")
    body = prop.get(prop_type)
    if prop_type == "date":
        start = _parse_date((body or {}).get("start"))
        if start is None:
            return False
        target = today if value == TODAY else _parse_date(value)
        if target is None:
            return False
        if isinstance(target, datetime) and not _is_date_only(value):
            return start == target
        return start.date() == (target.date() if isinstance(target, datetime) else target)
    if prop_type in ("select", "status"):
        return bool(body) and (body.get("id") == value or body.get("name") == value)
    if prop_type == "multi_select":
        return any(item.get("id") == value or item.get("name") == value for item in body or [])
    if prop_type == "checkbox":
        return body == value
    if prop_type == "number":
        try:
            return body is not None and float(body) == float(value)
        except (TypeError, ValueError):
            return False
    if prop_type in ("title", "rich_text"):
        return _plain_text(body) == str(value)
    return False


def _matches_contains(prop: Optional[Dict[str, Any]], value: Any) -> bool:
    if not prop:
        return False
    prop_type = prop.get("type")
    body = prop.get(prop_type)
    if prop_type in ("title", "rich_text"):
        needle = str(value).lower()
        return any(needle in (run.get("plain_text") or "").lower() for run in body or [])
    if prop_type == "multi_select":
        wanted = value if isinstance(value, list) else [value]
        return any(item.get("id") in wanted or item.get("name") in wanted for item in body or [])
    return False


def _matches_date_comparison(prop: Optional[Dict[str, Any]], operator: FilterOperator, value: Any, today: date) -> bool:
    if not prop or prop.get("type") != "date":
        return False
    start_raw = (prop.get("date") or {}).get("start")
    start = _parse_date(start_raw)
    target = _parse_date(today if value == TODAY else value)
    if start is None or target is None:
        return False
    if _is_date_only(value) or _is_date_only(start_raw):
        left, right = start.date(), target.date()
        return left < right if operator == FilterOperator.BEFORE else left > right
    if (start.tzinfo is None) != (target.tzinfo is None):
        start, target = start.replace(tzinfo=None), target.replace(tzinfo=None)
    return start < target if operator == FilterOperator.BEFORE else start > target


def matches(
    clause: FilterClause,
    record: TaskRecord,
    mappings: FieldMappingSet,
    *,
    today: Optional[date] = None,
) -> bool:
    """Локальная проверка условия для одной задачи."""
    property_id = mappings.resolve_placeholder(clause.field)
    if property_id is None:
        # несопоставленное поле не скрывает задачу
        return True
    prop = record.property_by_id(property_id)
    today = today or date.today()

    if clause.operator == FilterOperator.IS_EMPTY:
        return is_property_empty(prop)
    if clause.operator == FilterOperator.IS_NOT_EMPTY:
        return not is_property_empty(prop)
    if clause.operator == FilterOperator.EQUALS:
        return _matches_equals(prop, clause.value, today)
    if clause.operator == FilterOperator.CONTAINS:
        return _matches_contains(prop, clause.value)
    if clause.operator in (FilterOperator.BEFORE, FilterOperator.AFTER):
        return _matches_date_comparison(prop, clause.operator, clause.value, today)
    return True


def filter_for_list(
    records: List[TaskRecord],
    list_definition: ListDefinition,
    mappings: FieldMappingSet,
    *,
    today: Optional[date] = None,
) -> List[TaskRecord]:
    return apply_clauses(records, list_definition.filters, mappings, today=today)


def apply_clauses(
    records: List[TaskRecord],
    clauses: List[FilterClause],
    mappings: FieldMappingSet,
    *,
    today: Optional[date] = None,
) -> List[TaskRecord]:
    if not clauses:
        return records
    return [record for record in records if all(matches(c, record, mappings, today=today) for c in clauses)]


# endregion


def plan_query(
    list_definition: ListDefinition,
    mappings: FieldMappingSet,
    *,
    schema: Optional[ExternalSchema] = None,
    today: Optional[date] = None,
) -> QueryPlan:
    """Решает для каждого условия, уйдёт ли оно в запрос или останется локальным."""
    plan = QueryPlan()
    fragments: List[Dict[str, Any]] = []
    for clause in list_definition.filters:
        fragment = to_remote_filter(clause, mappings, schema=schema, today=today)
        if fragment is None:
            plan.local_clauses.append(clause)
        else:
            fragments.append(fragment)
    plan.remote_filter = combine_filters(fragments)
    return plan


def build_sort_options(sort_order: SortOrder, mappings: FieldMappingSet) -> Optional[List[Dict[str, str]]]:
    """Ключ сортировки запроса или None для ручного порядка."""
    if sort_order == SortOrder.DUE_DATE and mappings.due_date:
        return [{"property": mappings.due_date.external_property_id, "direction": "ascending"}]
    if sort_order == SortOrder.PRIORITY and mappings.priority:
        return [{"property": mappings.priority.external_property_id, "direction": "descending"}]
    if sort_order == SortOrder.ALPHABETICAL:
        return [{"property": mappings.title.external_property_id, "direction": "ascending"}]
    return None


__all__ = [
    "PUSHDOWN_OPERATORS",
    "QueryPlan",
    "apply_clauses",
    "build_sort_options",
    "combine_filters",
    "filter_for_list",
    "is_property_empty",
    "matches",
    "plan_query",
    "to_remote_filter",
]
