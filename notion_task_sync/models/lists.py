"""Списки задач и их фильтры."""
from __future__ import annotations

import re
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from notion_task_sync.models.field_mapping import FIELD_PLACEHOLDERS

_PLACEHOLDER_RE = re.compile(r"^__\w+__$")


class FilterType(str, Enum):
    CATEGORY = "category"
    STATUS = "status"
    DATE = "date"
    PRIORITY = "priority"
    CUSTOM = "custom"


class FilterOperator(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    BEFORE = "before"
    AFTER = "after"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class ListKind(str, Enum):
    SYSTEM = "system"
    CUSTOM = "custom"


class SortOrder(str, Enum):
    """Порядок сортировки, выбранный в интерфейсе."""

    MANUAL = "manual"
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    ALPHABETICAL = "alphabetical"


FilterValue = Union[bool, int, float, str, List[str]]


class FilterClause(BaseModel):
    """Одно условие фильтра списка."""

    type: FilterType
    field: str = Field(..., description="Плейсхолдер вида __dueDate__ или id свойства Notion")
    operator: FilterOperator
    value: Optional[FilterValue] = None

    @field_validator("field")
    @classmethod
    def _known_placeholder(cls, value: str) -> str:
        if not value:
            raise ValueError("Поле фильтра не может быть пустым")
        if _PLACEHOLDER_RE.match(value) and value not in FIELD_PLACEHOLDERS:
            raise ValueError(f"Неизвестный плейсхолдер поля: {value}")
        return value


class ListDefinition(BaseModel):
    """Именованное представление над набором задач."""

    id: str
    name: str
    icon: str = ""
    kind: ListKind = ListKind.CUSTOM
    filters: List[FilterClause] = Field(default_factory=list)
    sort_order: Optional[int] = None


DEFAULT_SYSTEM_LISTS: tuple[ListDefinition, ...] = (
    ListDefinition(
        id="my-day",
        name="My Day",
        icon="☀️",
        kind=ListKind.SYSTEM,
        filters=[FilterClause(type=FilterType.DATE, field="__doDate__", operator=FilterOperator.EQUALS, value="today")],
    ),
    ListDefinition(
        id="important",
        name="Important",
        icon="⭐",
        kind=ListKind.SYSTEM,
        filters=[FilterClause(type=FilterType.PRIORITY, field="__priority__", operator=FilterOperator.IS_NOT_EMPTY)],
    ),
    ListDefinition(
        id="planned",
        name="Planned",
        icon="📅",
        kind=ListKind.SYSTEM,
        filters=[FilterClause(type=FilterType.DATE, field="__dueDate__", operator=FilterOperator.IS_NOT_EMPTY)],
    ),
    ListDefinition(id="all", name="All Tasks", icon="✅", kind=ListKind.SYSTEM),
)


def system_lists() -> List[ListDefinition]:
    return [item.model_copy(deep=True) for item in DEFAULT_SYSTEM_LISTS]


def create_category_list(option_id: str, option_name: str, sort_order: int) -> ListDefinition:
    """Пользовательский список для одного варианта категории."""
    return ListDefinition(
        id=f"category-{option_id}",
        name=option_name,
        icon="📁",
        kind=ListKind.CUSTOM,
        filters=[
            FilterClause(
                type=FilterType.CATEGORY,
                field="__category__",
                operator=FilterOperator.EQUALS,
                value=option_id,
            )
        ],
        sort_order=sort_order,
    )


__all__ = [
    "DEFAULT_SYSTEM_LISTS",
    "FilterClause",
    "FilterOperator",
    "FilterType",
    "FilterValue",
    "ListDefinition",
    "ListKind",
    "SortOrder",
    "create_category_list",
    "system_lists",
]
