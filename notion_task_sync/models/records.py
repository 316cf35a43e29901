"""Доменное представление задачи."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from notion_task_sync.models.field_mapping import CompletedMapping, DirectMapping, FieldMapping


@dataclass(slots=True)
class MappedFieldValue:
    """Значение поля вместе с соответствием и исходным свойством."""

    value: Any
    mapping: FieldMapping
    raw: Dict[str, Any]


@dataclass(slots=True)
class TaskRecord:
    """Задача, собранная из страницы Notion."""

    id: str
    page: Dict[str, Any]
    title: MappedFieldValue
    completed: MappedFieldValue
    category: Optional[MappedFieldValue] = None
    due_date: Optional[MappedFieldValue] = None
    priority: Optional[MappedFieldValue] = None
    do_date: Optional[MappedFieldValue] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def property_by_id(self, property_id: str) -> Optional[Dict[str, Any]]:
        """Ищет сырое свойство страницы по id (ключи в ответе Notion - имена)."""
        for prop in (self.page.get("properties") or {}).values():
            if prop.get("id") == property_id:
                return prop
        return None

    @property
    def title_mapping(self) -> DirectMapping:
        return self.title.mapping  # type: ignore[return-value]

    @property
    def completed_mapping(self) -> CompletedMapping:
        return self.completed.mapping  # type: ignore[return-value]


__all__ = ["MappedFieldValue", "TaskRecord"]
