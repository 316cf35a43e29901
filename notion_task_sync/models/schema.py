"""Описание внешней схемы источника данных Notion."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class PropertyType(str, Enum):
    """Поддерживаемые типы свойств Notion."""

    TITLE = "title"
    RICH_TEXT = "rich_text"
    CHECKBOX = "checkbox"
    STATUS = "status"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    DATE = "date"
    NUMBER = "number"
    UNSUPPORTED = "unsupported"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "PropertyType":
        try:
            return cls(raw)
        except ValueError:
            return cls.UNSUPPORTED


ENUM_TYPES = frozenset({PropertyType.STATUS, PropertyType.SELECT, PropertyType.MULTI_SELECT})


@dataclass(frozen=True, slots=True)
class OptionDefinition:
    """Вариант значения select/status свойства."""

    id: str
    name: str
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        payload = {"id": self.id, "name": self.name}
        if self.color:
            payload["color"] = self.color
        return payload

    @classmethod
    def from_dict(cls, payload: Dict) -> "OptionDefinition":
        return cls(id=str(payload["id"]), name=str(payload.get("name") or ""), color=payload.get("color"))


@dataclass(frozen=True, slots=True)
class PropertyDescriptor:
    """Определение одного свойства во внешней схеме."""

    id: str
    name: str
    type: PropertyType
    options: tuple[OptionDefinition, ...] = ()

    @property
    def is_enum(self) -> bool:
        return self.type in ENUM_TYPES


@dataclass(slots=True)
class ExternalSchema:
    """Схема источника данных: набор свойств, индексированный по id."""

    id: str
    title: str
    properties: Dict[str, PropertyDescriptor] = field(default_factory=dict)

    def get(self, property_id: str) -> Optional[PropertyDescriptor]:
        return self.properties.get(property_id)

    def by_type(self, types: frozenset[PropertyType] | set[PropertyType]) -> List[PropertyDescriptor]:
        return [prop for prop in self.properties.values() if prop.type in types]

    @classmethod
    def from_response(cls, payload: Dict) -> "ExternalSchema":
        """Строит схему из ответа ``GET /v1/data_sources/{id}``."""
        title_runs = payload.get("title") or []
        title = "".join(run.get("plain_text", "") for run in title_runs)
        properties: Dict[str, PropertyDescriptor] = {}
        for name, raw in (payload.get("properties") or {}).items():
            prop_type = PropertyType.parse(raw.get("type"))
            options: tuple[OptionDefinition, ...] = ()
            if prop_type in ENUM_TYPES:
                body = raw.get(prop_type.value) or {}
                options = tuple(OptionDefinition.from_dict(item) for item in body.get("options", []))
            descriptor = PropertyDescriptor(
                id=str(raw.get("id") or name),
                name=str(raw.get("name") or name),
                type=prop_type,
                options=options,
            )
            properties[descriptor.id] = descriptor
        return cls(id=str(payload.get("id") or ""), title=title, properties=properties)


__all__ = ["ENUM_TYPES", "ExternalSchema", "OptionDefinition", "PropertyDescriptor", "PropertyType"]
