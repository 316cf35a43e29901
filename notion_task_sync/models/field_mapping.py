"""Соответствия полей задачи свойствам Notion."""
from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Callable, Dict, Iterator, Optional, Tuple, Union

from notion_task_sync.models.schema import OptionDefinition, PropertyType


class MappingType(str, Enum):
    """Тег варианта соответствия."""

    DIRECT = "direct"
    CHECKBOX = "checkbox"
    ENUM_TO_BOOLEAN = "enum_to_boolean"


class UnknownMappingTypeError(ValueError):
    """Неизвестный тег при десериализации соответствия."""


@dataclass(frozen=True, slots=True)
class DirectMapping:
    """Свойство используется как есть."""

    external_property_id: str
    source_type: PropertyType
    property_name: str

    mapping_type = MappingType.DIRECT


@dataclass(frozen=True, slots=True)
class CheckboxMapping:
    """Checkbox напрямую отображается в булево значение."""

    external_property_id: str
    property_name: str
    source_type: PropertyType = PropertyType.CHECKBOX

    mapping_type = MappingType.CHECKBOX


@dataclass(frozen=True, slots=True)
class EnumToBooleanMapping:
    """Status/select, у которого один вариант означает True, другой False."""

    external_property_id: str
    source_type: PropertyType
    property_name: str
    true_option: OptionDefinition
    false_option: OptionDefinition

    mapping_type = MappingType.ENUM_TO_BOOLEAN

    def __post_init__(self) -> None:
        if self.true_option.id == self.false_option.id:
            raise ValueError("true_option и false_option должны различаться")


FieldMapping = Union[DirectMapping, CheckboxMapping, EnumToBooleanMapping]
CompletedMapping = Union[CheckboxMapping, EnumToBooleanMapping]

TASK_FIELDS: Tuple[str, ...] = ("title", "completed", "category", "due_date", "priority", "do_date")

# плейсхолдеры в фильтрах списков -> поле FieldMappingSet
FIELD_PLACEHOLDERS: Dict[str, str] = {
    "__title__": "title",
    "__completed__": "completed",
    "__category__": "category",
    "__dueDate__": "due_date",
    "__priority__": "priority",
    "__doDate__": "do_date",
}


@dataclass(frozen=True, slots=True)
class FieldMappingSet:
    """Полный набор соответствий для одного источника данных."""

    title: DirectMapping
    completed: CompletedMapping
    category: Optional[DirectMapping] = None
    due_date: Optional[DirectMapping] = None
    priority: Optional[DirectMapping] = None
    do_date: Optional[DirectMapping] = None

    def get(self, field_name: str) -> Optional[FieldMapping]:
        if field_name not in TASK_FIELDS:
            return None
        return getattr(self, field_name)

    def items(self) -> Iterator[Tuple[str, FieldMapping]]:
        for item in fields(self):
            mapping = getattr(self, item.name)
            if mapping is not None:
                yield item.name, mapping

    def resolve_placeholder(self, field: str) -> Optional[str]:
        """Возвращает id свойства для плейсхолдера или литерального id.

        ``None`` означает, что плейсхолдер не настроен.
        """
        if field in FIELD_PLACEHOLDERS:
            mapping = self.get(FIELD_PLACEHOLDERS[field])
            return mapping.external_property_id if mapping else None
        return field

    def mapping_for(self, field: str) -> Optional[FieldMapping]:
        if field in FIELD_PLACEHOLDERS:
            return self.get(FIELD_PLACEHOLDERS[field])
        for _, mapping in self.items():
            if mapping.external_property_id == field:
                return mapping
        return None


# region serialization
def _base_dict(mapping: FieldMapping) -> Dict:
    return {
        "mapping_type": mapping.mapping_type.value,
        "external_property_id": mapping.external_property_id,
        "source_type": mapping.source_type.value,
        "property_name": mapping.property_name,
    }


def _encode_enum(mapping: EnumToBooleanMapping) -> Dict:
    payload = _base_dict(mapping)
    payload["true_option"] = mapping.true_option.to_dict()
    payload["false_option"] = mapping.false_option.to_dict()
    return payload


def _decode_direct(payload: Dict) -> DirectMapping:
    return DirectMapping(
        external_property_id=str(payload["external_property_id"]),
        source_type=PropertyType(payload["source_type"]),
        property_name=str(payload.get("property_name") or ""),
    )


def _decode_checkbox(payload: Dict) -> CheckboxMapping:
    return CheckboxMapping(
        external_property_id=str(payload["external_property_id"]),
        property_name=str(payload.get("property_name") or ""),
    )


def _decode_enum(payload: Dict) -> EnumToBooleanMapping:
    return EnumToBooleanMapping(
        external_property_id=str(payload["external_property_id"]),
        source_type=PropertyType(payload["source_type"]),
        property_name=str(payload.get("property_name") or ""),
        true_option=OptionDefinition.from_dict(payload["true_option"]),
        false_option=OptionDefinition.from_dict(payload["false_option"]),
    )


_ENCODERS: Dict[MappingType, Callable[..., Dict]] = {
    MappingType.DIRECT: _base_dict,
    MappingType.CHECKBOX: _base_dict,
    MappingType.ENUM_TO_BOOLEAN: _encode_enum,
}

_DECODERS: Dict[MappingType, Callable[[Dict], FieldMapping]] = {
    MappingType.DIRECT: _decode_direct,
    MappingType.CHECKBOX: _decode_checkbox,
    MappingType.ENUM_TO_BOOLEAN: _decode_enum,
}


def mapping_to_dict(mapping: FieldMapping) -> Dict:
    return _ENCODERS[mapping.mapping_type](mapping)


def mapping_from_dict(payload: Dict) -> FieldMapping:
    """Восстанавливает соответствие по тегу ``mapping_type``."""
    tag = payload.get("mapping_type")
    try:
        mapping_type = MappingType(tag)
    except ValueError as exc:
        raise UnknownMappingTypeError(f"Неизвестный тип соответствия: {tag!r}") from exc
    return _DECODERS[mapping_type](payload)


def mapping_set_to_dict(mappings: FieldMappingSet) -> Dict[str, Dict]:
    return {name: mapping_to_dict(mapping) for name, mapping in mappings.items()}


def mapping_set_from_dict(payload: Dict[str, Dict]) -> FieldMappingSet:
    unknown = set(payload) - set(TASK_FIELDS)
    if unknown:
        raise ValueError(f"Неизвестные поля в соответствиях: {sorted(unknown)}")
    decoded = {name: mapping_from_dict(item) for name, item in payload.items()}
    title = decoded.get("title")
    completed = decoded.get("completed")
    if not isinstance(title, DirectMapping):
        raise ValueError("Соответствие title должно быть direct")
    if not isinstance(completed, (CheckboxMapping, EnumToBooleanMapping)):
        raise ValueError("Соответствие completed должно быть checkbox или enum_to_boolean")
    for name in ("category", "due_date", "priority", "do_date"):
        if name in decoded and not isinstance(decoded[name], DirectMapping):
            raise ValueError(f"Соответствие {name} должно быть direct")
    return FieldMappingSet(**decoded)


# endregion


__all__ = [
    "CheckboxMapping",
    "CompletedMapping",
    "DirectMapping",
    "EnumToBooleanMapping",
    "FIELD_PLACEHOLDERS",
    "FieldMapping",
    "FieldMappingSet",
    "MappingType",
    "TASK_FIELDS",
    "UnknownMappingTypeError",
    "mapping_from_dict",
    "mapping_set_from_dict",
    "mapping_set_to_dict",
    "mapping_to_dict",
]
