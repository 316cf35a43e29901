"""Декодирование страниц Notion в задачи и кодирование изменений обратно."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from notion_task_sync.models.field_mapping import (
    CheckboxMapping,
    EnumToBooleanMapping,
    FieldMapping,
    FieldMappingSet,
)
from notion_task_sync.models.records import MappedFieldValue, TaskRecord
from notion_task_sync.models.schema import OptionDefinition, PropertyType

LOGGER = logging.getLogger(__name__)

UNTITLED = "Untitled"

_TEXT_TYPES = (PropertyType.TITLE, PropertyType.RICH_TEXT)
_OPTION_TYPES = (PropertyType.SELECT, PropertyType.STATUS)


@dataclass
class DecodeResult:
    records: List[TaskRecord] = field(default_factory=list)
    skipped: int = 0


def _find_property(page: Dict[str, Any], property_id: str) -> Optional[Dict[str, Any]]:
    for prop in (page.get("properties") or {}).values():
        if prop.get("id") == property_id:
            return prop
    return None


def _text_runs(content: str) -> List[Dict[str, Any]]:
    if not content:
        return []
    return [{"type": "text", "text": {"content": content}}]


def _runs_text(runs: Optional[List[Dict[str, Any]]]) -> str:
    return "".join(run.get("plain_text") or run.get("text", {}).get("content", "") for run in runs or [])


def _option_ref(value: Any) -> Optional[Dict[str, str]]:
    if value is None:
        return None
    if isinstance(value, OptionDefinition):
        return {"id": value.id}
    if isinstance(value, dict):
        return {key: value[key] for key in ("id", "name") if key in value}
    return {"name": str(value)}


def _date_value(value: Any) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if isinstance(value, dict):
        return value
    if isinstance(value, (date, datetime)):
        return {"start": value.isoformat()}
    return {"start": str(value)}


class TaskCodec:
    """Конвертация между свойствами Notion и полями задачи."""

    @staticmethod
    def decode_value(raw: Optional[Dict[str, Any]], mapping: FieldMapping) -> Any:
        """Переводит сырое свойство в значение доменного поля.

        Отсутствующее свойство не является ошибкой: для completed это False,
        для прочих полей ``None``.
        """
        if isinstance(mapping, CheckboxMapping):
            return bool(raw.get("checkbox")) if raw else False
        if isinstance(mapping, EnumToBooleanMapping):
            if not raw:
                return False
            option = raw.get(raw.get("type") or mapping.source_type.value)
            return bool(option) and option.get("id") == mapping.true_option.id
        if not raw:
            return None
        return raw.get(raw.get("type") or mapping.source_type.value)

    def decode_record(self, page: Dict[str, Any], mappings: FieldMappingSet) -> Optional[TaskRecord]:
        """Собирает TaskRecord или возвращает None, если нет title/completed."""
        page_id = str(page.get("id") or "")
        resolved: Dict[str, MappedFieldValue] = {}
        for name, mapping in mappings.items():
            raw = _find_property(page, mapping.external_property_id)
            if raw is None:
                continue
            resolved[name] = MappedFieldValue(value=self.decode_value(raw, mapping), mapping=mapping, raw=raw)

        if "title" not in resolved or "completed" not in resolved:
            LOGGER.warning("Страница %s пропущена: нет обязательных свойств title/completed", page_id)
            return None
        return TaskRecord(id=page_id, page=page, **resolved)

    def decode_batch(self, pages: Iterable[Dict[str, Any]], mappings: FieldMappingSet) -> DecodeResult:
        result = DecodeResult()
        for page in pages:
            record = self.decode_record(page, mappings)
            if record is None:
                result.skipped += 1
                continue
            result.records.append(record)
        if result.skipped:
            LOGGER.info("Пропущено страниц без обязательных полей: %s", result.skipped)
        return result

    # region encode
    @staticmethod
    def encode_value(mapping: FieldMapping, value: Any) -> Dict[str, Any]:
        """Формирует тело свойства для PATCH/POST страницы."""
        if isinstance(mapping, EnumToBooleanMapping):
            option = mapping.true_option if value else mapping.false_option
            return {mapping.source_type.value: {"id": option.id}}

        source = mapping.source_type
        if source in _TEXT_TYPES:
            # декодированное значение приходит списком text runs
            if isinstance(value, list):
                text = _runs_text(value)
            else:
                text = value if isinstance(value, str) else "" if value is None else str(value)
            return {source.value: _text_runs(text)}
        if source == PropertyType.CHECKBOX:
            return {"checkbox": bool(value)}
        if source in _OPTION_TYPES:
            return {source.value: _option_ref(value)}
        if source == PropertyType.MULTI_SELECT:
            values = [] if value is None else value if isinstance(value, (list, tuple)) else [value]
            return {"multi_select": [_option_ref(item) for item in values]}
        if source == PropertyType.DATE:
            return {"date": _date_value(value)}
        if source == PropertyType.NUMBER:
            return {"number": value}
        raise ValueError(f"Свойство «{mapping.property_name}» типа {source.value} нельзя записать")

    def encode_changes(self, mappings: FieldMappingSet, changes: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        """Кодирует изменения полей задачи в словарь properties по id свойств."""
        properties: Dict[str, Dict[str, Any]] = {}
        for field_name, value in changes.items():
            mapping = mappings.get(field_name)
            if mapping is None:
                raise ValueError(f"Поле {field_name} не сопоставлено со свойством Notion")
            properties[mapping.external_property_id] = self.encode_value(mapping, value)
        return properties

    # endregion


def plain_title(record: TaskRecord) -> str:
    return _runs_text(record.title.value) or UNTITLED


def is_completed(record: TaskRecord) -> bool:
    return bool(record.completed.value)


__all__ = ["DecodeResult", "TaskCodec", "UNTITLED", "is_completed", "plain_title"]
