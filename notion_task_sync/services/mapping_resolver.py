"""Построение и проверка соответствий полей по схеме Notion."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional

from notion_task_sync.models.field_mapping import (
    CheckboxMapping,
    CompletedMapping,
    DirectMapping,
    EnumToBooleanMapping,
    FieldMappingSet,
)
from notion_task_sync.models.lists import ListDefinition, create_category_list, system_lists
from notion_task_sync.models.schema import (
    ENUM_TYPES,
    ExternalSchema,
    OptionDefinition,
    PropertyDescriptor,
    PropertyType,
)

LOGGER = logging.getLogger(__name__)

ALLOWED_TYPES: Dict[str, FrozenSet[PropertyType]] = {
    "title": frozenset({PropertyType.TITLE}),
    "completed": frozenset({PropertyType.CHECKBOX, PropertyType.STATUS, PropertyType.SELECT}),
    "category": frozenset({PropertyType.SELECT, PropertyType.MULTI_SELECT, PropertyType.RICH_TEXT}),
    "due_date": frozenset({PropertyType.DATE}),
    "priority": frozenset({PropertyType.SELECT, PropertyType.NUMBER, PropertyType.RICH_TEXT}),
    "do_date": frozenset({PropertyType.DATE}),
}

OPTIONAL_FIELDS = ("category", "due_date", "priority", "do_date")


class MappingValidationError(ValueError):
    """Набор соответствий неполон или противоречив."""

    def __init__(self, problems: List[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


@dataclass(slots=True)
class MappingSelections:
    """Выбор пользователя: id свойства Notion для каждого поля задачи."""

    title: Optional[str] = None
    completed: Optional[str] = None
    category: Optional[str] = None
    due_date: Optional[str] = None
    priority: Optional[str] = None
    do_date: Optional[str] = None
    completed_true_option: Optional[str] = None
    completed_false_option: Optional[str] = None


class MappingResolver:
    """Запросы к схеме и сборка FieldMappingSet."""

    def __init__(self, schema: ExternalSchema) -> None:
        self._schema = schema

    @property
    def schema(self) -> ExternalSchema:
        return self._schema

    # region queries
    def candidate_properties(self, field_name: str) -> List[PropertyDescriptor]:
        allowed = ALLOWED_TYPES.get(field_name)
        if not allowed:
            return []
        return self._schema.by_type(allowed)

    @staticmethod
    def enum_options(prop: Optional[PropertyDescriptor]) -> List[OptionDefinition]:
        if prop is None or prop.type not in ENUM_TYPES:
            return []
        return list(prop.options)

    # endregion

    # region validation
    def _check_property(self, field_name: str, property_id: str, problems: List[str]) -> Optional[PropertyDescriptor]:
        prop = self._schema.get(property_id)
        if prop is None:
            problems.append(f"{field_name}: свойство {property_id} отсутствует в схеме")
            return None
        if prop.type not in ALLOWED_TYPES[field_name]:
            problems.append(f"{field_name}: тип {prop.type.value} свойства «{prop.name}» не подходит")
            return None
        return prop

    def validate(self, selections: MappingSelections) -> List[str]:
        """Возвращает список проблем; пустой список означает валидный выбор."""
        problems: List[str] = []
        if not selections.title:
            problems.append("title: свойство не выбрано")
        else:
            self._check_property("title", selections.title, problems)

        if not selections.completed:
            problems.append("completed: свойство не выбрано")
        else:
            prop = self._check_property("completed", selections.completed, problems)
            if prop is not None and prop.type != PropertyType.CHECKBOX:
                self._check_enum_options(prop, selections, problems)

        for field_name in OPTIONAL_FIELDS:
            property_id = getattr(selections, field_name)
            if property_id:
                self._check_property(field_name, property_id, problems)
        return problems

    @staticmethod
    def _check_enum_options(prop: PropertyDescriptor, selections: MappingSelections, problems: List[str]) -> None:
        true_id = selections.completed_true_option
        false_id = selections.completed_false_option
        if not true_id or not false_id:
            problems.append("completed: для status/select нужно выбрать варианты true и false")
            return
        if true_id == false_id:
            problems.append("completed: варианты true и false должны различаться")
            return
        known = {option.id for option in prop.options}
        for option_id in (true_id, false_id):
            if option_id not in known:
                problems.append(f"completed: вариант {option_id} не найден в свойстве «{prop.name}»")

    # endregion

    def build(self, selections: MappingSelections) -> FieldMappingSet:
        """Собирает FieldMappingSet или бросает MappingValidationError."""
        problems = self.validate(selections)
        if problems:
            LOGGER.warning("Соответствия для %s отклонены: %s", self._schema.id, "; ".join(problems))
            raise MappingValidationError(problems)

        title_prop = self._schema.properties[selections.title]
        optional: Dict[str, DirectMapping] = {}
        for field_name in OPTIONAL_FIELDS:
            property_id = getattr(selections, field_name)
            if property_id:
                optional[field_name] = self._direct(self._schema.properties[property_id])

        return FieldMappingSet(
            title=self._direct(title_prop),
            completed=self._completed(selections),
            **optional,
        )

    @staticmethod
    def _direct(prop: PropertyDescriptor) -> DirectMapping:
        return DirectMapping(external_property_id=prop.id, source_type=prop.type, property_name=prop.name)

    def _completed(self, selections: MappingSelections) -> CompletedMapping:
        prop = self._schema.properties[selections.completed]
        if prop.type == PropertyType.CHECKBOX:
            return CheckboxMapping(external_property_id=prop.id, property_name=prop.name)
        options = {option.id: option for option in prop.options}
        return EnumToBooleanMapping(
            external_property_id=prop.id,
            source_type=prop.type,
            property_name=prop.name,
            true_option=options[selections.completed_true_option],
            false_option=options[selections.completed_false_option],
        )

    def suggested_lists(self, selections: MappingSelections) -> List[ListDefinition]:
        """Системные списки и по одному списку на каждый вариант категории."""
        lists = system_lists()
        offset = len(lists)
        category = self._schema.get(selections.category) if selections.category else None
        for index, option in enumerate(self.enum_options(category)):
            lists.append(create_category_list(option.id, option.name, offset + index))
        return lists


__all__ = ["ALLOWED_TYPES", "MappingResolver", "MappingSelections", "MappingValidationError"]
