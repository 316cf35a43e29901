"""Доменные модели синхронизации."""

from .field_mapping import (
    CheckboxMapping,
    DirectMapping,
    EnumToBooleanMapping,
    FieldMapping,
    FieldMappingSet,
    MappingType,
    UnknownMappingTypeError,
)
from .lists import FilterClause, FilterOperator, FilterType, ListDefinition, ListKind, SortOrder
from .operations import OperationDescriptor, OperationErrorEntry, OperationKind, OperationStatus, ResourceType
from .records import MappedFieldValue, TaskRecord
from .schema import ExternalSchema, OptionDefinition, PropertyDescriptor, PropertyType

__all__ = [
    "CheckboxMapping",
    "DirectMapping",
    "EnumToBooleanMapping",
    "ExternalSchema",
    "FieldMapping",
    "FieldMappingSet",
    "FilterClause",
    "FilterOperator",
    "FilterType",
    "ListDefinition",
    "ListKind",
    "MappedFieldValue",
    "MappingType",
    "OperationDescriptor",
    "OperationErrorEntry",
    "OperationKind",
    "OperationStatus",
    "OptionDefinition",
    "PropertyDescriptor",
    "PropertyType",
    "ResourceType",
    "SortOrder",
    "TaskRecord",
    "UnknownMappingTypeError",
]
