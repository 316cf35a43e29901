"""Описание запланированных операций."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class OperationKind(str, Enum):
    FETCH = "fetch"
    UPDATE = "update"
    CREATE = "create"
    DELETE = "delete"


class ResourceType(str, Enum):
    PAGE = "page"
    DATABASE = "database"


class OperationStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationStatus.COMPLETED, OperationStatus.FAILED)


@dataclass(frozen=True, slots=True)
class OperationDescriptor:
    """Снимок состояния одной операции."""

    id: str
    kind: OperationKind
    resource_type: ResourceType
    status: OperationStatus
    created_at: datetime
    resource_id: Optional[str] = None
    error: Optional[str] = None
    completed_at: Optional[datetime] = None

    def with_status(self, status: OperationStatus, **changes) -> "OperationDescriptor":
        return replace(self, status=status, **changes)


@dataclass(frozen=True, slots=True)
class OperationErrorEntry:
    """Запись в ленте последних ошибок."""

    message: str
    timestamp: datetime
    operation_id: Optional[str] = None


__all__ = [
    "OperationDescriptor",
    "OperationErrorEntry",
    "OperationKind",
    "OperationStatus",
    "ResourceType",
]
