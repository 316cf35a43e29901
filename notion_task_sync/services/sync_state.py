"""Состояние операций синхронизации для отображения прогресса."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from notion_task_sync.models.operations import (
    OperationDescriptor,
    OperationErrorEntry,
    OperationKind,
    OperationStatus,
    ResourceType,
)

LOGGER = logging.getLogger(__name__)


class OperationStateError(RuntimeError):
    """Недопустимый переход статуса операции."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncState:
    """Реестр операций с синхронными мутаторами и снимком по запросу.

    Завершённые операции остаются в снимке ``completed_retention_s`` секунд,
    упавшие ``failed_retention_s`` секунд, после чего вытесняются при
    следующем обращении.
    """

    def __init__(
        self,
        *,
        completed_retention_s: float = 1.0,
        failed_retention_s: float = 5.0,
        max_errors: int = 10,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._completed_retention = completed_retention_s
        self._failed_retention = failed_retention_s
        self._max_errors = max_errors
        self._clock = clock
        self._operations: Dict[str, OperationDescriptor] = {}
        self._errors: List[OperationErrorEntry] = []
        self._last_synced_at: Optional[datetime] = None

    # region mutators
    def start_operation(
        self,
        kind: OperationKind,
        resource_type: ResourceType,
        resource_id: Optional[str] = None,
    ) -> str:
        self._evict_expired()
        operation_id = str(uuid.uuid4())
        self._operations[operation_id] = OperationDescriptor(
            id=operation_id,
            kind=OperationKind(kind),
            resource_type=ResourceType(resource_type),
            resource_id=resource_id,
            status=OperationStatus.PENDING,
            created_at=self._clock(),
        )
        return operation_id

    def mark_in_progress(self, operation_id: str) -> None:
        self._transition(operation_id, OperationStatus.PENDING, OperationStatus.IN_PROGRESS)

    def complete_operation(self, operation_id: str) -> None:
        now = self._clock()
        self._transition(operation_id, OperationStatus.IN_PROGRESS, OperationStatus.COMPLETED, completed_at=now)
        self._last_synced_at = now

    def fail_operation(self, operation_id: str, error: str) -> None:
        now = self._clock()
        self._transition(
            operation_id,
            OperationStatus.IN_PROGRESS,
            OperationStatus.FAILED,
            error=error,
            completed_at=now,
        )
        self._errors.append(OperationErrorEntry(message=error, timestamp=now, operation_id=operation_id))
        del self._errors[: -self._max_errors]

    def clear_errors(self) -> None:
        self._errors.clear()

    def _transition(
        self,
        operation_id: str,
        expected: OperationStatus,
        target: OperationStatus,
        **changes,
    ) -> None:
        current = self._operations.get(operation_id)
        if current is None:
            raise OperationStateError(f"Операция {operation_id} не найдена")
        if current.status != expected:
            raise OperationStateError(
                f"Операция {operation_id}: переход {current.status.value} → {target.value} недопустим"
            )
        self._operations[operation_id] = current.with_status(target, **changes)
        LOGGER.debug("Операция %s: %s → %s", operation_id, expected.value, target.value)

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = []
        for operation_id, descriptor in self._operations.items():
            if descriptor.completed_at is None:
                continue
            retention = (
                self._failed_retention if descriptor.status == OperationStatus.FAILED else self._completed_retention
            )
            if (now - descriptor.completed_at).total_seconds() >= retention:
                expired.append(operation_id)
        for operation_id in expired:
            del self._operations[operation_id]

    # endregion

    # region accessors
    def snapshot(self) -> List[OperationDescriptor]:
        """Текущие операции в порядке создания."""
        self._evict_expired()
        return list(self._operations.values())

    def get(self, operation_id: str) -> Optional[OperationDescriptor]:
        self._evict_expired()
        return self._operations.get(operation_id)

    @property
    def errors(self) -> List[OperationErrorEntry]:
        return list(self._errors)

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def is_syncing(self) -> bool:
        return any(not op.status.is_terminal for op in self._operations.values())

    @property
    def last_synced_at(self) -> Optional[datetime]:
        return self._last_synced_at

    # endregion


__all__ = ["OperationStateError", "SyncState"]
