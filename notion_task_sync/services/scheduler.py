"""Планировщик операций с ограничением частоты запросов."""
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Optional

from notion_task_sync.models.operations import OperationKind, ResourceType
from notion_task_sync.services.sync_state import SyncState

LOGGER = logging.getLogger(__name__)

Work = Callable[[], Awaitable[Any]]


@dataclass
class _QueuedOperation:
    work: Work
    future: asyncio.Future
    operation_id: str


class RateLimitedScheduler:
    """Единая очередь всех обращений к внешнему сервису.

    За любое окно ``window_ms`` начинается не больше ``max_requests``
    операций. Операции выполняются строго по одной в порядке постановки,
    каждая ровно один раз; повтор после ошибки остаётся на вызывающем.
    """

    def __init__(
        self,
        *,
        max_requests: int = 3,
        window_ms: int = 1000,
        state: Optional[SyncState] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_requests < 1 or window_ms < 1:
            raise ValueError("max_requests и window_ms должны быть положительными")
        self._max_requests = max_requests
        self._window = window_ms / 1000
        self._state = state or SyncState()
        self._clock = clock
        self._sleep = sleep
        self._queue: Deque[_QueuedOperation] = deque()
        self._window_start = float("-inf")
        self._count = 0
        self._running = False
        self._drain_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> SyncState:
        return self._state

    def remaining_budget(self) -> int:
        """Сколько операций ещё можно начать в текущем окне."""
        if self._clock() - self._window_start >= self._window:
            return self._max_requests
        return max(0, self._max_requests - self._count)

    def submit(
        self,
        work: Work,
        kind: OperationKind,
        resource_type: ResourceType,
        resource_id: Optional[str] = None,
    ) -> asyncio.Future:
        """Ставит операцию в очередь и сразу возвращает future с её результатом."""
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        kind, resource_type = OperationKind(kind), ResourceType(resource_type)
        operation_id = self._state.start_operation(kind, resource_type, resource_id)
        self._queue.append(_QueuedOperation(work=work, future=future, operation_id=operation_id))
        LOGGER.debug(
            "Операция %s (%s %s) поставлена в очередь", operation_id, kind.value, resource_type.value
        )
        if not self._running:
            self._running = True
            self._drain_task = loop.create_task(self._drain())
        return future

    async def drain(self) -> None:
        """Ждёт, пока очередь опустеет."""
        while self._running and self._drain_task is not None:
            await asyncio.shield(self._drain_task)

    async def _drain(self) -> None:
        try:
            while self._queue:
                now = self._clock()
                elapsed = now - self._window_start
                if elapsed >= self._window:
                    self._window_start = now
                    self._count = 0
                    elapsed = 0.0
                if self._count >= self._max_requests:
                    await self._sleep(self._window - elapsed)
                    continue

                item = self._queue.popleft()
                self._count += 1
                await self._execute(item)
        finally:
            self._running = False

    async def _execute(self, item: _QueuedOperation) -> None:
        self._state.mark_in_progress(item.operation_id)
        try:
            result = await item.work()
        except asyncio.CancelledError:
            self._state.fail_operation(item.operation_id, "операция отменена")
            LOGGER.warning("Операция %s отменена", item.operation_id)
            item.future.cancel()
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            return
        except Exception as exc:  # noqa: BLE001
            message = str(exc) or exc.__class__.__name__
            self._state.fail_operation(item.operation_id, message)
            LOGGER.warning("Операция %s завершилась ошибкой: %s", item.operation_id, message)
            if not item.future.done():
                item.future.set_exception(exc)
            return
        self._state.complete_operation(item.operation_id)
        if not item.future.done():
            item.future.set_result(result)


__all__ = ["RateLimitedScheduler", "Work"]
