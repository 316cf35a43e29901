"""Постраничная выгрузка через планировщик."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence

from notion_task_sync.models.operations import OperationKind, ResourceType
from notion_task_sync.services.scheduler import RateLimitedScheduler

LOGGER = logging.getLogger(__name__)


class PageLike(Protocol):
    results: Sequence[Any]
    has_more: bool
    next_cursor: Optional[str]


async def fetch_all_pages(
    scheduler: RateLimitedScheduler,
    fetch_page: Callable[[Optional[str]], Awaitable[PageLike]],
    *,
    kind: OperationKind = OperationKind.FETCH,
    resource_type: ResourceType = ResourceType.DATABASE,
    resource_id: Optional[str] = None,
) -> List[Any]:
    """Забирает все страницы курсора; каждая страница - отдельная операция."""
    items: List[Any] = []
    cursor: Optional[str] = None
    pages = 0
    while True:
        page = await scheduler.submit(
            lambda current=cursor: fetch_page(current),
            kind,
            resource_type,
            resource_id,
        )
        pages += 1
        items.extend(page.results)
        if not page.has_more or not page.next_cursor:
            break
        cursor = page.next_cursor
    LOGGER.debug("Получено %s записей за %s страниц(ы) (%s)", len(items), pages, resource_id or "-")
    return items


__all__ = ["PageLike", "fetch_all_pages"]
