"""Клиент Notion, все вызовы которого проходят через планировщик."""
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from notion_task_sync.clients.notion import NotionClient
from notion_task_sync.models.operations import OperationKind, ResourceType
from notion_task_sync.services.batch_fetch import fetch_all_pages
from notion_task_sync.services.scheduler import RateLimitedScheduler


class ScheduledNotionClient:
    """Асинхронная обёртка: один HTTP-запрос - одна операция планировщика.

    Блокирующие вызовы ``requests`` уходят в поток через ``asyncio.to_thread``.
    """

    def __init__(self, client: NotionClient, scheduler: RateLimitedScheduler) -> None:
        self._client = client
        self._scheduler = scheduler

    @property
    def scheduler(self) -> RateLimitedScheduler:
        return self._scheduler

    async def list_data_sources(self) -> List[Dict]:
        return await fetch_all_pages(
            self._scheduler,
            lambda cursor: asyncio.to_thread(self._client.list_data_sources, cursor),
        )

    async def retrieve_data_source(self, data_source_id: str) -> Dict:
        return await self._scheduler.submit(
            lambda: asyncio.to_thread(self._client.retrieve_data_source, data_source_id),
            OperationKind.FETCH,
            ResourceType.DATABASE,
            data_source_id,
        )

    async def query_all(
        self,
        data_source_id: str,
        *,
        filter: Optional[Dict] = None,  # noqa: A002
        sorts: Optional[List[Dict]] = None,
        page_size: int = 100,
    ) -> List[Dict]:
        """Все страницы запроса одной последовательностью."""
        return await fetch_all_pages(
            self._scheduler,
            lambda cursor: asyncio.to_thread(
                self._client.query_data_source,
                data_source_id,
                filter=filter,
                sorts=sorts,
                start_cursor=cursor,
                page_size=page_size,
            ),
            resource_id=data_source_id,
        )

    async def retrieve_page(self, page_id: str) -> Dict:
        return await self._scheduler.submit(
            lambda: asyncio.to_thread(self._client.retrieve_page, page_id),
            OperationKind.FETCH,
            ResourceType.PAGE,
            page_id,
        )

    async def create_page(self, data_source_id: str, properties: Dict[str, Any]) -> Dict:
        return await self._scheduler.submit(
            lambda: asyncio.to_thread(self._client.create_page, data_source_id, properties),
            OperationKind.CREATE,
            ResourceType.PAGE,
        )

    async def update_page(self, page_id: str, properties: Dict[str, Any]) -> Dict:
        return await self._scheduler.submit(
            lambda: asyncio.to_thread(self._client.update_page, page_id, properties),
            OperationKind.UPDATE,
            ResourceType.PAGE,
            page_id,
        )

    async def archive_page(self, page_id: str) -> Dict:
        return await self._scheduler.submit(
            lambda: asyncio.to_thread(self._client.archive_page, page_id),
            OperationKind.DELETE,
            ResourceType.PAGE,
            page_id,
        )


__all__ = ["ScheduledNotionClient"]
