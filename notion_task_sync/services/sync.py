"""Бизнес-логика синхронизации задач с Notion."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import requests

from notion_task_sync.clients.notion import NotionAPIError
from notion_task_sync.clients.scheduled import ScheduledNotionClient
from notion_task_sync.config import AppConfig
from notion_task_sync.models.field_mapping import FieldMappingSet
from notion_task_sync.models.lists import ListDefinition, SortOrder, system_lists
from notion_task_sync.models.records import TaskRecord
from notion_task_sync.models.schema import ExternalSchema
from notion_task_sync.services.codec import TaskCodec
from notion_task_sync.services.config_store import ConfigStore
from notion_task_sync.services.filters import apply_clauses, build_sort_options, plan_query
from notion_task_sync.services.mapping_resolver import MappingResolver, MappingSelections

LOGGER = logging.getLogger(__name__)


@dataclass
class SyncStats:
    fetched: int = 0
    decoded: int = 0
    skipped: int = 0
    filtered_locally: int = 0


@dataclass
class ListResult:
    """Задачи одного списка после серверной и локальной фильтрации."""

    definition: ListDefinition
    records: List[TaskRecord] = field(default_factory=list)
    stats: SyncStats = field(default_factory=SyncStats)


class TaskSyncService:
    """Оркестратор чтения и изменения задач."""

    def __init__(
        self,
        config: AppConfig,
        notion: ScheduledNotionClient,
        store: ConfigStore,
        codec: Optional[TaskCodec] = None,
    ) -> None:
        self._config = config
        self._notion = notion
        self._store = store
        self._codec = codec or TaskCodec()
        self._schemas: Dict[str, ExternalSchema] = {}

    # region schema & mappings
    async def data_sources(self) -> List[Dict]:
        return await self._notion.list_data_sources()

    async def fetch_schema(self, data_source_id: str, *, refresh: bool = False) -> ExternalSchema:
        if refresh or data_source_id not in self._schemas:
            payload = await self._notion.retrieve_data_source(data_source_id)
            self._schemas[data_source_id] = ExternalSchema.from_response(payload)
        return self._schemas[data_source_id]

    async def configure(
        self,
        data_source_id: str,
        selections: MappingSelections,
        *,
        with_suggested_lists: bool = True,
    ) -> FieldMappingSet:
        """Строит соответствия по свежей схеме и сохраняет их.

        MappingValidationError пробрасывается, в хранилище ничего не пишется.
        """
        schema = await self.fetch_schema(data_source_id, refresh=True)
        resolver = MappingResolver(schema)
        mappings = resolver.build(selections)
        self._store.set_field_mappings(data_source_id, mappings, name=schema.title)
        if with_suggested_lists and not self._store.get_task_lists(data_source_id):
            self._store.set_task_lists(data_source_id, resolver.suggested_lists(selections))
        if self._store.default_data_source_id is None:
            self._store.default_data_source_id = data_source_id
        return mappings

    def _mappings(self, data_source_id: str) -> FieldMappingSet:
        mappings = self._store.get_field_mappings(data_source_id)
        if mappings is None:
            raise KeyError(f"Для источника {data_source_id} не настроены соответствия полей")
        return mappings

    # endregion

    # region reading
    async def load_list(
        self,
        data_source_id: str,
        list_id: str,
        *,
        sort_order: Optional[SortOrder] = None,
        today: Optional[date] = None,
    ) -> ListResult:
        mappings = self._mappings(data_source_id)
        definition = self._store.get_task_list(data_source_id, list_id)
        if definition is None:
            # системные списки доступны, даже если их нет в сохранённой конфигурации
            definition = next((item for item in system_lists() if item.id == list_id), None)
        if definition is None:
            raise KeyError(f"Список {list_id} не найден для источника {data_source_id}")

        schema = await self.fetch_schema(data_source_id)
        plan = plan_query(definition, mappings, schema=schema, today=today)
        sorts = build_sort_options(sort_order or self._config.sync.sort_order, mappings)
        LOGGER.info(
            "Список %s: %s условий в запросе, %s локально",
            list_id,
            len(definition.filters) - len(plan.local_clauses),
            len(plan.local_clauses),
        )
        pages = await self._notion.query_all(
            data_source_id,
            filter=plan.remote_filter,
            sorts=sorts,
            page_size=self._config.sync.page_size,
        )

        result = ListResult(definition=definition)
        result.stats.fetched = len(pages)
        decoded = self._codec.decode_batch(pages, mappings)
        result.stats.skipped = decoded.skipped
        result.stats.decoded = len(decoded.records)
        result.records = apply_clauses(decoded.records, plan.local_clauses, mappings, today=today)
        result.stats.filtered_locally = len(decoded.records) - len(result.records)
        self._store.set_last_sync(data_source_id, datetime.now(timezone.utc))
        return result

    async def sync_sources(self, data_source_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Загружает все задачи каждого источника; ошибка одного не прерывает остальные."""
        report: Dict[str, Dict[str, Any]] = {}
        for data_source_id in data_source_ids:
            try:
                result = await self.load_list(data_source_id, "all")
            except (NotionAPIError, requests.RequestException, KeyError) as exc:
                LOGGER.error("Источник %s не синхронизирован: %s", data_source_id, exc)
                report[data_source_id] = {"error": str(exc)}
                continue
            report[data_source_id] = vars(result.stats)
        return report

    async def get_task(self, data_source_id: str, page_id: str) -> Optional[TaskRecord]:
        page = await self._notion.retrieve_page(page_id)
        return self._codec.decode_record(page, self._mappings(data_source_id))

    # endregion

    # region writing
    async def update_task(self, data_source_id: str, page_id: str, changes: Dict[str, Any]) -> Optional[TaskRecord]:
        mappings = self._mappings(data_source_id)
        properties = self._codec.encode_changes(mappings, changes)
        LOGGER.debug("Обновление задачи %s: %s", page_id, sorted(changes))
        page = await self._notion.update_page(page_id, properties)
        return self._codec.decode_record(page, mappings)

    async def set_completed(self, data_source_id: str, page_id: str, completed: bool) -> Optional[TaskRecord]:
        return await self.update_task(data_source_id, page_id, {"completed": completed})

    async def create_task(self, data_source_id: str, title: str, **changes: Any) -> Optional[TaskRecord]:
        mappings = self._mappings(data_source_id)
        properties = self._codec.encode_changes(mappings, {"title": title, **changes})
        LOGGER.debug("Создание задачи в источнике %s", data_source_id)
        page = await self._notion.create_page(data_source_id, properties)
        return self._codec.decode_record(page, mappings)

    async def archive_task(self, page_id: str) -> None:
        await self._notion.archive_page(page_id)

    # endregion


__all__ = ["ListResult", "SyncStats", "TaskSyncService"]
