"""Хранилище настроек источников данных."""
from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from notion_task_sync.models.field_mapping import FieldMappingSet, mapping_set_from_dict, mapping_set_to_dict
from notion_task_sync.models.lists import ListDefinition

LOGGER = logging.getLogger(__name__)

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
CONFIG_VERSION = 1


class DataSourceConfig(BaseModel):
    """Настройки одного источника данных в выгружаемом документе."""

    id: str
    name: str = ""
    field_mappings: Dict[str, Dict] = Field(..., description="Закодированный FieldMappingSet")
    task_lists: List[ListDefinition] = Field(default_factory=list)
    last_synced_at: Optional[datetime] = None

    @field_validator("field_mappings")
    @classmethod
    def _valid_mappings(cls, value: Dict[str, Dict]) -> Dict[str, Dict]:
        try:
            mapping_set_from_dict(value)
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Неполное описание соответствия: {exc}") from exc
        return value


class ConfigDocument(BaseModel):
    """Вся конфигурация целиком."""

    version: int = CONFIG_VERSION
    default_data_source_id: Optional[str] = None
    data_sources: Dict[str, DataSourceConfig] = Field(default_factory=dict)


class ConfigStore:
    """Обёртка над SQLite для соответствий полей и списков задач."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._conn = sqlite3.connect(self._path)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def close(self) -> None:
        self._conn.close()

    # region schema
    def _init_schema(self) -> None:
        with closing(self._conn.cursor()) as cursor:
            cursor.executescript(
                """
                CREATE TABLE IF NOT EXISTS data_sources (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL DEFAULT '',
                    field_mappings TEXT NOT NULL,
                    task_lists TEXT NOT NULL DEFAULT '[]',
                    last_sync TEXT
                );

                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT
                );
                """
            )
            self._conn.commit()

    # endregion

    # region helpers
    def _row(self, data_source_id: str) -> Optional[sqlite3.Row]:
        return self._conn.execute("SELECT * FROM data_sources WHERE id = ?", (data_source_id,)).fetchone()

    def _require(self, data_source_id: str) -> sqlite3.Row:
        row = self._row(data_source_id)
        if row is None:
            raise KeyError(f"Источник данных {data_source_id} не настроен")
        return row

    @staticmethod
    def _dump_lists(lists: List[ListDefinition]) -> str:
        return json.dumps([item.model_dump(mode="json") for item in lists], ensure_ascii=False)

    @staticmethod
    def _load_lists(raw: str) -> List[ListDefinition]:
        return [ListDefinition.model_validate(item) for item in json.loads(raw or "[]")]

    # endregion

    # region field mappings
    def get_field_mappings(self, data_source_id: str) -> Optional[FieldMappingSet]:
        row = self._row(data_source_id)
        if row is None:
            return None
        return mapping_set_from_dict(json.loads(row["field_mappings"]))

    def set_field_mappings(self, data_source_id: str, mappings: FieldMappingSet, *, name: str = "") -> None:
        """Сохраняет соответствия; принимает только собранный FieldMappingSet."""
        if not isinstance(mappings, FieldMappingSet):
            raise TypeError("Сохранить можно только FieldMappingSet, собранный MappingResolver")
        encoded = json.dumps(mapping_set_to_dict(mappings), ensure_ascii=False)
        self._conn.execute(
            "INSERT INTO data_sources (id, name, field_mappings) VALUES (?, ?, ?)\n"
            "ON CONFLICT(id) DO UPDATE SET field_mappings = excluded.field_mappings,"
            " name = CASE WHEN excluded.name != '' THEN excluded.name ELSE data_sources.name END",
            (data_source_id, name, encoded),
        )
        self._conn.commit()
        LOGGER.info("Соответствия для источника %s сохранены", data_source_id)

    # endregion

    # region task lists
    def get_task_lists(self, data_source_id: str) -> List[ListDefinition]:
        row = self._row(data_source_id)
        return self._load_lists(row["task_lists"]) if row else []

    def get_task_list(self, data_source_id: str, list_id: str) -> Optional[ListDefinition]:
        for item in self.get_task_lists(data_source_id):
            if item.id == list_id:
                return item
        return None

    def set_task_lists(self, data_source_id: str, lists: List[ListDefinition]) -> None:
        self._require(data_source_id)
        self._conn.execute(
            "UPDATE data_sources SET task_lists = ? WHERE id = ?",
            (self._dump_lists(lists), data_source_id),
        )
        self._conn.commit()

    def add_task_list(self, data_source_id: str, task_list: ListDefinition) -> None:
        lists = self.get_task_lists(data_source_id)
        if any(item.id == task_list.id for item in lists):
            raise ValueError(f"Список {task_list.id} уже существует")
        self.set_task_lists(data_source_id, [*lists, task_list])

    # endregion

    # region data sources
    def data_source_ids(self) -> List[str]:
        return [row[0] for row in self._conn.execute("SELECT id FROM data_sources ORDER BY rowid")]

    def remove_data_source(self, data_source_id: str) -> bool:
        cursor = self._conn.execute("DELETE FROM data_sources WHERE id = ?", (data_source_id,))
        removed = cursor.rowcount > 0
        if removed and self.default_data_source_id == data_source_id:
            self.default_data_source_id = None
        self._conn.commit()
        return removed

    @property
    def default_data_source_id(self) -> Optional[str]:
        row = self._conn.execute("SELECT value FROM settings WHERE key = 'default_data_source_id'").fetchone()
        return row[0] if row else None

    @default_data_source_id.setter
    def default_data_source_id(self, value: Optional[str]) -> None:
        self._conn.execute(
            "INSERT INTO settings (key, value) VALUES ('default_data_source_id', ?)\n"
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (value,),
        )
        self._conn.commit()

    # endregion

    # region sync state
    def get_last_sync(self, data_source_id: str) -> Optional[datetime]:
        row = self._row(data_source_id)
        if not row or not row["last_sync"]:
            return None
        return datetime.strptime(row["last_sync"], ISO_FORMAT)

    def set_last_sync(self, data_source_id: str, moment: datetime) -> None:
        self._require(data_source_id)
        self._conn.execute(
            "UPDATE data_sources SET last_sync = ? WHERE id = ?",
            (moment.strftime(ISO_FORMAT), data_source_id),
        )
        self._conn.commit()

    # endregion

    # region whole-config import/export
    def to_document(self) -> ConfigDocument:
        sources: Dict[str, DataSourceConfig] = {}
        for row in self._conn.execute("SELECT * FROM data_sources ORDER BY rowid"):
            sources[row["id"]] = DataSourceConfig(
                id=row["id"],
                name=row["name"],
                field_mappings=json.loads(row["field_mappings"]),
                task_lists=self._load_lists(row["task_lists"]),
                last_synced_at=datetime.strptime(row["last_sync"], ISO_FORMAT) if row["last_sync"] else None,
            )
        return ConfigDocument(default_data_source_id=self.default_data_source_id, data_sources=sources)

    def export_text(self) -> str:
        """Выгружает конфигурацию в YAML."""
        document = self.to_document().model_dump(mode="json")
        return yaml.safe_dump(document, allow_unicode=True, sort_keys=False)

    def import_text(self, text: str) -> ConfigDocument:
        """Заменяет конфигурацию содержимым YAML-документа."""
        try:
            document = ConfigDocument.model_validate(yaml.safe_load(text) or {})
        except ValidationError as exc:
            raise ValueError(f"Документ конфигурации некорректен: {exc}") from exc

        with self._conn:
            self._conn.execute("DELETE FROM data_sources")
            for source in document.data_sources.values():
                self._conn.execute(
                    "INSERT INTO data_sources (id, name, field_mappings, task_lists, last_sync) VALUES (?, ?, ?, ?, ?)",
                    (
                        source.id,
                        source.name,
                        json.dumps(source.field_mappings, ensure_ascii=False),
                        self._dump_lists(source.task_lists),
                        source.last_synced_at.strftime(ISO_FORMAT) if source.last_synced_at else None,
                    ),
                )
        self.default_data_source_id = document.default_data_source_id
        LOGGER.info("Импортировано источников данных: %s", len(document.data_sources))
        return document

    # endregion


__all__ = ["ConfigDocument", "ConfigStore", "DataSourceConfig"]
