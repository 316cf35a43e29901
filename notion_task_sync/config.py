"""Загрузка и валидация конфигурации приложения."""
from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from notion_task_sync.models.lists import SortOrder


class NotionCredentials(BaseModel):
    """Настройки подключения к Notion API."""

    token: str = Field(..., description="Секрет внутренней интеграции Notion")
    base_url: str = Field("https://api.notion.com/v1", description="Базовый URL Notion API")
    notion_version: str = Field("2025-09-03", description="Значение заголовка Notion-Version")
    timeout: float = Field(30.0, description="Таймаут HTTP-запроса в секундах")


class RateLimitOptions(BaseModel):
    """Бюджет запросов к Notion."""

    max_requests: int = Field(3, ge=1, description="Сколько операций можно начать за одно окно")
    window_ms: int = Field(1000, ge=1, description="Длина окна в миллисекундах")
    completed_retention_s: float = Field(1.0, ge=0, description="Сколько держать успешные операции в снимке")
    failed_retention_s: float = Field(5.0, ge=0, description="Сколько держать упавшие операции в снимке")
    max_errors: int = Field(10, ge=1, description="Размер ленты последних ошибок")


class SyncOptions(BaseModel):
    """Параметры синхронизации."""

    page_size: int = Field(100, ge=1, le=100, description="Размер страницы при запросе задач")
    sort_order: SortOrder = Field(SortOrder.MANUAL, description="Порядок сортировки списков")


class AppConfig(BaseModel):
    """Корневая конфигурация приложения."""

    notion: NotionCredentials
    rate_limit: RateLimitOptions = Field(default_factory=RateLimitOptions)
    sync: SyncOptions = Field(default_factory=SyncOptions)
    state_db: Path = Field(Path(".notion_tasks.sqlite"), description="Путь к SQLite-базе настроек")

    @field_validator("state_db", mode="before")
    @classmethod
    def _state_db_path(cls, value: Path | str) -> Path:
        return Path(value)

    @classmethod
    def load(cls, path: Path | str) -> "AppConfig":
        """Загружает конфигурацию из YAML-файла."""
        path = Path(path)
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ValueError(f"Конфигурация {path} некорректна: {exc}") from exc

    def ensure_runtime_dirs(self) -> None:
        """Создаёт недостающие служебные каталоги."""
        self.state_db.parent.mkdir(parents=True, exist_ok=True)


__all__ = ["AppConfig", "NotionCredentials", "RateLimitOptions", "SyncOptions"]
