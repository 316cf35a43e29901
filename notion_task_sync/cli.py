"""CLI-интерфейс для работы с задачами Notion."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from tqdm import tqdm

from notion_task_sync.clients import NotionClient, ScheduledNotionClient
from notion_task_sync.config import AppConfig
from notion_task_sync.models.lists import SortOrder
from notion_task_sync.models.records import TaskRecord
from notion_task_sync.services.codec import is_completed, plain_title
from notion_task_sync.services.config_store import ConfigStore
from notion_task_sync.services.mapping_resolver import (
    ALLOWED_TYPES,
    MappingResolver,
    MappingSelections,
    MappingValidationError,
)
from notion_task_sync.services.scheduler import RateLimitedScheduler
from notion_task_sync.services.sync import TaskSyncService
from notion_task_sync.services.sync_state import SyncState

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

app = typer.Typer(help="Синхронизация задач с источниками данных Notion")

ConfigOption = typer.Option(Path("config.yaml"), "--config", "-c", help="Путь к YAML конфигурации")
VerbosityOption = typer.Option(0, "--verbose", "-v", count=True, help="Уровень логирования")


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


def build_service(config_path: Path) -> tuple[TaskSyncService, ConfigStore, RateLimitedScheduler]:
    config = AppConfig.load(config_path)
    config.ensure_runtime_dirs()
    store = ConfigStore(config.state_db)
    limits = config.rate_limit
    state = SyncState(
        completed_retention_s=limits.completed_retention_s,
        failed_retention_s=limits.failed_retention_s,
        max_errors=limits.max_errors,
    )
    scheduler = RateLimitedScheduler(max_requests=limits.max_requests, window_ms=limits.window_ms, state=state)
    notion = ScheduledNotionClient(NotionClient(config.notion), scheduler)
    return TaskSyncService(config, notion, store), store, scheduler


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _resolve_source(store: ConfigStore, data_source_id: Optional[str]) -> str:
    resolved = data_source_id or store.default_data_source_id
    if not resolved:
        raise typer.BadParameter("Не указан источник данных и не задан источник по умолчанию")
    return resolved


def _task_row(record: TaskRecord) -> Dict[str, Any]:
    row: Dict[str, Any] = {"id": record.id, "title": plain_title(record), "completed": is_completed(record)}
    for name in ("category", "due_date", "priority", "do_date"):
        value = getattr(record, name)
        if value is not None:
            row[name] = value.value
    return row


@app.command("verify")
def verify(config_path: Path = ConfigOption, verbosity: int = VerbosityOption) -> None:
    """Проверяет соединение с API и базовую конфигурацию."""
    configure_logging(verbosity)
    service, store, _ = build_service(config_path)
    try:
        sources = asyncio.run(service.data_sources())
        typer.echo(f"Соединение успешно, доступно источников: {len(sources)}")
    finally:
        store.close()


@app.command("data-sources")
def data_sources(config_path: Path = ConfigOption, verbosity: int = VerbosityOption) -> None:
    """Выводит источники данных, доступные интеграции."""
    configure_logging(verbosity)
    service, store, _ = build_service(config_path)
    try:
        sources = asyncio.run(service.data_sources())
        _echo(
            [
                {"id": item.get("id"), "title": "".join(run.get("plain_text", "") for run in item.get("title") or [])}
                for item in sources
            ]
        )
    finally:
        store.close()


@app.command("schema")
def schema(
    data_source_id: str = typer.Argument(..., help="ID источника данных"),
    config_path: Path = ConfigOption,
    verbosity: int = VerbosityOption,
) -> None:
    """Показывает свойства источника и подходящие кандидаты для каждого поля задачи."""
    configure_logging(verbosity)
    service, store, _ = build_service(config_path)
    try:
        resolver = MappingResolver(asyncio.run(service.fetch_schema(data_source_id)))
        _echo(
            {
                field_name: [
                    {
                        "id": prop.id,
                        "name": prop.name,
                        "type": prop.type.value,
                        "options": [option.to_dict() for option in resolver.enum_options(prop)],
                    }
                    for prop in resolver.candidate_properties(field_name)
                ]
                for field_name in ALLOWED_TYPES
            }
        )
    finally:
        store.close()


@app.command("configure")
def configure(
    data_source_id: str = typer.Argument(..., help="ID источника данных"),
    title: Optional[str] = typer.Option(None, help="ID свойства заголовка"),
    completed: Optional[str] = typer.Option(None, help="ID свойства выполненности"),
    true_option: Optional[str] = typer.Option(None, help="ID варианта, означающего «выполнено»"),
    false_option: Optional[str] = typer.Option(None, help="ID варианта, означающего «не выполнено»"),
    category: Optional[str] = typer.Option(None),
    due_date: Optional[str] = typer.Option(None),
    priority: Optional[str] = typer.Option(None),
    do_date: Optional[str] = typer.Option(None),
    config_path: Path = ConfigOption,
    verbosity: int = VerbosityOption,
) -> None:
    """Сохраняет соответствия полей задачи свойствам Notion."""
    configure_logging(verbosity)
    service, store, _ = build_service(config_path)
    selections = MappingSelections(
        title=title,
        completed=completed,
        category=category,
        due_date=due_date,
        priority=priority,
        do_date=do_date,
        completed_true_option=true_option,
        completed_false_option=false_option,
    )
    try:
        asyncio.run(service.configure(data_source_id, selections))
    except MappingValidationError as exc:
        for problem in exc.problems:
            typer.echo(f"- {problem}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        store.close()
    typer.echo("Соответствия сохранены")


@app.command("lists")
def lists(
    data_source_id: Optional[str] = typer.Argument(None, help="ID источника данных"),
    config_path: Path = ConfigOption,
) -> None:
    """Списки задач источника."""
    _, store, _ = build_service(config_path)
    try:
        source = _resolve_source(store, data_source_id)
        _echo([item.model_dump(mode="json") for item in store.get_task_lists(source)])
    finally:
        store.close()


@app.command("tasks")
def tasks(
    data_source_id: Optional[str] = typer.Argument(None, help="ID источника данных"),
    list_id: str = typer.Option("all", "--list", "-l", help="ID списка задач"),
    sort_order: Optional[SortOrder] = typer.Option(None, "--sort", help="Порядок сортировки"),
    config_path: Path = ConfigOption,
    verbosity: int = VerbosityOption,
) -> None:
    """Выводит задачи списка."""
    configure_logging(verbosity)
    service, store, _ = build_service(config_path)
    try:
        source = _resolve_source(store, data_source_id)
        result = asyncio.run(service.load_list(source, list_id, sort_order=sort_order))
        _echo({"stats": vars(result.stats), "tasks": [_task_row(record) for record in result.records]})
    finally:
        store.close()


@app.command("complete")
def complete(
    page_id: str = typer.Argument(..., help="ID задачи (страницы Notion)"),
    data_source_id: Optional[str] = typer.Option(None, "--source", "-s", help="ID источника данных"),
    undo: bool = typer.Option(False, "--undo", help="Снять отметку о выполнении"),
    config_path: Path = ConfigOption,
    verbosity: int = VerbosityOption,
) -> None:
    """Отмечает задачу выполненной (или снимает отметку)."""
    configure_logging(verbosity)
    service, store, _ = build_service(config_path)
    try:
        source = _resolve_source(store, data_source_id)
        record = asyncio.run(service.set_completed(source, page_id, not undo))
        _echo(_task_row(record) if record else {"id": page_id})
    finally:
        store.close()


@app.command("sync")
def sync(config_path: Path = ConfigOption, verbosity: int = VerbosityOption) -> None:
    """Загружает все задачи каждого настроенного источника."""
    configure_logging(verbosity)
    service, store, scheduler = build_service(config_path)

    try:
        report = asyncio.run(service.sync_sources(tqdm(store.data_source_ids(), desc="Источники")))
        _echo({"sources": report, "errors": [entry.message for entry in scheduler.state.errors]})
    finally:
        store.close()
    if any("error" in item for item in report.values()):
        raise typer.Exit(code=1)


@app.command("show")
def show(
    page_id: str = typer.Argument(..., help="ID задачи (страницы Notion)"),
    data_source_id: Optional[str] = typer.Option(None, "--source", "-s", help="ID источника данных"),
    config_path: Path = ConfigOption,
    verbosity: int = VerbosityOption,
) -> None:
    """Показывает одну задачу."""
    configure_logging(verbosity)
    service, store, _ = build_service(config_path)
    try:
        source = _resolve_source(store, data_source_id)
        record = asyncio.run(service.get_task(source, page_id))
        _echo(_task_row(record) if record else {"id": page_id, "skipped": True})
    finally:
        store.close()


@app.command("add")
def add(
    title: str = typer.Argument(..., help="Заголовок задачи"),
    data_source_id: Optional[str] = typer.Option(None, "--source", "-s", help="ID источника данных"),
    due_date: Optional[str] = typer.Option(None, "--due", help="Срок в формате ISO"),
    config_path: Path = ConfigOption,
    verbosity: int = VerbosityOption,
) -> None:
    """Создаёт задачу в источнике данных."""
    configure_logging(verbosity)
    service, store, _ = build_service(config_path)
    changes: Dict[str, Any] = {"completed": False}
    if due_date:
        changes["due_date"] = due_date
    try:
        source = _resolve_source(store, data_source_id)
        record = asyncio.run(service.create_task(source, title, **changes))
        _echo(_task_row(record) if record else {"title": title})
    finally:
        store.close()


@app.command("archive")
def archive(
    page_id: str = typer.Argument(..., help="ID задачи (страницы Notion)"),
    config_path: Path = ConfigOption,
    verbosity: int = VerbosityOption,
) -> None:
    """Переносит задачу в архив Notion."""
    configure_logging(verbosity)
    service, store, _ = build_service(config_path)
    try:
        asyncio.run(service.archive_task(page_id))
        typer.echo(f"Задача {page_id} архивирована")
    finally:
        store.close()


@app.command("export-config")
def export_config(config_path: Path = ConfigOption) -> None:
    """Печатает сохранённые соответствия и списки в YAML."""
    _, store, _ = build_service(config_path)
    try:
        typer.echo(store.export_text())
    finally:
        store.close()


@app.command("import-config")
def import_config(
    source_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="YAML-файл конфигурации"),
    config_path: Path = ConfigOption,
) -> None:
    """Заменяет сохранённую конфигурацию содержимым файла."""
    _, store, _ = build_service(config_path)
    try:
        document = store.import_text(source_file.read_text(encoding="utf-8"))
        typer.echo(f"Импортировано источников: {len(document.data_sources)}")
    finally:
        store.close()


if __name__ == "__main__":
    app()
