"""HTTP-клиент для Notion API."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from notion_task_sync.config import NotionCredentials


class NotionAPIError(RuntimeError):
    """Исключение при ошибке Notion API."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class QueryPage:
    """Контейнер для страницы результатов запроса."""

    results: List[Dict]
    has_more: bool
    next_cursor: Optional[str]


def _is_live(item: Dict) -> bool:
    return not item.get("archived") and not item.get("in_trash")


class NotionClient:
    """Минимальный синхронный клиент Notion API."""

    def __init__(self, config: NotionCredentials, session: Optional[requests.Session] = None) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {config.token}",
                "Notion-Version": config.notion_version,
                "User-Agent": "notion-task-sync/0.1",
                "Accept": "application/json",
            }
        )

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    # region low-level helpers
    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        response = self._session.request(method, url, timeout=self._config.timeout, **kwargs)
        if response.status_code >= 400:
            raise NotionAPIError(
                f"Ошибка Notion API {response.status_code} при запросе {method} {url}: {response.text}",
                status_code=response.status_code,
            )
        return response.json()

    # endregion

    def list_data_sources(self, start_cursor: Optional[str] = None) -> QueryPage:
        """Страница источников данных, доступных интеграции."""
        body: Dict[str, Any] = {"filter": {"property": "object", "value": "data_source"}}
        if start_cursor:
            body["start_cursor"] = start_cursor
        payload = self._request("POST", "/search", json=body)
        return QueryPage(
            results=[item for item in payload.get("results", []) if _is_live(item)],
            has_more=bool(payload.get("has_more")),
            next_cursor=payload.get("next_cursor"),
        )

    def retrieve_data_source(self, data_source_id: str) -> Dict:
        return self._request("GET", f"/data_sources/{data_source_id}")

    def query_data_source(
        self,
        data_source_id: str,
        *,
        filter: Optional[Dict] = None,  # noqa: A002 - имя поля Notion API
        sorts: Optional[List[Dict]] = None,
        start_cursor: Optional[str] = None,
        page_size: int = 100,
    ) -> QueryPage:
        """Возвращает одну страницу записей источника."""
        body: Dict[str, Any] = {"page_size": page_size}
        if filter:
            body["filter"] = filter
        if sorts:
            body["sorts"] = sorts
        if start_cursor:
            body["start_cursor"] = start_cursor
        payload = self._request("POST", f"/data_sources/{data_source_id}/query", json=body)
        results = [item for item in payload.get("results", []) if item.get("object") == "page" and _is_live(item)]
        return QueryPage(
            results=results,
            has_more=bool(payload.get("has_more")),
            next_cursor=payload.get("next_cursor"),
        )

    def retrieve_page(self, page_id: str) -> Dict:
        return self._request("GET", f"/pages/{page_id}")

    def create_page(self, data_source_id: str, properties: Dict[str, Any]) -> Dict:
        body = {
            "parent": {"type": "data_source_id", "data_source_id": data_source_id},
            "properties": properties,
        }
        return self._request("POST", "/pages", json=body)

    def update_page(self, page_id: str, properties: Dict[str, Any]) -> Dict:
        return self._request("PATCH", f"/pages/{page_id}", json={"properties": properties})

    def archive_page(self, page_id: str) -> Dict:
        return self._request("PATCH", f"/pages/{page_id}", json={"archived": True})


__all__ = ["NotionAPIError", "NotionClient", "QueryPage"]
