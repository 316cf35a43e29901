"""Клиенты внешних API."""

from .notion import NotionAPIError, NotionClient, QueryPage
from .scheduled import ScheduledNotionClient

__all__ = ["NotionAPIError", "NotionClient", "QueryPage", "ScheduledNotionClient"]
