"""Синхронизация задач с источниками данных Notion."""

__version__ = "0.1.0"
