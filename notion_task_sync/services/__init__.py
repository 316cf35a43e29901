"""Сервисный слой приложения."""

from .batch_fetch import fetch_all_pages
from .codec import DecodeResult, TaskCodec
from .config_store import ConfigStore
from .mapping_resolver import MappingResolver, MappingSelections, MappingValidationError
from .scheduler import RateLimitedScheduler
from .sync_state import OperationStateError, SyncState

__all__ = [
    "ConfigStore",
    "DecodeResult",
    "MappingResolver",
    "MappingSelections",
    "MappingValidationError",
    "OperationStateError",
    "RateLimitedScheduler",
    "SyncState",
    "TaskCodec",
    "fetch_all_pages",
]
