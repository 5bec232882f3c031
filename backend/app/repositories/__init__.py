"""Repositories module for data access layer."""

from .errors import (
    ConcurrencyConflictError,
    PermanentStoreError,
    StoreError,
    TransientStoreError,
)
from .item_repository import ItemNotFoundError, ItemRepository
from .progress_repository import (
    ProgressNotFoundError,
    ProgressRepository,
    Transition,
)
from .retry import StoreCaller, translate_store_error
from .session_repository import SessionHistoryRepository

__all__ = [
    "ConcurrencyConflictError",
    "PermanentStoreError",
    "StoreError",
    "TransientStoreError",
    "ItemNotFoundError",
    "ItemRepository",
    "ProgressNotFoundError",
    "ProgressRepository",
    "Transition",
    "StoreCaller",
    "translate_store_error",
    "SessionHistoryRepository",
]
