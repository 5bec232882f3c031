"""Database module for Cosmos DB integration."""

from .cosmos import (
    CosmosDBSettings,
    CosmosStore,
    StoreNotOpenError,
    get_settings,
)

__all__ = [
    "CosmosDBSettings",
    "CosmosStore",
    "StoreNotOpenError",
    "get_settings",
]
