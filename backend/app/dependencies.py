"""FastAPI dependencies wiring repositories to the store opened at startup."""

import logging

from fastapi import Depends, HTTPException, Request, status

from app.db import CosmosStore, StoreNotOpenError
from app.repositories import (
    ItemRepository,
    PermanentStoreError,
    ProgressRepository,
    SessionHistoryRepository,
    StoreCaller,
    StoreError,
    TransientStoreError,
)
from app.sessions import SessionRegistry

logger = logging.getLogger(__name__)


def get_store(request: Request) -> CosmosStore:
    """Return the store handle opened in the application lifespan."""
    store = getattr(request.app.state, "store", None)
    if store is None or not store.is_open:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress store is not available",
        )
    return store


def _caller(store: CosmosStore) -> StoreCaller:
    return StoreCaller(backoff_seconds=store.settings.retry_backoff_seconds)


def get_item_repository(store: CosmosStore = Depends(get_store)) -> ItemRepository:
    try:
        return ItemRepository(store.items_container(), _caller(store))
    except StoreNotOpenError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Item store is not available")


def get_progress_repository(store: CosmosStore = Depends(get_store)) -> ProgressRepository:
    try:
        return ProgressRepository(store.progress_container(), _caller(store))
    except StoreNotOpenError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Progress store is not available")


def get_session_repository(store: CosmosStore = Depends(get_store)) -> SessionHistoryRepository:
    try:
        return SessionHistoryRepository(store.sessions_container(), store.users_container(), _caller(store))
    except StoreNotOpenError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Session store is not available")


def get_session_registry(request: Request) -> SessionRegistry:
    """Return the registry of live study sessions created in the lifespan."""
    registry = getattr(request.app.state, "sessions", None)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Study sessions are not available",
        )
    return registry


def http_error_for_store_failure(error: StoreError) -> HTTPException:
    """Map a store failure onto the HTTP status the client should see."""
    if isinstance(error, TransientStoreError):
        logger.warning(f"Store temporarily unavailable: {error}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The progress store is temporarily unavailable. Please retry.",
        )
    if isinstance(error, PermanentStoreError):
        logger.error(f"Store call failed permanently: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )
