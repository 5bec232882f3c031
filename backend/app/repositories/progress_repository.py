"""Repository for per-(user, item) progress records.

Records are partitioned by user and updated with optimistic concurrency:
each write is conditional on the ``_etag`` that was read, and a lost race is
re-read and recomputed. Concurrent answers for the same item therefore each
apply exactly once, in some order, to a single consistent record.
"""

import logging
from typing import Callable

from azure.core import MatchConditions
from azure.cosmos import ContainerProxy
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

from app.models import Item, ProgressRecord, progress_id
from app.srs.time import utc_now_iso

from .errors import ConcurrencyConflictError, PermanentStoreError
from .retry import StoreCaller

logger = logging.getLogger(__name__)

MAX_CONFLICT_ATTEMPTS = 5

# Receives a private copy of the current record and returns the record to
# write, or None to leave the stored record unchanged.
Transition = Callable[[ProgressRecord], ProgressRecord | None]


class ProgressNotFoundError(Exception):
    """Raised when a progress record is not found."""

    pass


class ProgressRepository:
    """Repository for ProgressRecord database operations."""

    def __init__(
        self,
        container: ContainerProxy,
        caller: StoreCaller | None = None,
        max_conflict_attempts: int = MAX_CONFLICT_ATTEMPTS,
    ):
        self.container = container
        self._call = caller or StoreCaller()
        self.max_conflict_attempts = max_conflict_attempts

    def get_by_key(self, user_id: str, item_id: str) -> ProgressRecord | None:
        """Get the record for a user and item, or None if the user never answered it."""
        try:
            item = self._call(
                self.container.read_item,
                item=progress_id(user_id, item_id),
                partition_key=user_id,
            )
        except CosmosResourceNotFoundError:
            return None
        return ProgressRecord(**item)

    def upsert_default(self, user_id: str, item: Item) -> ProgressRecord:
        """Return the record for a user and item, creating it with defaults if missing."""
        existing = self.get_by_key(user_id, item.id)
        if existing is not None:
            return existing

        record = ProgressRecord.new(user_id, item.id, item.poolId)
        try:
            created = self._call(self.container.create_item, body=record.to_document())
        except CosmosResourceExistsError:
            # Lost the create race; the winner's record is equivalent
            existing = self.get_by_key(user_id, item.id)
            if existing is None:
                raise PermanentStoreError(f"Progress record {record.id} vanished after a create conflict")
            return existing
        return ProgressRecord(**created)

    def apply_transition(self, user_id: str, item_id: str, transition: Transition) -> ProgressRecord:
        """Atomically read, transform and write one record.

        Raises:
            ProgressNotFoundError: The record does not exist
            ConcurrencyConflictError: Every attempt lost to a concurrent writer
            TransientStoreError: The store stayed unavailable through all retries
            PermanentStoreError: The store rejected a call
        """
        for attempt in range(1, self.max_conflict_attempts + 1):
            current = self.get_by_key(user_id, item_id)
            if current is None:
                raise ProgressNotFoundError(f"Progress for item {item_id} not found")

            updated = transition(current.model_copy(deep=True))
            if updated is None:
                return current
            updated.updatedAt = utc_now_iso()

            try:
                replaced = self._call(
                    self.container.replace_item,
                    item=current.id,
                    body=updated.to_document(),
                    etag=current.etag,
                    match_condition=MatchConditions.IfNotModified,
                )
            except CosmosAccessConditionFailedError:
                logger.info(
                    f"Progress write conflict: user={user_id}, item={item_id}, "
                    f"attempt={attempt}/{self.max_conflict_attempts}"
                )
                continue
            return ProgressRecord(**replaced)

        raise ConcurrencyConflictError(
            f"Progress for item {item_id} kept changing; gave up after {self.max_conflict_attempts} attempts"
        )

    def list_for_pool(self, user_id: str, pool_id: str) -> list[ProgressRecord]:
        """List a user's records for one pool."""
        query = "SELECT * FROM c WHERE c.userId = @userId AND c.poolId = @poolId"
        parameters = [
            {"name": "@userId", "value": user_id},
            {"name": "@poolId", "value": pool_id},
        ]
        return self._query(user_id, query, parameters)

    def list_for_user(self, user_id: str) -> list[ProgressRecord]:
        """List all of a user's records, most recently updated first."""
        query = "SELECT * FROM c WHERE c.userId = @userId ORDER BY c.updatedAt DESC"
        parameters = [{"name": "@userId", "value": user_id}]
        return self._query(user_id, query, parameters)

    def _query(self, user_id: str, query: str, parameters: list[dict]) -> list[ProgressRecord]:
        items = self._call(
            lambda: list(
                self.container.query_items(
                    query=query,
                    parameters=parameters,
                    partition_key=user_id,
                )
            )
        )
        return [ProgressRecord(**item) for item in items]
