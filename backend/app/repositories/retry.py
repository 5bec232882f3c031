"""Retry and error translation for Cosmos DB calls.

Every store call made by a repository goes through ``StoreCaller``. Transport
failures and throttling/availability status codes become TransientStoreError
and are retried with a fixed backoff; anything else becomes PermanentStoreError
and propagates immediately. Not-found, already-exists and precondition-failed
errors are left untouched because the repositories handle them as outcomes.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from azure.core.exceptions import ServiceRequestError, ServiceResponseError
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosHttpResponseError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_fixed

from .errors import PermanentStoreError, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Retries after the first attempt.
TRANSIENT_RETRY_ATTEMPTS = 2
DEFAULT_BACKOFF_SECONDS = 1.0

# 408 timeout, 429 throttled, 449 retry-with, 5xx unavailable
TRANSIENT_STATUS_CODES = frozenset({408, 429, 449, 500, 502, 503, 504})


def translate_store_error(operation: Callable[..., T], *args, **kwargs) -> T:
    """Call ``operation`` and map Cosmos failures onto the store error taxonomy."""
    try:
        return operation(*args, **kwargs)
    except (CosmosResourceNotFoundError, CosmosResourceExistsError, CosmosAccessConditionFailedError):
        raise
    except CosmosHttpResponseError as e:
        if e.status_code in TRANSIENT_STATUS_CODES:
            raise TransientStoreError(f"Store call failed with status {e.status_code}") from e
        raise PermanentStoreError(f"Store call failed with status {e.status_code}") from e
    except (ServiceRequestError, ServiceResponseError) as e:
        raise TransientStoreError(f"Store connection failed: {e}") from e


class StoreCaller:
    """Runs store calls with bounded retry on transient failures."""

    def __init__(
        self,
        retry_attempts: int = TRANSIENT_RETRY_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
    ):
        self.retry_attempts = retry_attempts
        self.backoff_seconds = backoff_seconds

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(1 + self.retry_attempts),
            wait=wait_fixed(self.backoff_seconds),
            retry=retry_if_exception_type(TransientStoreError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def __call__(self, operation: Callable[..., T], *args, **kwargs) -> T:
        return self._retrying()(translate_store_error, operation, *args, **kwargs)
