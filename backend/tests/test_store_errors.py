"""Tests for store error translation and HTTP mapping."""

import pytest
from azure.core.exceptions import ServiceResponseError
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosHttpResponseError,
    CosmosResourceNotFoundError,
)

from app.dependencies import http_error_for_store_failure
from app.repositories import (
    ConcurrencyConflictError,
    PermanentStoreError,
    StoreCaller,
    TransientStoreError,
    translate_store_error,
)


def raising(error):
    def operation():
        raise error

    return operation


@pytest.mark.parametrize("status_code", [408, 429, 449, 500, 502, 503, 504])
def test_availability_statuses_are_transient(status_code):
    with pytest.raises(TransientStoreError):
        translate_store_error(raising(CosmosHttpResponseError(status_code=status_code, message="x")))


@pytest.mark.parametrize("status_code", [400, 401, 403, 413])
def test_other_statuses_are_permanent(status_code):
    with pytest.raises(PermanentStoreError):
        translate_store_error(raising(CosmosHttpResponseError(status_code=status_code, message="x")))


def test_transport_errors_are_transient():
    with pytest.raises(TransientStoreError):
        translate_store_error(raising(ServiceResponseError("socket closed")))


@pytest.mark.parametrize(
    "error",
    [
        CosmosResourceNotFoundError(status_code=404, message="missing"),
        CosmosAccessConditionFailedError(status_code=412, message="stale"),
    ],
)
def test_outcome_errors_pass_through(error):
    with pytest.raises(type(error)):
        translate_store_error(raising(error))


def test_caller_returns_value_after_transient_failures():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise ServiceResponseError("timeout")
        return "ok"

    assert StoreCaller(backoff_seconds=0)(flaky) == "ok"
    assert len(calls) == 3


def test_caller_respects_retry_budget():
    calls = []

    def down():
        calls.append(1)
        raise CosmosHttpResponseError(status_code=503, message="unavailable")

    with pytest.raises(TransientStoreError):
        StoreCaller(retry_attempts=1, backoff_seconds=0)(down)
    assert len(calls) == 2


def test_transient_maps_to_503():
    assert http_error_for_store_failure(TransientStoreError("down")).status_code == 503
    assert http_error_for_store_failure(ConcurrencyConflictError("busy")).status_code == 503


def test_permanent_maps_to_500():
    error = http_error_for_store_failure(PermanentStoreError("bad"))
    assert error.status_code == 500
    assert error.detail == "Internal server error"
