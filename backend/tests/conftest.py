"""Pytest configuration and fixtures."""

import copy
import os
import threading
import uuid
from types import SimpleNamespace

import pytest
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

# Ensure auth is disabled during tests by default
os.environ.setdefault("AUTH_ENABLED", "false")


class FakeContainer:
    """In-memory stand-in for a Cosmos DB ContainerProxy.

    Enforces ``_etag`` preconditions on replace and raises the real
    azure.cosmos exceptions. Queries match documents whose fields equal the
    query parameters (``@userId`` matches ``doc["userId"]``).
    """

    def __init__(self, partition_key: str = "userId"):
        self.partition_key = partition_key
        self.docs: dict[tuple[str, str], dict] = {}
        self.failures: dict[str, list[Exception]] = {}
        # Raised after the write is committed (the response is lost)
        self.lost_responses: dict[str, list[Exception]] = {}
        self.calls: dict[str, int] = {}
        # Called inside replace_item before the etag check (to inject races)
        self.before_replace = None
        self._lock = threading.RLock()

    def fail_next(self, operation: str, *errors: Exception) -> None:
        self.failures.setdefault(operation, []).extend(errors)

    def lose_next_response(self, operation: str, *errors: Exception) -> None:
        self.lost_responses.setdefault(operation, []).extend(errors)

    def _committed(self, operation: str, doc: dict) -> dict:
        pending = self.lost_responses.get(operation)
        if pending:
            raise pending.pop(0)
        return doc

    def _enter(self, operation: str) -> None:
        self.calls[operation] = self.calls.get(operation, 0) + 1
        pending = self.failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _stored(self, body: dict) -> dict:
        doc = copy.deepcopy(body)
        doc["_etag"] = str(uuid.uuid4())
        self.docs[(doc[self.partition_key], doc["id"])] = doc
        return copy.deepcopy(doc)

    def read_item(self, item, partition_key):
        with self._lock:
            self._enter("read_item")
            doc = self.docs.get((partition_key, item))
            if doc is None:
                raise CosmosResourceNotFoundError(status_code=404, message=f"{item} not found")
            return copy.deepcopy(doc)

    def create_item(self, body):
        with self._lock:
            self._enter("create_item")
            if (body[self.partition_key], body["id"]) in self.docs:
                raise CosmosResourceExistsError(status_code=409, message=f"{body['id']} exists")
            return self._stored(body)

    def upsert_item(self, body):
        with self._lock:
            self._enter("upsert_item")
            return self._stored(body)

    def replace_item(self, item, body, etag=None, match_condition=None):
        if self.before_replace is not None:
            hook, self.before_replace = self.before_replace, None
            hook()
        with self._lock:
            self._enter("replace_item")
            key = (body[self.partition_key], item)
            current = self.docs.get(key)
            if current is None:
                raise CosmosResourceNotFoundError(status_code=404, message=f"{item} not found")
            if match_condition is not None and current["_etag"] != etag:
                raise CosmosAccessConditionFailedError(status_code=412, message="Precondition failed")
            return self._committed("replace_item", self._stored(body))

    def query_items(self, query, parameters=None, partition_key=None, enable_cross_partition_query=None):
        with self._lock:
            self._enter("query_items")
            wanted = {p["name"].lstrip("@"): p["value"] for p in (parameters or [])}
            results = []
            for (pk, _), doc in self.docs.items():
                if partition_key is not None and pk != partition_key:
                    continue
                if all(doc.get(field) == value for field, value in wanted.items()):
                    results.append(copy.deepcopy(doc))
            return iter(results)


class FakeStore:
    """Stand-in for app.db.CosmosStore backed by FakeContainers."""

    def __init__(self):
        self.settings = SimpleNamespace(retry_backoff_seconds=0)
        self.items = FakeContainer(partition_key="poolId")
        self.progress = FakeContainer()
        self.sessions = FakeContainer()
        self.users = FakeContainer()
        self.is_open = True

    def items_container(self):
        return self.items

    def progress_container(self):
        return self.progress

    def sessions_container(self):
        return self.sessions

    def users_container(self):
        return self.users

    def add_item(self, item_id: str, pool_id: str = "pool-1", front: str = "Hola", translation: str = "Hello"):
        self.items.docs[(pool_id, item_id)] = {
            "id": item_id,
            "poolId": pool_id,
            "front": front,
            "translation": translation,
            "_etag": "seed",
        }


@pytest.fixture
def fake_container():
    return FakeContainer()


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def client(fake_store):
    """Test client wired to a FakeStore (the lifespan is not run)."""
    from fastapi.testclient import TestClient

    from app.main import app
    from app.sessions import SessionRegistry

    app.state.store = fake_store
    app.state.sessions = SessionRegistry()
    yield TestClient(app)
    del app.state.store
    del app.state.sessions


@pytest.fixture
def no_wait_caller():
    from app.repositories import StoreCaller

    return StoreCaller(backoff_seconds=0)


@pytest.fixture
def auth_disabled_env(monkeypatch):
    """Fixture that ensures AUTH_ENABLED is false."""
    monkeypatch.setenv("AUTH_ENABLED", "false")


@pytest.fixture
def auth_enabled_env(monkeypatch):
    """Fixture that enables auth with the gateway principal header."""
    monkeypatch.setenv("AUTH_ENABLED", "true")
    monkeypatch.setenv("AUTH_PRINCIPAL_HEADER", "X-MS-CLIENT-PRINCIPAL-ID")
