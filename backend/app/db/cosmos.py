"""
Cosmos DB store handle and connection management.

Authentication modes:
1. Azure Managed Identity (production): Uses DefaultAzureCredential for passwordless auth
2. Azure CLI credential (local dev with Azure): Uses your `az login` session
3. Cosmos DB Emulator (local dev): Uses emulator key for local development

The authentication mode is automatically selected based on environment:
- If COSMOS_EMULATOR=true, uses emulator with default key
- Otherwise, uses DefaultAzureCredential (works with Managed Identity in Azure,
  Azure CLI locally, or other credential providers)

The application opens one CosmosStore at startup and closes it at shutdown
(see app.main.lifespan). Repositories receive containers from that handle
through FastAPI dependencies instead of a module-level client.
"""

import os
import logging
from functools import lru_cache
from azure.cosmos import CosmosClient, DatabaseProxy, ContainerProxy
from azure.core.exceptions import AzureError
from azure.identity import DefaultAzureCredential

logger = logging.getLogger(__name__)

# Cosmos DB Emulator well-known key (public, not a secret)
# https://learn.microsoft.com/en-us/azure/cosmos-db/emulator#authentication
EMULATOR_KEY = "C2y6yDjf5/R+ob0N8A7Cgv30VRDJIWEHLM+4QDU5DE2nQ9nDuVTqobD4b8mGGyPMbIZnqyMsEcaGQy67XIw/Jw=="
EMULATOR_ENDPOINT = "https://localhost:8081"


class CosmosDBSettings:
    """Settings for Cosmos DB connection."""

    def __init__(self):
        self.endpoint = os.getenv("COSMOS_ENDPOINT", "")
        self.database_name = os.getenv("COSMOS_DB_NAME", "wordloop")
        self.items_container = os.getenv("COSMOS_ITEMS_CONTAINER", "items")
        self.progress_container = os.getenv("COSMOS_PROGRESS_CONTAINER", "progress")
        self.sessions_container = os.getenv("COSMOS_SESSIONS_CONTAINER", "sessions")
        self.users_container = os.getenv("COSMOS_USERS_CONTAINER", "userStats")
        # Fixed wait between retries of transient store failures
        self.retry_backoff_seconds = float(os.getenv("COSMOS_RETRY_BACKOFF_SECONDS", "1.0"))
        # Emulator mode for local development
        self.use_emulator = os.getenv("COSMOS_EMULATOR", "false").lower() == "true"

    def is_configured(self) -> bool:
        """Check if Cosmos DB is configured."""
        if self.use_emulator:
            return True  # Emulator always uses well-known endpoint
        return bool(self.endpoint)


@lru_cache()
def get_settings() -> CosmosDBSettings:
    """Get cached Cosmos DB settings."""
    return CosmosDBSettings()


class StoreNotOpenError(RuntimeError):
    """Raised when a container is requested from a store that is not open."""


class CosmosStore:
    """Explicit handle on the Cosmos DB account used by the application."""

    def __init__(self, settings: CosmosDBSettings | None = None):
        self.settings = settings or get_settings()
        self._client: CosmosClient | None = None
        self._database: DatabaseProxy | None = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def open(self) -> None:
        """
        Create the Cosmos DB client.

        Uses DefaultAzureCredential for authentication, which automatically tries:
        1. Environment credentials (AZURE_CLIENT_ID, etc.)
        2. Managed Identity (in Azure)
        3. Azure CLI credential (local dev)
        4. Other credential providers in the chain

        For local development with the emulator, set COSMOS_EMULATOR=true.
        """
        if self._client is not None:
            return

        if not self.settings.is_configured():
            raise RuntimeError(
                "Cosmos DB is not configured. "
                "Set COSMOS_ENDPOINT environment variable, or COSMOS_EMULATOR=true for local emulator."
            )

        if self.settings.use_emulator:
            # Use emulator with well-known key (not a real secret)
            logger.info("Using Cosmos DB Emulator at %s", EMULATOR_ENDPOINT)
            client = CosmosClient(
                EMULATOR_ENDPOINT,
                credential=EMULATOR_KEY,
                connection_verify=False  # Emulator uses self-signed cert
            )
        else:
            logger.info("Using DefaultAzureCredential for Cosmos DB at %s", self.settings.endpoint)
            credential = DefaultAzureCredential()
            client = CosmosClient(self.settings.endpoint, credential=credential)

        self._client = client
        self._database = client.get_database_client(self.settings.database_name)

    def close(self) -> None:
        """Release the client; the store can be opened again afterwards."""
        if self._client is None:
            return
        # CosmosClient manages its own connection pool; close it when supported
        close = getattr(self._client, "close", None)
        if callable(close):
            close()
        self._client = None
        self._database = None
        logger.info("Cosmos DB store closed")

    @property
    def database(self) -> DatabaseProxy:
        if self._database is None:
            raise StoreNotOpenError("Cosmos DB store is not open")
        return self._database

    def container(self, container_name: str) -> ContainerProxy:
        """Get a container proxy by name."""
        return self.database.get_container_client(container_name)

    def items_container(self) -> ContainerProxy:
        return self.container(self.settings.items_container)

    def progress_container(self) -> ContainerProxy:
        return self.container(self.settings.progress_container)

    def sessions_container(self) -> ContainerProxy:
        return self.container(self.settings.sessions_container)

    def users_container(self) -> ContainerProxy:
        return self.container(self.settings.users_container)

    def verify(self) -> bool:
        """Verify the Cosmos DB connection is working."""
        if not self.is_open:
            return False
        try:
            self.database.read()
            return True
        except AzureError as e:
            logger.warning("Cosmos DB verification failed: %s", e)
            return False
