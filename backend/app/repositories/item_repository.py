"""Read-only repository for items owned by the content service."""

from azure.cosmos import ContainerProxy

from app.models import Item

from .retry import StoreCaller


class ItemNotFoundError(Exception):
    """Raised when an item is not found."""

    pass


class ItemRepository:
    """Repository for Item reads."""

    def __init__(self, container: ContainerProxy, caller: StoreCaller | None = None):
        self.container = container
        self._call = caller or StoreCaller()

    def get_by_id(self, item_id: str) -> Item:
        """Get an item by ID (items are partitioned by pool, so this fans out)."""
        query = "SELECT * FROM c WHERE c.id = @id"
        parameters = [{"name": "@id", "value": item_id}]

        items = self._call(
            lambda: list(
                self.container.query_items(
                    query=query,
                    parameters=parameters,
                    enable_cross_partition_query=True,
                )
            )
        )
        if not items:
            raise ItemNotFoundError(f"Item with ID {item_id} not found")
        return Item(**items[0])

    def list_by_pool(self, pool_id: str) -> list[Item]:
        """List all items in a pool."""
        query = "SELECT * FROM c WHERE c.poolId = @poolId"
        parameters = [{"name": "@poolId", "value": pool_id}]

        items = self._call(
            lambda: list(
                self.container.query_items(
                    query=query,
                    parameters=parameters,
                    partition_key=pool_id,
                )
            )
        )
        return [Item(**item) for item in items]
