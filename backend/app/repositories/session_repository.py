"""Repository for study-session history and per-user streak stats."""

from azure.cosmos import ContainerProxy
from azure.cosmos.exceptions import CosmosResourceNotFoundError

from app.models import UserStudyStats

from .retry import StoreCaller


class SessionHistoryRepository:
    """Writes session snapshots and reads/writes daily streak stats."""

    def __init__(
        self,
        sessions_container: ContainerProxy,
        users_container: ContainerProxy,
        caller: StoreCaller | None = None,
    ):
        self.sessions_container = sessions_container
        self.users_container = users_container
        self._call = caller or StoreCaller()

    def save_snapshot(self, document: dict) -> dict:
        """Upsert a session document.

        Documents carry absolute totals, so writing the same or a newer
        snapshot twice is harmless.
        """
        return self._call(self.sessions_container.upsert_item, body=document)

    def get_session(self, session_id: str, user_id: str) -> dict | None:
        try:
            return self._call(self.sessions_container.read_item, item=session_id, partition_key=user_id)
        except CosmosResourceNotFoundError:
            return None

    def get_user_stats(self, user_id: str) -> UserStudyStats:
        try:
            item = self._call(self.users_container.read_item, item=user_id, partition_key=user_id)
        except CosmosResourceNotFoundError:
            return UserStudyStats.empty(user_id)
        return UserStudyStats(**item)

    def save_user_stats(self, stats: UserStudyStats) -> UserStudyStats:
        item = self._call(self.users_container.upsert_item, body=stats.model_dump())
        return UserStudyStats(**item)
