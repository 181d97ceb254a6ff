# remindd/store/base.py
"""
Contract every record store backend implements.
"""
import time
from abc import ABC, abstractmethod

from remindd.core.schemas import UserSubscription


class RecordStore(ABC):
    """
    Durable persistence of UserSubscriptions keyed by user_id.

    Backends guarantee single-key atomicity only. Callers doing
    read-merge-write accept last-write-wins between processes.
    """

    @abstractmethod
    async def get(self, user_id: int) -> UserSubscription | None:
        """Returns the stored subscription, or None if the user has none."""

    @abstractmethod
    async def upsert(self, subscription: UserSubscription) -> None:
        """
        Creates or replaces the subscription.
        created_at is preserved from the stored copy; updated_at is stamped now.
        """

    @abstractmethod
    async def delete(self, user_id: int) -> None:
        """Removes the subscription. Missing users are a no-op."""

    @abstractmethod
    async def list_all(self) -> list[UserSubscription]:
        pass

    async def close(self) -> None:
        """Releases backend resources. Nothing to do by default."""

    @staticmethod
    def _now() -> int:
        return int(time.time())

    def _stamp(self, subscription: UserSubscription, existing: UserSubscription | None) -> UserSubscription:
        now = self._now()
        created_at = existing.created_at if existing and existing.created_at else now
        return subscription.model_copy(
            deep=True, update={"created_at": created_at, "updated_at": now}
        )
