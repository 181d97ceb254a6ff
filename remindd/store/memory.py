# remindd/store/memory.py
from remindd.core.schemas import UserSubscription
from remindd.store.base import RecordStore


class MemoryRecordStore(RecordStore):
    """Process-local store for development and tests. Nothing survives a restart."""

    def __init__(self):
        self._subscriptions: dict[int, UserSubscription] = {}

    async def get(self, user_id: int) -> UserSubscription | None:
        stored = self._subscriptions.get(user_id)
        return stored.model_copy(deep=True) if stored else None

    async def upsert(self, subscription: UserSubscription) -> None:
        existing = self._subscriptions.get(subscription.user_id)
        self._subscriptions[subscription.user_id] = self._stamp(subscription, existing)

    async def delete(self, user_id: int) -> None:
        self._subscriptions.pop(user_id, None)

    async def list_all(self) -> list[UserSubscription]:
        return [s.model_copy(deep=True) for s in self._subscriptions.values()]
