# remindd/store/file.py
import asyncio
import json
import logging
import os
import pathlib

from pydantic import TypeAdapter, ValidationError

from remindd.core.schemas import UserSubscription
from remindd.store.base import RecordStore

log = logging.getLogger(__name__)

_SUBSCRIPTIONS = TypeAdapter(list[UserSubscription])


class FileRecordStore(RecordStore):
    """
    Keeps every subscription in a single JSON file.
    The file is read once into a cache; each mutation rewrites it atomically.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = pathlib.Path(path)
        self._cache: dict[int, UserSubscription] | None = None
        self._lock = asyncio.Lock()

    def _read(self) -> dict[int, UserSubscription]:
        if not self.path.exists():
            return {}
        subscriptions = {}
        for entry in json.loads(self.path.read_text(encoding="utf-8")):
            try:
                subscription = UserSubscription.model_validate(entry)
            except ValidationError:
                # One bad entry must not take every other user's reminders down with it.
                log.error("Skipping malformed subscription entry in %s: %r", self.path, entry, exc_info=True)
                continue
            subscriptions[subscription.user_id] = subscription
        return subscriptions

    def _write(self, subscriptions: list[UserSubscription]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_bytes(_SUBSCRIPTIONS.dump_json(subscriptions, indent=2))
        os.replace(tmp_path, self.path)

    async def _load(self) -> dict[int, UserSubscription]:
        if self._cache is None:
            self._cache = await asyncio.to_thread(self._read)
            log.info("Loaded %d subscriptions from %s.", len(self._cache), self.path)
        return self._cache

    async def _flush(self) -> None:
        await asyncio.to_thread(self._write, list(self._cache.values()))

    async def get(self, user_id: int) -> UserSubscription | None:
        async with self._lock:
            stored = (await self._load()).get(user_id)
        return stored.model_copy(deep=True) if stored else None

    async def upsert(self, subscription: UserSubscription) -> None:
        async with self._lock:
            cache = await self._load()
            previous = cache.get(subscription.user_id)
            cache[subscription.user_id] = self._stamp(subscription, previous)
            try:
                await self._flush()
            except Exception:
                # keep the cache in line with what is on disk
                if previous is None:
                    cache.pop(subscription.user_id, None)
                else:
                    cache[subscription.user_id] = previous
                raise

    async def delete(self, user_id: int) -> None:
        async with self._lock:
            cache = await self._load()
            removed = cache.pop(user_id, None)
            if removed is None:
                return
            try:
                await self._flush()
            except Exception:
                cache[user_id] = removed
                raise

    async def list_all(self) -> list[UserSubscription]:
        async with self._lock:
            cache = await self._load()
            return [s.model_copy(deep=True) for s in cache.values()]
