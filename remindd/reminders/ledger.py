# remindd/reminders/ledger.py
import asyncio
import logging
import weakref

from remindd.core.constants import CooldownConfig
from remindd.core.schemas import CooldownRecord, UserSubscription, normalize_network, normalize_resource_key
from remindd.reminders.timers import TimerRegistry
from remindd.store.base import RecordStore

log = logging.getLogger(__name__)


class VoteLedger:
    """
    Records cooldown-starting votes into a user's subscription and keeps
    timers armed for every cooldown that has not expired yet.

    The notifier is attached after construction (see ReminderService) because
    it calls back into remove_vote_record when a reminder is delivered.
    """

    def __init__(
        self,
        store: RecordStore,
        timers: TimerRegistry,
        cooldown_seconds: int = CooldownConfig.DEFAULT_SECONDS,
    ):
        self.store = store
        self.timers = timers
        self.cooldown_seconds = cooldown_seconds
        self.notifier = None
        # Serializes read-modify-write per user inside this process.
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def now(self) -> int:
        return self.timers.clock()

    def lock_for(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    # ── Subscription lifecycle ───────────────────────────────────────────────

    async def save_subscription(self, user_id: int, token: str, endpoint: str) -> None:
        """Stores the user's delivery capability, keeping any cooldowns already tracked."""
        async with self.lock_for(user_id):
            subscription = await self.store.get(user_id) or UserSubscription(user_id=user_id)
            subscription.delivery_token = token
            subscription.delivery_endpoint = endpoint
            await self.store.upsert(subscription)

        # Records that expired while notifications were off fire right away.
        records = list(subscription.cooldown_records.values())
        for record in records:
            self.arm(user_id, record)
        log.info("Subscription saved for user %s (%d tracked cooldowns).", user_id, len(records))

    async def remove_subscription(self, user_id: int) -> None:
        async with self.lock_for(user_id):
            await self.store.delete(user_id)
        self.timers.cancel_all(user_id)
        log.info("Subscription removed for user %s.", user_id)

    # ── Votes ────────────────────────────────────────────────────────────────

    async def record_vote(
        self,
        user_id: int,
        resource_key: str,
        network: str | None,
        event_time: int,
        authoritative_time: int | None = None,
    ) -> CooldownRecord | None:
        """
        Starts (or restarts) the cooldown for resource_key on network.

        Returns the stored record, or None when the user has no subscription and
        the vote was dropped. Store failures propagate to the caller.
        """
        start_time = authoritative_time if authoritative_time is not None else event_time
        resource_key = normalize_resource_key(resource_key)
        network = normalize_network(network)

        async with self.lock_for(user_id):
            subscription = await self.store.get(user_id)
            if subscription is None or not subscription.has_delivery_target:
                log.warning(
                    "No notification token for user %s; vote on %s (%s) not tracked.",
                    user_id,
                    resource_key,
                    network,
                )
                return None

            now = self.now()
            active, expired = subscription.partition(now)
            subscription.keep_only(active)

            record = CooldownRecord.start(resource_key, network, start_time, self.cooldown_seconds)
            subscription.put(record)
            await self.store.upsert(subscription)

        log.info(
            "Vote saved for user %s: %s (%s) start=%d end=%d, pruned %d expired.",
            user_id,
            resource_key,
            network,
            record.start_time,
            record.cooldown_end,
            len(expired),
        )

        # Timers may have been lost since the last write (e.g. a restart);
        # check before arming the new record so it does not mask that.
        rearm_others = not self.timers.has_active(user_id)
        self.arm(user_id, record)
        if rearm_others:
            for other in active:
                if other.key != record.key:
                    self.arm(user_id, other)
        return record

    async def remove_vote_record(self, user_id: int, resource_key: str, network: str) -> bool:
        """Deletes exactly one record once its reminder went out. Returns False if nothing matched."""
        async with self.lock_for(user_id):
            subscription = await self.store.get(user_id)
            if subscription is None:
                log.debug("remove_vote_record: no subscription for user %s.", user_id)
                return False
            if subscription.drop_record(resource_key, network) is None:
                log.debug(
                    "remove_vote_record: no record %s (%s) for user %s.", resource_key, network, user_id
                )
                return False
            await self.store.upsert(subscription)

        log.info("Removed cooldown record %s (%s) for user %s.", resource_key, network, user_id)
        return True

    # ── Timers ───────────────────────────────────────────────────────────────

    def arm(self, user_id: int, record: CooldownRecord) -> None:
        """Schedules the expiry reminder for record (fires now if it is already due)."""
        if self.notifier is None:
            raise RuntimeError("VoteLedger has no notifier attached.")

        notifier = self.notifier

        def on_fire():
            return notifier.notify_expired(
                user_id, record.resource_key, record.network, record.cooldown_end
            )

        self.timers.schedule(
            user_id, record.resource_key, record.network, record.cooldown_end, on_fire
        )
