# remindd/reminders/reconciler.py
import asyncio
import logging

from remindd.core.schemas import RestoreSummary, UserSubscription
from remindd.reminders.ledger import VoteLedger
from remindd.store.base import RecordStore

log = logging.getLogger(__name__)


class Reconciler:
    """
    Rebuilds timer state from the record store after it may have been lost
    (process start, serverless cold start, or a periodic pass).
    """

    def __init__(self, store: RecordStore, ledger: VoteLedger):
        self.store = store
        self.ledger = ledger
        self._loop_task: asyncio.Task | None = None

    async def restore_all(self) -> RestoreSummary:
        summary = RestoreSummary()
        subscriptions = await self.store.list_all()

        for subscription in subscriptions:
            try:
                restored, cleaned = await self._restore_user(subscription)
                summary.restored += restored
                summary.cleaned += cleaned
            except Exception:
                summary.errors += 1
                log.error("Failed to restore timers for user %s", subscription.user_id, exc_info=True)

        log.info(
            "Reconciliation complete: %d users, restored=%d cleaned=%d errors=%d.",
            len(subscriptions),
            summary.restored,
            summary.cleaned,
            summary.errors,
        )
        return summary

    async def _restore_user(self, subscription: UserSubscription) -> tuple[int, int]:
        user_id = subscription.user_id
        active, expired = subscription.partition(self.ledger.now())

        if expired:
            async with self.ledger.lock_for(user_id):
                # Re-read under the lock so a vote landing mid-scan is not overwritten.
                latest = await self.store.get(user_id)
                if latest is None:
                    return 0, 0
                active, expired = latest.partition(self.ledger.now())
                if expired:
                    latest.keep_only(active)
                    await self.store.upsert(latest)
            if expired:
                log.info("Pruned %d expired cooldown(s) for user %s.", len(expired), user_id)
                # Last chance for reminders whose timer died with a previous process.
                # The deterministic notification id makes a repeat harmless.
                if latest.has_delivery_target:
                    for record in expired:
                        self.ledger.arm(user_id, record)

        restored = 0
        if active and not self.ledger.timers.has_active(user_id):
            for record in active:
                self.ledger.arm(user_id, record)
            restored = len(active)
            log.info("Re-armed %d timer(s) for user %s.", restored, user_id)

        return restored, len(expired)

    def start_periodic(self, interval_minutes: float) -> None:
        if interval_minutes <= 0 or self._loop_task is not None:
            return
        self._loop_task = asyncio.create_task(self._run_loop(interval_minutes * 60))

    async def stop_periodic(self) -> None:
        if self._loop_task and not self._loop_task.done():
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
        self._loop_task = None

    async def _run_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.restore_all()
            except Exception:
                log.error("Error in reconciliation loop", exc_info=True)
