# remindd/reminders/service.py
import asyncio
import logging

from remindd.core.clients.push import PushClient
from remindd.reminders.ledger import VoteLedger
from remindd.reminders.notifier import Notifier
from remindd.reminders.reconciler import Reconciler
from remindd.reminders.timers import Clock, Sleep, TimerRegistry, system_clock
from remindd.store.base import RecordStore
from remindd.store.factory import build_record_store

log = logging.getLogger(__name__)


class ReminderService:
    """
    Owns the process-wide timer registry and wires the ledger, notifier and
    reconciler around one record store. Build it once per process.
    """

    def __init__(
        self,
        store: RecordStore,
        client: PushClient,
        app_url: str,
        cooldown_seconds: int,
        clock: Clock = system_clock,
        sleep: Sleep = asyncio.sleep,
    ):
        self.store = store
        self.timers = TimerRegistry(clock=clock, sleep=sleep)
        self.ledger = VoteLedger(store, self.timers, cooldown_seconds=cooldown_seconds)
        self.notifier = Notifier(store, self.ledger, client, app_url)
        self.ledger.notifier = self.notifier
        self.reconciler = Reconciler(store, self.ledger)

    @classmethod
    def from_settings(cls, settings) -> "ReminderService":
        return cls(
            store=build_record_store(settings),
            client=PushClient(timeout_seconds=settings.PUSH_TIMEOUT_SECONDS),
            app_url=settings.APP_URL,
            cooldown_seconds=settings.COOLDOWN_SECONDS,
        )

    async def start(self, reconcile_interval_minutes: float = 0.0) -> None:
        """Restores timers from the store, then starts the periodic pass if configured."""
        summary = await self.reconciler.restore_all()
        log.info(
            "Boot reconciliation: restored=%d cleaned=%d errors=%d.",
            summary.restored,
            summary.cleaned,
            summary.errors,
        )
        self.reconciler.start_periodic(reconcile_interval_minutes)

    async def close(self) -> None:
        await self.reconciler.stop_periodic()
        await self.timers.shutdown()
        await self.store.close()
