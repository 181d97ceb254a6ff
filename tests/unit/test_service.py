# tests/unit/test_service.py
from unittest.mock import MagicMock

from remindd.reminders.service import ReminderService
from remindd.store.memory import MemoryRecordStore
from tests.helpers import NOW, make_subscription, record_ending_at


async def test_start_restores_timers_and_close_stops_everything(service, store):
    await store.upsert(make_subscription(1, record_ending_at(NOW + 100)))

    await service.start(reconcile_interval_minutes=5)

    assert service.timers.has_active(1)
    assert service.reconciler._loop_task is not None

    await service.close()

    assert service.reconciler._loop_task is None
    assert service.timers.active_count() == 0


async def test_periodic_pass_disabled_by_default(service):
    await service.start()

    assert service.reconciler._loop_task is None


async def test_stop_periodic_without_loop_is_a_no_op(service):
    await service.reconciler.stop_periodic()

    assert service.reconciler._loop_task is None


def test_from_settings_wires_configured_values():
    settings = MagicMock()
    settings.DATABASE_BACKEND = "memory"
    settings.PUSH_TIMEOUT_SECONDS = 3.0
    settings.APP_URL = "https://app.example"
    settings.COOLDOWN_SECONDS = 600

    svc = ReminderService.from_settings(settings)

    assert isinstance(svc.store, MemoryRecordStore)
    assert svc.ledger.cooldown_seconds == 600
    assert svc.notifier.app_url == "https://app.example"
    assert svc.ledger.notifier is svc.notifier
