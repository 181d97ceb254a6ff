# tests/integration/test_restart_recovery.py
#
# Two ReminderService instances share one file store, standing in for a
# process that is stopped and started again.
import pytest

from remindd.reminders.service import ReminderService
from remindd.store.file import FileRecordStore
from tests.helpers import (
    ADDRESS,
    APP_URL,
    COOLDOWN,
    NOW,
    OTHER_ADDRESS,
    FakeClock,
    FakePushClient,
    ManualSleep,
    settle,
)


@pytest.fixture
def path(tmp_path):
    return tmp_path / "subscriptions.json"


def _boot(path, clock, sleeper, client):
    return ReminderService(
        store=FileRecordStore(path),
        client=client,
        app_url=APP_URL,
        cooldown_seconds=COOLDOWN,
        clock=clock,
        sleep=sleeper,
    )


async def test_pending_cooldown_fires_after_restart(path):
    clock = FakeClock()
    first_client = FakePushClient()
    first = _boot(path, clock, ManualSleep(), first_client)
    await first.ledger.save_subscription(1, "token-1", "https://push.example")
    await first.ledger.record_vote(1, ADDRESS, "mainnet", NOW)
    await settle()
    await first.close()

    clock.advance(COOLDOWN - 60)
    sleeper = ManualSleep()
    client = FakePushClient()
    second = _boot(path, clock, sleeper, client)
    summary = await second.reconciler.restore_all()
    await settle()

    assert summary.restored == 1
    assert sleeper.delays == [60]

    sleeper.release()
    await settle()

    assert first_client.sent == []
    assert len(client.sent) == 1
    assert (await second.store.get(1)).cooldown_records == {}
    await second.close()


async def test_cooldown_that_expired_while_down_gets_one_reminder(path):
    clock = FakeClock()
    first = _boot(path, clock, ManualSleep(), FakePushClient())
    await first.ledger.save_subscription(1, "token-1", "https://push.example")
    await first.ledger.record_vote(1, ADDRESS, "mainnet", NOW)
    await first.ledger.record_vote(1, OTHER_ADDRESS, "mainnet", NOW + 1000)
    await settle()
    await first.close()

    clock.advance(COOLDOWN + 10)
    sleeper = ManualSleep()
    client = FakePushClient()
    second = _boot(path, clock, sleeper, client)
    summary = await second.reconciler.restore_all()
    await settle()

    assert summary.cleaned == 1
    assert summary.restored == 1
    assert len(client.sent) == 1
    stored = await second.store.get(1)
    assert [r.resource_key for r in stored.cooldown_records.values()] == [OTHER_ADDRESS]
    await second.close()
