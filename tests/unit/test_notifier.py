# tests/unit/test_notifier.py
from unittest.mock import AsyncMock, patch

from remindd.core.constants import DeliveryOutcome, DeliveryStatus, NotificationLimits, VoteLimits
from remindd.core.schemas import UserSubscription
from tests.helpers import ADDRESS, APP_URL, ENDPOINT, NOW, OTHER_ADDRESS, make_subscription, record_ending_at


async def _notify(service, record, user_id=1):
    return await service.notifier.notify_expired(
        user_id, record.resource_key, record.network, record.cooldown_end
    )


async def test_delivered_sends_message_and_removes_record(service, store, push_client):
    record = record_ending_at(NOW)
    await store.upsert(make_subscription(1, record))

    outcome = await _notify(service, record)

    assert outcome is DeliveryOutcome.DELIVERED
    assert len(push_client.sent) == 1
    sent = push_client.sent[0]
    assert sent["endpoint"] == ENDPOINT
    assert sent["token"] == "token-1"
    assert sent["target_url"] == APP_URL
    assert sent["title"] == "Voting is available!"
    assert "0xabcd...ef01" in sent["body"]
    assert "Monad" in sent["body"]
    assert sent["notification_id"] == f"cooldown-1-0xabcdef01-mainnet-{NOW}"
    assert (await store.get(1)).cooldown_records == {}


async def test_repeated_fire_uses_same_notification_id(service, store, push_client):
    record = record_ending_at(NOW)
    push_client.status = DeliveryStatus.ERROR
    await store.upsert(make_subscription(1, record))

    await _notify(service, record)
    await _notify(service, record)

    ids = {s["notification_id"] for s in push_client.sent}
    assert len(push_client.sent) == 2
    assert len(ids) == 1


async def test_no_subscription_is_no_target(service, push_client):
    outcome = await _notify(service, record_ending_at(NOW))

    assert outcome is DeliveryOutcome.NO_TARGET
    assert push_client.sent == []


async def test_revoked_token_is_no_target(service, store, push_client):
    record = record_ending_at(NOW)
    await store.upsert(UserSubscription(user_id=1, cooldown_records={record.key: record}))

    assert await _notify(service, record) is DeliveryOutcome.NO_TARGET
    assert push_client.sent == []


async def test_restarted_cooldown_skips_stale_fire(service, store, push_client):
    newer = record_ending_at(NOW + 1000)
    await store.upsert(make_subscription(1, newer))

    outcome = await service.notifier.notify_expired(1, ADDRESS, "mainnet", NOW)

    assert outcome is DeliveryOutcome.SUPERSEDED
    assert push_client.sent == []
    assert (await store.get(1)).get_record(ADDRESS, "mainnet") == newer


async def test_invalid_target_drops_subscription_and_all_timers(service, store, push_client):
    push_client.status = DeliveryStatus.INVALID_TARGET
    due = record_ending_at(NOW)
    later = [
        record_ending_at(NOW + 100, network="testnet"),
        record_ending_at(NOW + 200, address=OTHER_ADDRESS),
    ]
    await store.upsert(make_subscription(1, due, *later))
    for record in later:
        service.ledger.arm(1, record)
    assert service.timers.has_active(1)

    outcome = await _notify(service, due)

    assert outcome is DeliveryOutcome.INVALID_TARGET
    assert await store.get(1) is None
    assert not service.timers.has_active(1)


async def test_throttled_leaves_record_in_place(service, store, push_client):
    push_client.status = DeliveryStatus.THROTTLED
    record = record_ending_at(NOW)
    await store.upsert(make_subscription(1, record))

    outcome = await _notify(service, record)

    assert outcome is DeliveryOutcome.THROTTLED
    assert (await store.get(1)).get_record(ADDRESS, "mainnet") == record


async def test_transport_error_leaves_record_for_retry(service, store, push_client):
    push_client.status = DeliveryStatus.ERROR
    record = record_ending_at(NOW)
    await store.upsert(make_subscription(1, record))

    outcome = await _notify(service, record)

    assert outcome is DeliveryOutcome.ERROR
    assert (await store.get(1)).get_record(ADDRESS, "mainnet") == record


async def test_oversized_message_is_rejected_before_transport(service, store, push_client):
    record = record_ending_at(NOW)
    await store.upsert(make_subscription(1, record))
    service.notifier.app_url = APP_URL + "/" + "x" * 1100

    outcome = await _notify(service, record)

    assert outcome is DeliveryOutcome.REJECTED
    assert push_client.sent == []
    assert (await store.get(1)).get_record(ADDRESS, "mainnet") == record


async def test_longest_accepted_network_still_delivers(service, store, push_client):
    network = "n" * VoteLimits.NETWORK_MAX_LEN
    record = record_ending_at(NOW, network=network)
    await store.upsert(make_subscription(1, record))

    outcome = await _notify(service, record)

    assert outcome is DeliveryOutcome.DELIVERED
    body = push_client.sent[0]["body"]
    assert len(body) <= NotificationLimits.BODY_MAX_LEN
    assert body.endswith(". Please vote again!")


async def test_cleanup_failure_does_not_mask_delivery(service, store, push_client):
    record = record_ending_at(NOW)
    await store.upsert(make_subscription(1, record))

    with patch.object(service.ledger, "remove_vote_record", AsyncMock(side_effect=RuntimeError("db down"))):
        outcome = await _notify(service, record)

    assert outcome is DeliveryOutcome.DELIVERED
    assert len(push_client.sent) == 1


async def test_send_manual_uses_unique_ids(service, store, push_client):
    await store.upsert(make_subscription(1))

    first = await service.notifier.send_manual(1)
    second = await service.notifier.send_manual(1, title="Hi", body="Checking in")

    assert first is DeliveryOutcome.DELIVERED
    assert second is DeliveryOutcome.DELIVERED
    assert push_client.sent[0]["notification_id"] != push_client.sent[1]["notification_id"]
    assert push_client.sent[1]["title"] == "Hi"


async def test_send_manual_rejects_long_title(service, store, push_client):
    await store.upsert(make_subscription(1))

    outcome = await service.notifier.send_manual(1, title="t" * 33)

    assert outcome is DeliveryOutcome.REJECTED
    assert push_client.sent == []
