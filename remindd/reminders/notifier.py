# remindd/reminders/notifier.py
import logging

from pydantic import ValidationError

from remindd.core.clients.push import PushClient
from remindd.core.constants import DeliveryOutcome, DeliveryStatus, NotificationText
from remindd.core.schemas import PushNotification, UserSubscription
from remindd.reminders import messages
from remindd.reminders.ledger import VoteLedger
from remindd.store.base import RecordStore

log = logging.getLogger(__name__)


class Notifier:
    """Sends the reminder for one expired cooldown and acts on what the transport says."""

    def __init__(self, store: RecordStore, ledger: VoteLedger, client: PushClient, app_url: str):
        self.store = store
        self.ledger = ledger
        self.client = client
        self.app_url = app_url

    async def notify_expired(
        self, user_id: int, resource_key: str, network: str, cooldown_end: int
    ) -> DeliveryOutcome:
        # Load fresh: the token may have changed or been revoked since scheduling.
        subscription = await self.store.get(user_id)
        if subscription is None or not subscription.has_delivery_target:
            log.info("No notification target for user %s; skipping %s (%s).", user_id, resource_key, network)
            return DeliveryOutcome.NO_TARGET

        current = subscription.get_record(resource_key, network)
        if current is not None and current.cooldown_end != cooldown_end:
            log.info(
                "Cooldown %s (%s) for user %s was restarted (end %d -> %d); skipping stale reminder.",
                resource_key,
                network,
                user_id,
                cooldown_end,
                current.cooldown_end,
            )
            return DeliveryOutcome.SUPERSEDED

        try:
            notification = PushNotification(
                notification_id=messages.cooldown_notification_id(user_id, resource_key, network, cooldown_end),
                title=messages.cooldown_title(),
                body=messages.cooldown_body(resource_key, network),
                target_url=self.app_url,
            )
        except ValidationError as e:
            log.error("Reminder for user %s (%s, %s) rejected: %s", user_id, resource_key, network, e)
            return DeliveryOutcome.REJECTED

        status = await self._deliver(subscription, notification)

        if status is DeliveryStatus.DELIVERED:
            log.info("Cooldown reminder sent to user %s for %s (%s).", user_id, resource_key, network)
            try:
                await self.ledger.remove_vote_record(user_id, resource_key, network)
            except Exception:
                # The user has been notified; a leftover record is pruned later.
                log.error(
                    "Failed to remove delivered record %s (%s) for user %s",
                    resource_key,
                    network,
                    user_id,
                    exc_info=True,
                )
        elif status is DeliveryStatus.INVALID_TARGET:
            await self._drop_dead_target(user_id)
        elif status is DeliveryStatus.THROTTLED:
            log.warning("Reminder for user %s was rate limited; leaving it for the next pass.", user_id)
        else:
            log.error("Reminder for user %s (%s, %s) failed; record kept for retry.", user_id, resource_key, network)

        return DeliveryOutcome(status.value)

    async def send_manual(self, user_id: int, title: str | None = None, body: str | None = None) -> DeliveryOutcome:
        """Ad-hoc notification for operators checking that a user's token works."""
        subscription = await self.store.get(user_id)
        if subscription is None or not subscription.has_delivery_target:
            return DeliveryOutcome.NO_TARGET

        try:
            notification = PushNotification(
                notification_id=messages.manual_notification_id(user_id),
                title=title or NotificationText.TEST_TITLE,
                body=body or "This is a test notification.",
                target_url=self.app_url,
            )
        except ValidationError as e:
            log.warning("Manual notification for user %s rejected: %s", user_id, e)
            return DeliveryOutcome.REJECTED

        status = await self._deliver(subscription, notification)
        if status is DeliveryStatus.INVALID_TARGET:
            await self._drop_dead_target(user_id)
        return DeliveryOutcome(status.value)

    async def _deliver(self, subscription: UserSubscription, notification: PushNotification) -> DeliveryStatus:
        return await self.client.send(
            subscription.delivery_endpoint,
            notification.notification_id,
            notification.title,
            notification.body,
            notification.target_url,
            subscription.delivery_token,
        )

    async def _drop_dead_target(self, user_id: int) -> None:
        log.info("Notification token for user %s is invalid; removing subscription.", user_id)
        try:
            await self.ledger.remove_subscription(user_id)
        except Exception:
            log.error("Failed to remove subscription for user %s", user_id, exc_info=True)
            # Still make sure nothing else fires against the dead token in this process.
            self.ledger.timers.cancel_all(user_id)
