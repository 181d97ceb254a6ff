# remindd/reminders/messages.py
import uuid

from remindd.core.constants import NETWORK_LABELS, NotificationLimits, NotificationText


def shorten_address(address: str) -> str:
    """0x1234567890abcdef... -> 0x1234...cdef; short values are returned as-is."""
    if len(address) > 10:
        return f"{address[:6]}...{address[-4:]}"
    return address


def network_label(network: str) -> str:
    label = NETWORK_LABELS.get(network)
    if label:
        return label
    return network[:1].upper() + network[1:]


def cooldown_notification_id(user_id: int, resource_key: str, network: str, cooldown_end: int) -> str:
    """
    Same inputs always give the same id, so a reminder fired twice for one
    cooldown is collapsed by the push endpoint instead of reaching the user twice.
    """
    return (
        f"cooldown-{user_id}"
        f"-{resource_key[:NotificationLimits.ID_RESOURCE_PREFIX]}"
        f"-{network[:NotificationLimits.ID_NETWORK_PREFIX]}"
        f"-{cooldown_end}"
    )


def manual_notification_id(user_id: int) -> str:
    return f"manual-{user_id}-{uuid.uuid4()}"


def cooldown_title() -> str:
    return NotificationText.TITLE


def cooldown_body(resource_key: str, network: str) -> str:
    address = shorten_address(resource_key)
    # The label gets whatever room the template leaves under the body limit
    room = NotificationLimits.BODY_MAX_LEN - len(NotificationText.BODY.format(address=address, network=""))
    return NotificationText.BODY.format(address=address, network=network_label(network)[: max(room, 0)])
