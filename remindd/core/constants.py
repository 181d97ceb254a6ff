# remindd/core/constants.py
from enum import Enum


class DeliveryStatus(str, Enum):
    # What the push transport reported for a single send
    DELIVERED = "delivered"
    INVALID_TARGET = "invalid_target"
    THROTTLED = "throttled"
    ERROR = "error"


class DeliveryOutcome(str, Enum):
    # Transport statuses plus the outcomes decided before the transport is called
    DELIVERED = "delivered"
    INVALID_TARGET = "invalid_target"
    THROTTLED = "throttled"
    ERROR = "error"
    NO_TARGET = "no_target"
    SUPERSEDED = "superseded"
    REJECTED = "rejected"


class SubscriptionEvent(str, Enum):
    MINIAPP_ADDED = "miniapp_added"
    MINIAPP_REMOVED = "miniapp_removed"
    NOTIFICATIONS_ENABLED = "notifications_enabled"
    NOTIFICATIONS_DISABLED = "notifications_disabled"


class CooldownConfig:
    DEFAULT_SECONDS = 24 * 60 * 60
    UNKNOWN_NETWORK = "unknown"
    KEY_SEPARATOR = "@"


class NotificationLimits:
    # Bounds enforced before anything reaches the push transport
    TITLE_MAX_LEN = 32
    BODY_MAX_LEN = 128
    ID_MAX_LEN = 128
    URL_MAX_LEN = 1024
    # Prefix lengths used when building deterministic notification ids
    ID_RESOURCE_PREFIX = 10
    ID_NETWORK_PREFIX = 12


class NotificationText:
    TITLE = "Voting is available!"
    BODY = "The cooldown has expired for address {address} on {network}. Please vote again!"
    TEST_TITLE = "Test Notification"


class VoteLimits:
    ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"
    MAX_TIMESTAMP = 2**32 - 1
    NETWORK_MAX_LEN = 64


# Display names for network keys; unknown keys are shown capitalized
NETWORK_LABELS = {
    "mainnet": "Monad",
    "testnet": "Monad Testnet",
    "baseMainnet": "Base",
    "base": "Base",
}


class ServiceConfig:
    NAME = "remindd"
    USER_AGENT = "RemindDaemon/1.0"
