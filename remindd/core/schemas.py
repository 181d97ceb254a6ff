# remindd/core/schemas.py
from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from remindd.core.constants import CooldownConfig, NotificationLimits, VoteLimits


def normalize_resource_key(resource_key: str) -> str:
    return resource_key.strip().lower()


def normalize_network(network: str | None) -> str:
    return network.strip() if network and network.strip() else CooldownConfig.UNKNOWN_NETWORK


def composite_key(resource_key: str, network: str | None) -> str:
    """Key of one cooldown inside a subscription: lowercased resource plus network."""
    return f"{normalize_resource_key(resource_key)}{CooldownConfig.KEY_SEPARATOR}{normalize_network(network)}"


class CooldownRecord(BaseModel):
    """One cooldown window for a (resource, network) pair."""

    resource_key: str
    network: str = CooldownConfig.UNKNOWN_NETWORK
    start_time: int
    cooldown_end: int

    @classmethod
    def start(
        cls, resource_key: str, network: str | None, start_time: int, cooldown_seconds: int
    ) -> "CooldownRecord":
        """The only way new records are built, so cooldown_end always derives from start_time."""
        return cls(
            resource_key=normalize_resource_key(resource_key),
            network=normalize_network(network),
            start_time=int(start_time),
            cooldown_end=int(start_time) + int(cooldown_seconds),
        )

    @model_validator(mode="after")
    def _check_window(self) -> "CooldownRecord":
        if self.cooldown_end < self.start_time:
            raise ValueError("cooldown_end must not precede start_time")
        return self

    @property
    def key(self) -> str:
        return composite_key(self.resource_key, self.network)

    def is_expired(self, now: int) -> bool:
        return self.cooldown_end <= now


class UserSubscription(BaseModel):
    """A user's delivery capability plus the cooldowns tracked for them."""

    user_id: int
    delivery_token: str | None = None
    delivery_endpoint: str | None = None
    cooldown_records: dict[str, CooldownRecord] = Field(default_factory=dict)
    created_at: int | None = None
    updated_at: int | None = None

    @property
    def has_delivery_target(self) -> bool:
        return bool(self.delivery_token and self.delivery_endpoint)

    def get_record(self, resource_key: str, network: str | None) -> CooldownRecord | None:
        return self.cooldown_records.get(composite_key(resource_key, network))

    def put(self, record: CooldownRecord) -> None:
        # last write wins per composite key
        self.cooldown_records[record.key] = record

    def drop_record(self, resource_key: str, network: str | None) -> CooldownRecord | None:
        return self.cooldown_records.pop(composite_key(resource_key, network), None)

    def partition(self, now: int) -> tuple[list[CooldownRecord], list[CooldownRecord]]:
        """Returns (active, expired) records relative to now."""
        active, expired = [], []
        for record in self.cooldown_records.values():
            (expired if record.is_expired(now) else active).append(record)
        return active, expired

    def keep_only(self, records: list[CooldownRecord]) -> None:
        self.cooldown_records = {r.key: r for r in records}


class PushNotification(BaseModel):
    """Outbound notification, validated against the transport's size limits."""

    model_config = ConfigDict(frozen=True)

    notification_id: str = Field(min_length=1, max_length=NotificationLimits.ID_MAX_LEN)
    title: str = Field(min_length=1, max_length=NotificationLimits.TITLE_MAX_LEN)
    body: str = Field(min_length=1, max_length=NotificationLimits.BODY_MAX_LEN)
    target_url: str = Field(min_length=1, max_length=NotificationLimits.URL_MAX_LEN)


class RestoreSummary(BaseModel):
    restored: int = 0
    cleaned: int = 0
    errors: int = 0


# ── Inbound request bodies ───────────────────────────────────────────────────


class VoteEvent(BaseModel):
    """Vote confirmation posted by the client after the on-chain transaction."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="fid", gt=0)
    address: str
    network: str | None = Field(default=None, max_length=VoteLimits.NETWORK_MAX_LEN)
    vote_time: int = Field(alias="voteTime", ge=0, le=VoteLimits.MAX_TIMESTAMP)
    block_timestamp: int | None = Field(
        default=None, alias="blockTimestamp", ge=0, le=VoteLimits.MAX_TIMESTAMP
    )

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not re.match(VoteLimits.ADDRESS_PATTERN, value):
            raise ValueError("address must be 0x followed by 40 hex characters")
        return value


class NotificationDetails(BaseModel):
    token: str | None = None
    url: str | None = Field(default=None, max_length=NotificationLimits.URL_MAX_LEN)


class WebhookEvent(BaseModel):
    """Subscription lifecycle event from the mini-app host."""

    model_config = ConfigDict(populate_by_name=True)

    event: str
    user_id: int = Field(alias="fid", gt=0)
    notification_details: NotificationDetails | None = Field(
        default=None, alias="notificationDetails"
    )


class ManualNotificationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="fid", gt=0)
    title: str | None = None
    body: str | None = None
