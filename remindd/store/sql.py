# remindd/store/sql.py
import logging

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine

from remindd.core.db import create_session_factory, create_tables, session_scope
from remindd.core.models import CooldownRow, SubscriptionRow
from remindd.core.schemas import CooldownRecord, UserSubscription
from remindd.store.base import RecordStore

log = logging.getLogger(__name__)


def _to_subscription(row: SubscriptionRow) -> UserSubscription:
    subscription = UserSubscription(
        user_id=row.user_id,
        delivery_token=row.delivery_token,
        delivery_endpoint=row.delivery_endpoint,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
    for c in row.cooldowns:
        subscription.put(
            CooldownRecord(
                resource_key=c.resource_key,
                network=c.network,
                start_time=c.start_time,
                cooldown_end=c.cooldown_end,
            )
        )
    return subscription


class SqlRecordStore(RecordStore):
    """Subscriptions and their cooldowns as two tables; one transaction per call."""

    def __init__(self, engine: AsyncEngine, create_schema: bool = True):
        self.engine = engine
        self.session_factory = create_session_factory(engine)
        self._create_schema = create_schema
        self._schema_ready = not create_schema

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        await create_tables(self.engine)
        self._schema_ready = True
        log.info("Database tables verified/created successfully.")

    async def get(self, user_id: int) -> UserSubscription | None:
        await self._ensure_schema()
        async with session_scope(self.session_factory) as db:
            row = await db.get(SubscriptionRow, user_id)
            return _to_subscription(row) if row else None

    async def upsert(self, subscription: UserSubscription) -> None:
        await self._ensure_schema()
        now = self._now()
        async with session_scope(self.session_factory) as db:
            row = await db.get(SubscriptionRow, subscription.user_id)
            if row is None:
                row = SubscriptionRow(user_id=subscription.user_id, created_at=now)
                db.add(row)
            row.delivery_token = subscription.delivery_token
            row.delivery_endpoint = subscription.delivery_endpoint
            row.updated_at = now

            # Replace the cooldown set; flush deletions first so the unique
            # constraint never sees the old and new row for one key together.
            row.cooldowns.clear()
            await db.flush()
            row.cooldowns.extend(
                CooldownRow(
                    resource_key=r.resource_key,
                    network=r.network,
                    start_time=r.start_time,
                    cooldown_end=r.cooldown_end,
                )
                for r in subscription.cooldown_records.values()
            )

    async def delete(self, user_id: int) -> None:
        await self._ensure_schema()
        async with session_scope(self.session_factory) as db:
            await db.execute(delete(CooldownRow).where(CooldownRow.user_id == user_id))
            await db.execute(delete(SubscriptionRow).where(SubscriptionRow.user_id == user_id))

    async def list_all(self) -> list[UserSubscription]:
        await self._ensure_schema()
        async with session_scope(self.session_factory) as db:
            result = await db.execute(select(SubscriptionRow).order_by(SubscriptionRow.user_id))
            subscriptions = []
            for row in result.scalars().all():
                try:
                    subscriptions.append(_to_subscription(row))
                except ValidationError:
                    log.error("Skipping malformed subscription row for user %s", row.user_id, exc_info=True)
            return subscriptions

    async def close(self) -> None:
        await self.engine.dispose()
