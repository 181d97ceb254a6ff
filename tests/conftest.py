# tests/conftest.py
#
# Nothing here imports remindd.core.config, so no .env is needed to run the suite.
# Time is a FakeClock and timers sleep on a ManualSleep, so no test waits for real.
import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from remindd.core.db import Base
from remindd.reminders.service import ReminderService
from remindd.store.memory import MemoryRecordStore
from remindd.store.sql import SqlRecordStore
from tests.helpers import APP_URL, COOLDOWN, FakeClock, FakePushClient, ManualSleep


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper():
    return ManualSleep()


@pytest.fixture
def push_client():
    return FakePushClient()


@pytest.fixture
def store():
    return MemoryRecordStore()


@pytest.fixture
async def service(store, push_client, clock, sleeper):
    svc = ReminderService(
        store=store,
        client=push_client,
        app_url=APP_URL,
        cooldown_seconds=COOLDOWN,
        clock=clock,
        sleep=sleeper,
    )
    yield svc
    await svc.timers.shutdown()


# ── SQLite in-memory DB fixtures (integration tests) ─────────────────────────

@pytest.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sql_store(db_engine):
    return SqlRecordStore(db_engine, create_schema=False)
