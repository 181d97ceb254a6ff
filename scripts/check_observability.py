"""
scripts/check_observability.py

Fires a test ERROR through the log webhook handler and a test Sentry event to
verify both alert channels are wired up, then prints what the reminder store
currently holds. Run this after deploying.

Usage:
    python scripts/check_observability.py
"""

import asyncio
import logging

import sentry_sdk

from remindd.core.config import settings
from remindd.core.logger import WebhookAlertHandler, setup_logging
from remindd.store.factory import build_record_store

setup_logging(webhook_url=settings.LOGS_WEBHOOK_URL, service_name="check")
log = logging.getLogger(__name__)

print("--- Observability Check ---")

# --- Log webhook ---
if not settings.LOGS_WEBHOOK_URL:
    print("[webhook] SKIP — LOGS_WEBHOOK_URL not set")
else:
    print("[webhook] Posting test alert...")
    handler = WebhookAlertHandler(settings.LOGS_WEBHOOK_URL, "check")
    record = logging.LogRecord(
        name=__name__,
        level=logging.ERROR,
        pathname=__file__,
        lineno=0,
        msg="Observability check: webhook is working",
        args=(),
        exc_info=None,
    )
    # Call the poster directly so the script waits for it instead of a daemon thread.
    handler._post(record)
    print("[webhook] Done — check the alerts channel")

# --- Sentry ---
if not settings.SENTRY_DSN:
    print("[sentry]  SKIP — SENTRY_DSN not set")
else:
    sentry_sdk.init(dsn=settings.SENTRY_DSN)
    print("[sentry]  Sending test message to Sentry...")
    sentry_sdk.capture_message("Observability check: Sentry is working", level="error")
    sentry_sdk.flush(timeout=5)
    print("[sentry]  Done — check your Sentry project's Issues tab")


async def _dump_store() -> None:
    store = build_record_store(settings)
    try:
        subscriptions = await store.list_all()
        pending = sum(len(s.cooldown_records) for s in subscriptions)
        print(f"[store]   {len(subscriptions)} subscriptions, {pending} tracked cooldowns")
    finally:
        await store.close()


# --- Record store ---
print(f"[store]   Backend: {settings.DATABASE_BACKEND}")
try:
    asyncio.run(_dump_store())
except Exception as e:
    print(f"[store]   FAILED — {e}")

print("--- Done ---")
