# remindd/platforms/web/main.py
import logging

import sentry_sdk
from aiohttp import web

from remindd.core.config import settings
from remindd.core.logger import setup_logging
from remindd.platforms.web.routes import SERVICE_KEY, create_app
from remindd.reminders.service import ReminderService

if settings.SENTRY_DSN:
    sentry_sdk.init(dsn=settings.SENTRY_DSN)

setup_logging(webhook_url=settings.LOGS_WEBHOOK_URL, service_name="remindd-web")
log = logging.getLogger(__name__)


async def _service_lifecycle(app: web.Application):
    service = app[SERVICE_KEY]
    log.info("-" * 40)
    log.info("Reminder service starting (backend=%s).", settings.DATABASE_BACKEND)
    log.info("-" * 40)
    try:
        await service.start(settings.RECONCILE_INTERVAL_MINUTES)
    except Exception:
        # Keep serving: votes still arm timers, and the next pass retries the scan.
        log.error("Boot reconciliation failed", exc_info=True)
    yield
    log.info("Reminder service shutting down.")
    await service.close()


def build_app() -> web.Application:
    service = ReminderService.from_settings(settings)
    app = create_app(
        service,
        api_key=settings.API_KEY,
        dev_mode=settings.ENVIRONMENT == "development",
    )
    app.cleanup_ctx.append(_service_lifecycle)
    return app


if __name__ == "__main__":
    web.run_app(build_app(), host=settings.WEB_HOST, port=settings.WEB_PORT)
