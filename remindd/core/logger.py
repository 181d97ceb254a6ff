# remindd/core/logger.py

import json
import logging
import sys
import threading
import traceback
import urllib.request

from remindd.core.constants import ServiceConfig


class WebhookAlertHandler(logging.Handler):
    """
    Fires an HTTP POST to a chat webhook on ERROR or CRITICAL log records.
    Runs in a daemon thread so it never blocks the event loop.
    Timers fire detached from any request, so this is where their failures surface.
    """

    def __init__(self, webhook_url: str, service_name: str):
        super().__init__(level=logging.ERROR)
        self.webhook_url = webhook_url
        self.service_name = service_name

    def emit(self, record: logging.LogRecord) -> None:
        threading.Thread(target=self._post, args=(record,), daemon=True).start()

    def build_payload(self, record: logging.LogRecord) -> dict:
        msg = record.getMessage()
        tb = None
        if record.exc_info and record.exc_info[0] is not None:
            tb = "".join(traceback.format_exception(*record.exc_info))

        description = f"**{msg}**"
        if tb:
            max_tb = 3900 - len(description)
            if len(tb) > max_tb:
                tb = "..." + tb[-max_tb:]
            description += f"\n```python\n{tb}\n```"

        color = 0xCC0000 if record.levelno >= logging.CRITICAL else 0xFF4500
        return {
            "embeds": [
                {
                    "title": f"[{self.service_name}] {record.levelname}: {record.name}"[:256],
                    "description": description[:4096],
                    "color": color,
                }
            ]
        }

    def _post(self, record: logging.LogRecord) -> None:
        try:
            data = json.dumps(self.build_payload(record)).encode("utf-8")
            req = urllib.request.Request(
                self.webhook_url,
                data=data,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": ServiceConfig.USER_AGENT,
                },
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=5):
                pass
        except Exception:
            self.handleError(record)  # prints to stderr; visible in container logs


def setup_logging(
    level=logging.INFO,
    webhook_url: str | None = None,
    service_name: str = ServiceConfig.NAME,
):
    """
    Sets up the central logging configuration for the service.
    Call this ONCE at the start of the entry point (e.g., platforms/web/main.py).
    """
    # Example: 2026-02-22 12:49:55 | INFO     | remindd.reminders.ledger | Vote saved
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # This prevents duplicate logs if setup_logging is accidentally called twice
    if not root_logger.handlers:
        root_logger.addHandler(console_handler)

    if webhook_url and not any(
        isinstance(h, WebhookAlertHandler) for h in root_logger.handlers
    ):
        root_logger.addHandler(WebhookAlertHandler(webhook_url, service_name))

    # Silence noisy third-party libraries
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    root_logger.info("Centralized logging initialized.")
    return root_logger
