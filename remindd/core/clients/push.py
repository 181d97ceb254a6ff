# remindd/core/clients/push.py
import logging

import aiohttp

from remindd.core.constants import DeliveryStatus, ServiceConfig

log = logging.getLogger(__name__)


class PushClient:
    """
    Async client for the mini-app push notification endpoint.
    Every outcome is folded into a DeliveryStatus; send() never raises.
    """

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def send(
        self,
        endpoint: str,
        notification_id: str,
        title: str,
        body: str,
        target_url: str,
        token: str,
    ) -> DeliveryStatus:
        payload = {
            "notificationId": notification_id,
            "title": title,
            "body": body,
            "targetUrl": target_url,
            "tokens": [token],
        }
        headers = {"Content-Type": "application/json", "User-Agent": ServiceConfig.USER_AGENT}

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(endpoint, json=payload, headers=headers) as response:
                    if response.status != 200:
                        log.error(
                            "Push endpoint error for %s: %s - %s",
                            notification_id,
                            response.status,
                            await response.text(),
                        )
                        return DeliveryStatus.ERROR
                    data = await response.json(content_type=None)
        except Exception as e:
            log.error("Exception while sending push notification %s", notification_id, exc_info=e)
            return DeliveryStatus.ERROR

        return self._interpret(data, token, notification_id)

    @staticmethod
    def _interpret(data, token: str, notification_id: str) -> DeliveryStatus:
        """Maps the endpoint's per-token result lists onto a single status."""
        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(result, dict):
            log.error("Malformed push response for %s: %r", notification_id, data)
            return DeliveryStatus.ERROR

        if token in (result.get("invalidTokens") or []):
            return DeliveryStatus.INVALID_TARGET
        if token in (result.get("rateLimitedTokens") or []):
            return DeliveryStatus.THROTTLED
        if token in (result.get("successfulTokens") or []):
            return DeliveryStatus.DELIVERED

        log.error("Push response for %s did not mention the token: %r", notification_id, result)
        return DeliveryStatus.ERROR
