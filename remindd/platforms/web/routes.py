# remindd/platforms/web/routes.py
import hmac
import logging

from aiohttp import web
from pydantic import ValidationError

from remindd.core.constants import DeliveryOutcome, SubscriptionEvent
from remindd.core.schemas import ManualNotificationRequest, VoteEvent, WebhookEvent
from remindd.reminders.service import ReminderService

log = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("service", ReminderService)
API_KEY = web.AppKey("api_key", str)
DEV_MODE = web.AppKey("dev_mode", bool)

routes = web.RouteTableDef()


def _service(request: web.Request) -> ReminderService:
    return request.app[SERVICE_KEY]


def is_authorized(request: web.Request) -> bool:
    """Operational endpoints need the API key, except in development."""
    if request.app[DEV_MODE]:
        return True
    api_key = request.app[API_KEY]
    if not api_key:
        return False

    provided = request.headers.get("x-api-key")
    if not provided:
        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            provided = auth[len("Bearer "):]
    if not provided:
        return False
    # aiohttp decodes header bytes it cannot read as utf-8 into surrogate escapes
    return hmac.compare_digest(provided.encode("utf-8", "surrogateescape"), api_key.encode("utf-8"))


def _unauthorized() -> web.Response:
    return web.json_response(
        {"error": "Unauthorized. This endpoint requires API key authentication."}, status=401
    )


async def _read_json(request: web.Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise web.HTTPBadRequest(
            text='{"error": "Request body must be JSON"}', content_type="application/json"
        )
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text='{"error": "Request body must be a JSON object"}', content_type="application/json"
        )
    return body


def _validation_error(e: ValidationError) -> web.Response:
    details = [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()
    ]
    return web.json_response({"error": "Invalid request", "details": details}, status=400)


@routes.get("/health")
async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "active_timers": _service(request).timers.active_count()})


@routes.post("/api/webhook")
async def webhook(request: web.Request) -> web.Response:
    body = await _read_json(request)
    try:
        event = WebhookEvent.model_validate(body)
    except ValidationError as e:
        # 200 so the host does not keep retrying a payload we will never accept
        log.warning("Webhook payload rejected: %s", e)
        return web.json_response({"success": False, "error": "Invalid webhook payload"})

    ledger = _service(request).ledger
    details = event.notification_details
    log.info("Webhook event received: %s for user %s", event.event, event.user_id)

    if event.event in (SubscriptionEvent.MINIAPP_ADDED, SubscriptionEvent.NOTIFICATIONS_ENABLED):
        if details and details.token and details.url:
            await ledger.save_subscription(event.user_id, details.token, details.url)
        else:
            log.warning("%s event missing notification details for user %s", event.event, event.user_id)
    elif event.event in (SubscriptionEvent.MINIAPP_REMOVED, SubscriptionEvent.NOTIFICATIONS_DISABLED):
        await ledger.remove_subscription(event.user_id)
    else:
        log.warning("Unknown webhook event type: %s", event.event)

    return web.json_response({"success": True})


@routes.get("/api/webhook")
async def webhook_status(request: web.Request) -> web.Response:
    if not is_authorized(request):
        return _unauthorized()

    store = _service(request).store
    fid = request.query.get("fid")
    if fid is None:
        subscriptions = await store.list_all()
        return web.json_response(
            {"totalTokens": len(subscriptions), "fids": [s.user_id for s in subscriptions]}
        )

    try:
        user_id = int(fid)
    except ValueError:
        return web.json_response({"error": "Invalid FID parameter. Must be a number."}, status=400)

    subscription = await store.get(user_id)
    return web.json_response(
        {
            "hasToken": bool(subscription and subscription.has_delivery_target),
            "tokenData": {
                "fid": subscription.user_id,
                "cooldowns": [
                    {"address": r.resource_key, "network": r.network, "cooldownEnd": r.cooldown_end}
                    for r in subscription.cooldown_records.values()
                ],
            }
            if subscription
            else None,
        }
    )


@routes.get("/api/check-miniapp-status")
async def miniapp_status(request: web.Request) -> web.Response:
    """Public: tells the client whether a user is subscribed, nothing more."""
    fid = request.query.get("fid")
    if not fid:
        return web.json_response({"error": "fid parameter is required"}, status=400)
    try:
        user_id = int(fid)
    except ValueError:
        user_id = 0
    if user_id <= 0:
        return web.json_response({"error": "Invalid fid parameter"}, status=400)

    try:
        subscription = await _service(request).store.get(user_id)
    except Exception:
        log.error("Failed to check subscription status for user %s", user_id, exc_info=True)
        return web.json_response({"error": "Internal server error"}, status=500)
    return web.json_response({"hasToken": subscription is not None})


@routes.post("/api/votes")
async def record_vote(request: web.Request) -> web.Response:
    body = await _read_json(request)
    try:
        vote = VoteEvent.model_validate(body)
    except ValidationError as e:
        return _validation_error(e)

    try:
        record = await _service(request).ledger.record_vote(
            vote.user_id,
            vote.address,
            vote.network,
            vote.vote_time,
            vote.block_timestamp,
        )
    except Exception:
        log.error("Failed to record vote for user %s", vote.user_id, exc_info=True)
        return web.json_response({"error": "Internal server error"}, status=500)

    if record is None:
        return web.json_response({"success": True, "tracked": False})
    return web.json_response(
        {
            "success": True,
            "tracked": True,
            "cooldownEnd": record.cooldown_end,
            "timestampSource": "block" if vote.block_timestamp is not None else "approximate",
        }
    )


@routes.post("/api/reconcile")
async def reconcile(request: web.Request) -> web.Response:
    if not is_authorized(request):
        return _unauthorized()
    summary = await _service(request).reconciler.restore_all()
    return web.json_response(summary.model_dump())


@routes.post("/api/test-notification")
async def manual_notification(request: web.Request) -> web.Response:
    if not is_authorized(request):
        return _unauthorized()

    body = await _read_json(request)
    try:
        req = ManualNotificationRequest.model_validate(body)
    except ValidationError as e:
        return _validation_error(e)

    outcome = await _service(request).notifier.send_manual(req.user_id, req.title, req.body)
    status = {
        DeliveryOutcome.DELIVERED: 200,
        DeliveryOutcome.NO_TARGET: 404,
        DeliveryOutcome.REJECTED: 400,
        DeliveryOutcome.THROTTLED: 429,
    }.get(outcome, 502)
    return web.json_response({"fid": req.user_id, "result": outcome.value}, status=status)


def create_app(service: ReminderService, api_key: str | None = None, dev_mode: bool = False) -> web.Application:
    """
    Builds the web application around an already constructed service.
    The caller owns the service lifecycle (see platforms/web/main.py).
    """
    app = web.Application()
    app[SERVICE_KEY] = service
    app[API_KEY] = api_key or ""
    app[DEV_MODE] = dev_mode
    app.add_routes(routes)
    return app
