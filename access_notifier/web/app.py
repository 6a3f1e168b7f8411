"""aiohttp application — webhook endpoint, dashboard, lock controls.

Exposes:
- ``POST <webhook_path>``      → provider webhook (signature checked, never Basic auth)
- ``GET /``                    → recipients dashboard
- ``GET /events?q=``           → event log with search
- ``POST /recipients/add``     → add recipient
- ``POST /recipients/delete``  → remove recipient by phone
- ``POST /locks/{open,unlock,lock}`` → remote lock actions
- ``POST /lockdown``           → lock down all main doors and notify
- ``GET /api/events``, ``GET /api/recipients`` → JSON views
- ``GET /healthz``             → liveness probe
"""

from __future__ import annotations

import base64
import binascii
import datetime
import hmac
from typing import Any

import structlog
from aiohttp import web

from access_notifier.core.config import Settings
from access_notifier.core.types import RecordKind, WebhookAck
from access_notifier.kisi.client import KisiLockClient, LockAction
from access_notifier.kisi.exceptions import LockControlError
from access_notifier.notify.broadcaster import AlertBroadcaster
from access_notifier.storage.events import EventStore
from access_notifier.storage.exceptions import PersistenceError
from access_notifier.storage.recipients import RecipientDirectory
from access_notifier.web.pages import render_dashboard, render_events
from access_notifier.webhook.pipeline import WebhookPipeline

logger = structlog.get_logger(__name__)

_ACK_RESPONSES: dict[WebhookAck, tuple[int, str]] = {
    WebhookAck.ACCEPTED: (200, "OK"),
    WebhookAck.UNAUTHORIZED: (401, "Invalid signature"),
    WebhookAck.INVALID: (400, "Invalid payload"),
}

# Form action → provider action. "open" is a momentary unlock.
_LOCK_ROUTES: dict[str, LockAction] = {
    "open": LockAction.UNLOCK,
    "unlock": LockAction.UNLOCK,
    "lock": LockAction.LOCK,
}


def _check_basic_auth(request: web.Request, username: str, password: str) -> bool:
    """Validate HTTP Basic Auth credentials."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Basic "):
        return False
    try:
        decoded = base64.b64decode(auth_header[6:]).decode("utf-8")
        req_user, req_pass = decoded.split(":", 1)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return False
    user_ok = hmac.compare_digest(req_user.encode(), username.encode())
    pass_ok = hmac.compare_digest(req_pass.encode(), password.encode())
    return user_ok and pass_ok


@web.middleware
async def _auth_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Require Basic Auth on dashboard routes when credentials are configured."""
    public_paths = request.app["public_paths"]
    username = request.app.get("auth_username")
    password = request.app.get("auth_password")
    if username and password and request.path not in public_paths:
        if not _check_basic_auth(request, username, password):
            return web.Response(
                status=401,
                text="Unauthorized",
                headers={"WWW-Authenticate": 'Basic realm="Access Notifier"'},
            )
    return await handler(request)


def _utc_now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


async def _record(app: web.Application, record: dict[str, Any]) -> None:
    events: EventStore = app["events"]
    try:
        await events.append(record)
    except PersistenceError:
        logger.exception("event_persist_failed", kind=record.get("kind"))


# ── Webhook ─────────────────────────────────────────────────────


async def _handle_webhook(request: web.Request) -> web.Response:
    pipeline: WebhookPipeline = request.app["pipeline"]
    raw = await request.read()
    signature = request.headers.get(request.app["signature_header"], "")
    ack = await pipeline.handle(raw, signature)
    status, text = _ACK_RESPONSES[ack]
    return web.Response(status=status, text=text)


# ── Dashboard ───────────────────────────────────────────────────


async def _handle_index(request: web.Request) -> web.Response:
    recipients: RecipientDirectory = request.app["recipients"]
    lock_client: KisiLockClient = request.app["lock_client"]
    html = render_dashboard(await recipients.list_all(), lock_client.configured)
    return web.Response(text=html, content_type="text/html")


async def _handle_events(request: web.Request) -> web.Response:
    events: EventStore = request.app["events"]
    query = request.query.get("q", "")
    records = await events.search(query)
    return web.Response(text=render_events(records, query), content_type="text/html")


async def _handle_recipient_add(request: web.Request) -> web.Response:
    recipients: RecipientDirectory = request.app["recipients"]
    form = await request.post()
    name = str(form.get("name", "")).strip()
    phone = str(form.get("phone", "")).strip()
    if name and phone:
        await recipients.add(name, phone)
    raise web.HTTPFound("/")


async def _handle_recipient_delete(request: web.Request) -> web.Response:
    recipients: RecipientDirectory = request.app["recipients"]
    form = await request.post()
    phone = str(form.get("phone", "")).strip()
    if phone:
        await recipients.remove(phone)
    raise web.HTTPFound("/")


# ── Lock control ────────────────────────────────────────────────


async def _handle_lock_action(request: web.Request) -> web.Response:
    lock_client: KisiLockClient = request.app["lock_client"]
    route_action = request.match_info["action"]
    action = _LOCK_ROUTES.get(route_action)
    if action is None:
        raise web.HTTPNotFound()

    form = await request.post()
    lock_id = str(form.get("lockId", "")).strip()
    if not lock_client.configured or not lock_id:
        raise web.HTTPFound("/")

    try:
        await lock_client.perform(lock_id, action)
    except LockControlError:
        logger.exception("lock_action_failed", lock_id=lock_id, action=route_action)
        return web.Response(status=500, text=f"Failed to {route_action} door")

    await _record(
        request.app,
        {"kind": RecordKind.ACTION.value, "action": route_action, "lock_id": lock_id},
    )
    raise web.HTTPFound("/")


async def _handle_lockdown(request: web.Request) -> web.Response:
    lock_client: KisiLockClient = request.app["lock_client"]
    broadcaster: AlertBroadcaster = request.app["broadcaster"]
    if not lock_client.configured:
        logger.error("lockdown_unconfigured")
        return web.Response(status=500, text="Server misconfiguration")
    if not lock_client.main_door_ids:
        logger.error("lockdown_no_main_doors")
        return web.Response(status=500, text="Server misconfiguration")

    try:
        doors = await lock_client.lockdown_main_doors()
    except LockControlError:
        logger.exception("lockdown_failed")
        return web.Response(status=500, text="Failed to lockdown")

    logger.warning("lockdown_activated", doors=[str(d) for d in doors])
    await broadcaster.broadcast(f"All main doors lockdown activated at {_utc_now_iso()}.")
    await _record(request.app, {"kind": RecordKind.ACTION.value, "action": "lockdown"})
    raise web.HTTPFound("/")


# ── JSON views ──────────────────────────────────────────────────


async def _handle_api_events(request: web.Request) -> web.Response:
    events: EventStore = request.app["events"]
    records = await events.search(request.query.get("q", ""))
    return web.json_response(records)


async def _handle_api_recipients(request: web.Request) -> web.Response:
    recipients: RecipientDirectory = request.app["recipients"]
    return web.json_response([r.model_dump() for r in await recipients.list_all()])


async def _handle_health(request: web.Request) -> web.Response:
    return web.Response(text="ok")


def create_app(
    settings: Settings,
    pipeline: WebhookPipeline,
    recipients: RecipientDirectory,
    events: EventStore,
    broadcaster: AlertBroadcaster,
    lock_client: KisiLockClient,
) -> web.Application:
    """Create the aiohttp web application."""
    webhook_path = settings.server.webhook_path

    app = web.Application(middlewares=[_auth_middleware])
    app["pipeline"] = pipeline
    app["recipients"] = recipients
    app["events"] = events
    app["broadcaster"] = broadcaster
    app["lock_client"] = lock_client
    app["signature_header"] = settings.server.signature_header
    app["auth_username"] = settings.dashboard.username
    app["auth_password"] = settings.dashboard.password.get_secret_value()
    app["public_paths"] = frozenset({webhook_path, "/healthz"})

    app.router.add_post(webhook_path, _handle_webhook)
    app.router.add_get("/", _handle_index)
    app.router.add_get("/events", _handle_events)
    app.router.add_post("/recipients/add", _handle_recipient_add)
    app.router.add_post("/recipients/delete", _handle_recipient_delete)
    app.router.add_post("/locks/{action}", _handle_lock_action)
    app.router.add_post("/lockdown", _handle_lockdown)
    app.router.add_get("/api/events", _handle_api_events)
    app.router.add_get("/api/recipients", _handle_api_recipients)
    app.router.add_get("/healthz", _handle_health)
    return app
