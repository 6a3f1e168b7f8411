"""Webhook pipeline — verify, persist, classify, dispatch."""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Callable

import structlog

from access_notifier.core.types import AccessEvent, AlertIntent, RecordKind, WebhookAck
from access_notifier.notify.broadcaster import AlertBroadcaster
from access_notifier.storage.events import EventStore
from access_notifier.storage.exceptions import PersistenceError
from access_notifier.webhook.classifier import EventClassifier
from access_notifier.webhook.exceptions import AuthenticationError, PayloadValidationError
from access_notifier.webhook.signature import verify_signature

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


def parse_event(raw: bytes) -> tuple[AccessEvent, dict[str, Any]]:
    """Decode *raw* into an AccessEvent plus the original JSON object.

    Only the envelope is checked: a JSON object with a non-empty string
    ``type``. Other fields are coerced by AccessEvent and never reject.

    Raises:
        PayloadValidationError: not a JSON object, or no non-empty ``type``.
    """
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise PayloadValidationError("Body is not valid JSON") from exc

    if not isinstance(data, dict):
        raise PayloadValidationError("Body is not a JSON object")

    event_type = data.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise PayloadValidationError("Event has no type")

    return AccessEvent.model_validate(data), data


class WebhookPipeline:
    """Handles one webhook delivery at a time, in strict order:

    1. Verify the signature over the exact body bytes (when a key is set).
    2. Parse and validate the payload.
    3. Append the raw event to the event log (best-effort).
    4. Classify; an alert is broadcast from a detached task.
    5. Acknowledge.

    Only steps 1 and 2 can reject a delivery. Everything after validation
    acknowledges success so the provider does not retry.
    """

    def __init__(
        self,
        classifier: EventClassifier,
        broadcaster: AlertBroadcaster,
        events: EventStore,
        signature_key: str = "",
        clock: Clock = time.monotonic,
    ) -> None:
        self._classifier = classifier
        self._broadcaster = broadcaster
        self._events = events
        self._signature_key = signature_key
        self._clock = clock
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending_dispatches(self) -> int:
        return len(self._tasks)

    async def handle(self, raw: bytes, signature: str | None) -> WebhookAck:
        """Run the pipeline and map rejections to an acknowledgement."""
        try:
            await self.process(raw, signature)
        except AuthenticationError:
            logger.warning("webhook_rejected", reason="invalid_signature")
            return WebhookAck.UNAUTHORIZED
        except PayloadValidationError as exc:
            logger.warning("webhook_rejected", reason="invalid_payload", detail=str(exc))
            return WebhookAck.INVALID
        return WebhookAck.ACCEPTED

    async def process(self, raw: bytes, signature: str | None) -> AlertIntent | None:
        """Run the pipeline, raising on authentication or validation failure.

        Returns the alert intent that was handed off for dispatch, if any.
        """
        if not verify_signature(raw, signature, self._signature_key):
            raise AuthenticationError("Invalid signature")

        event, data = parse_event(raw)
        received_at = self._clock()
        logger.info(
            "webhook_received",
            event_type=event.type,
            object_id=event.object_id,
        )

        try:
            await self._events.append({"kind": RecordKind.KISI.value, "event": data})
        except PersistenceError:
            logger.exception("event_persist_failed", event_type=event.type)

        intent = self._classifier.classify(event, received_at)
        if intent is not None:
            self._spawn_dispatch(intent)
        return intent

    # ── Dispatch ────────────────────────────────────────────────

    def _spawn_dispatch(self, intent: AlertIntent) -> None:
        task = asyncio.create_task(self._dispatch(intent))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, intent: AlertIntent) -> None:
        try:
            await self._broadcaster.broadcast(intent.message)
        except Exception:
            logger.exception(
                "alert_dispatch_error",
                event_type=intent.event_type,
                severity=intent.severity.name,
            )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight dispatch tasks to finish."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("dispatch_drain_timeout", pending=len(pending))
