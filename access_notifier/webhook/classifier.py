"""Turns provider events into alert intents."""

from __future__ import annotations

from typing import Callable

import structlog

from access_notifier.core.types import (
    AccessEvent,
    AlertIntent,
    EventType,
    ObjectId,
    Severity,
)
from access_notifier.webhook.correlation import UnlockCorrelationTracker

# Dedicated structured logger for derived alerts.
alert_logger = structlog.get_logger("alert_log")

logger = structlog.get_logger(__name__)


# ── Name fallbacks ──────────────────────────────────────────────


def display_name(name: str | None, kind: str, ident: ObjectId | None) -> str:
    """Prefer the human-readable *name*, else ``"<kind> <ident>"``."""
    if name:
        return name
    return f"{kind} {ident if ident is not None else 'unknown'}"


def _door(event: AccessEvent) -> str:
    return display_name(event.object_name, "Lock", event.object_id)


def _reader(event: AccessEvent) -> str:
    return display_name(event.object_name, "Reader", event.object_id)


def _actor(event: AccessEvent) -> str:
    return display_name(event.actor_name, "ID", event.actor_id)


def _when(event: AccessEvent) -> str:
    return event.created_at or "unknown time"


# ── Classifier ──────────────────────────────────────────────────


class EventClassifier:
    """Maps one event to at most one AlertIntent.

    ``lock.unlock`` and ``lock.open`` also update the correlation tracker;
    every other type is a pure lookup. Unknown types produce no alert.
    """

    def __init__(
        self,
        tracker: UnlockCorrelationTracker,
        window_secs: float | None = None,
    ) -> None:
        self._tracker = tracker
        self._window_secs = tracker.window_secs if window_secs is None else window_secs
        self._handlers: dict[str, Callable[[AccessEvent, float], AlertIntent | None]] = {
            EventType.LOCK_UNLOCK: self._on_unlock,
            EventType.LOCK_UNLOCK_FAILED: self._on_unlock_failed,
            EventType.LOCK_FORCE_OPEN: self._on_force_open,
            EventType.READER_TAMPERED: self._on_tampered,
            EventType.LOCK_OPEN: self._on_open,
        }

    def classify(self, event: AccessEvent, received_at: float) -> AlertIntent | None:
        """Classify *event*, observed by this process at *received_at*."""
        handler = self._handlers.get(event.type)
        if handler is None:
            logger.debug("event_ignored", event_type=event.type)
            return None

        intent = handler(event, received_at)
        if intent is not None:
            alert_logger.info(
                "alert",
                severity=intent.severity.name,
                message=intent.message,
                event_type=intent.event_type,
                object_id=intent.object_id,
            )
        return intent

    # ── Handlers ────────────────────────────────────────────────

    def _on_unlock(self, event: AccessEvent, received_at: float) -> AlertIntent | None:
        if event.success is True and event.object_id is not None:
            self._tracker.record_unlock(event.object_id, received_at)
        return None

    def _on_unlock_failed(self, event: AccessEvent, received_at: float) -> AlertIntent:
        return self._intent(
            event,
            Severity.CRITICAL,
            f'Access Denied: {_actor(event)} attempted to open "{_door(event)}" '
            f"at {_when(event)}.",
        )

    def _on_force_open(self, event: AccessEvent, received_at: float) -> AlertIntent:
        return self._intent(
            event,
            Severity.CRITICAL,
            f'Forced Open detected on "{_door(event)}" at {_when(event)}.',
        )

    def _on_tampered(self, event: AccessEvent, received_at: float) -> AlertIntent:
        return self._intent(
            event,
            Severity.CRITICAL,
            f"Tamper Alert: {_reader(event)} at {_when(event)}.",
        )

    def _on_open(self, event: AccessEvent, received_at: float) -> AlertIntent | None:
        unexplained = True
        if event.object_id is not None:
            unexplained = self._tracker.check_and_consume(
                event.object_id, received_at, self._window_secs
            )
        if not unexplained:
            return None
        return self._intent(
            event,
            Severity.WARNING,
            f'Door "{_door(event)}" opened without badge at {_when(event)}.',
        )

    @staticmethod
    def _intent(event: AccessEvent, severity: Severity, message: str) -> AlertIntent:
        return AlertIntent(
            severity=severity,
            message=message,
            event_type=event.type,
            object_id=event.object_id,
        )
