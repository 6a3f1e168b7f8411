"""Core module — config, types, logging."""

from access_notifier.core.config import Settings, get_settings, load_settings, reset_settings
from access_notifier.core.logging import setup_logging
from access_notifier.core.types import (
    AccessEvent,
    AlertIntent,
    BroadcastReport,
    EventType,
    Recipient,
    RecordKind,
    Severity,
    UnlockRecord,
    WebhookAck,
)

__all__ = [
    "AccessEvent",
    "AlertIntent",
    "BroadcastReport",
    "EventType",
    "Recipient",
    "RecordKind",
    "Settings",
    "Severity",
    "UnlockRecord",
    "WebhookAck",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
