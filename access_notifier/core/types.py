"""Domain types for access-control events, alerts and recipients."""

from __future__ import annotations

import json
from enum import IntEnum, StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Lock / reader identifiers arrive as ints from the provider but may be strings.
ObjectId = int | str


class EventType(StrEnum):
    """Provider webhook event types the classifier understands."""

    LOCK_UNLOCK = "lock.unlock"
    LOCK_UNLOCK_FAILED = "lock.unlock_failed"
    LOCK_FORCE_OPEN = "lock.force_open"
    LOCK_OPEN = "lock.open"
    READER_TAMPERED = "reader.tampered"


class Severity(IntEnum):
    """Alert severity — ordered so comparisons work naturally."""

    INFO = 1
    WARNING = 2
    CRITICAL = 3


class RecordKind(StrEnum):
    """Kinds of entries written to the event log."""

    KISI = "kisi"
    SMS = "sms"
    ACTION = "action"


class WebhookAck(StrEnum):
    """The three possible outcomes of a webhook delivery."""

    ACCEPTED = "accepted"
    UNAUTHORIZED = "unauthorized"
    INVALID = "invalid"


def _as_text(value: Any) -> str:
    """Render a non-string JSON value as compact text (``1.5``, ``true``, ``{"id": 7}``)."""
    return json.dumps(value, ensure_ascii=False, default=str)


class AccessEvent(BaseModel):
    """A webhook payload from the access-control provider.

    Every field except ``type`` is optional; unknown fields are kept so the
    raw event can still be inspected. Optional fields never fail validation:
    unexpected JSON types are coerced to text (or ``None`` for ``success``)
    so a cosmetic field cannot suppress an alert.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    type: str
    object_id: ObjectId | None = None
    object_name: str | None = None
    actor_id: ObjectId | None = None
    actor_name: str | None = None
    created_at: str | None = None
    success: bool | None = None

    @field_validator("object_id", "actor_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return _as_text(value)

    @field_validator("object_name", "actor_name", "created_at", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, str):
            value = _as_text(value)
        if not value.strip():
            return None
        return value

    @field_validator("success", mode="before")
    @classmethod
    def _strict_success(cls, value: Any) -> Any:
        # Only a JSON boolean counts; "yes", 1 and friends are treated as absent.
        return value if isinstance(value, bool) else None


class UnlockRecord(BaseModel):
    """Most recent successful unlock observed for a lock."""

    object_id: ObjectId
    observed_at: float


class AlertIntent(BaseModel):
    """Decision to notify recipients about an event."""

    severity: Severity
    message: str
    event_type: str = ""
    object_id: ObjectId | None = None


class Recipient(BaseModel):
    """A named phone number that receives broadcast alerts."""

    name: str
    phone: str


class BroadcastReport(BaseModel):
    """Outcome of sending one message to every recipient."""

    sent: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.sent) + len(self.failed)
