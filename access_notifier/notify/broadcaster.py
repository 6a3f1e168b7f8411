"""Broadcasts an alert message to every recipient."""

from __future__ import annotations

import structlog

from access_notifier.core.types import BroadcastReport, Recipient, RecordKind
from access_notifier.notify.channels import SmsChannel
from access_notifier.storage.events import EventStore
from access_notifier.storage.exceptions import PersistenceError
from access_notifier.storage.recipients import RecipientDirectory

logger = structlog.get_logger(__name__)


def personalize(recipient: Recipient, message: str) -> str:
    """Prefix *message* with a greeting for *recipient*."""
    return f"Hi {recipient.name},\n{message}"


class AlertBroadcaster:
    """Sends one message to every recipient over an SmsChannel.

    - Recipients are read once per broadcast (snapshot at dispatch time).
    - A failure for one recipient is logged and never stops the rest.
    - Successful sends are recorded in the event log when one is attached.
    """

    def __init__(
        self,
        channel: SmsChannel,
        recipients: RecipientDirectory,
        events: EventStore | None = None,
    ) -> None:
        self._channel = channel
        self._recipients = recipients
        self._events = events

    async def broadcast(self, message: str) -> BroadcastReport:
        report = BroadcastReport()
        recipients = await self._recipients.list_all()
        if not recipients:
            logger.warning("broadcast_no_recipients", message=message)
            return report

        for recipient in recipients:
            body = personalize(recipient, message)
            try:
                ok = await self._channel.send(recipient.phone, body)
            except Exception:
                logger.exception("sms_send_failed", to=recipient.phone)
                report.failed.append(recipient.phone)
                continue

            if not ok:
                logger.error("sms_send_failed", to=recipient.phone)
                report.failed.append(recipient.phone)
                continue

            logger.info("sms_sent", to=recipient.phone)
            report.sent.append(recipient.phone)
            await self._record_sms(recipient.phone, body)

        logger.info(
            "broadcast_complete",
            sent=len(report.sent),
            failed=len(report.failed),
        )
        return report

    async def _record_sms(self, phone: str, body: str) -> None:
        if self._events is None:
            return
        try:
            await self._events.append({"kind": RecordKind.SMS.value, "to": phone, "body": body})
        except PersistenceError:
            logger.exception("sms_record_failed", to=phone)

    async def close(self) -> None:
        try:
            await self._channel.close()
        except Exception:
            logger.exception("channel_close_error", channel=type(self._channel).__name__)
