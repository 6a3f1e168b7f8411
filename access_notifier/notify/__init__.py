"""SMS alert delivery."""

from access_notifier.notify.broadcaster import AlertBroadcaster, personalize
from access_notifier.notify.channels import SmsChannel, TwilioSmsChannel
from access_notifier.notify.exceptions import DispatchError, NotifyError

__all__ = [
    "AlertBroadcaster",
    "DispatchError",
    "NotifyError",
    "SmsChannel",
    "TwilioSmsChannel",
    "personalize",
]
