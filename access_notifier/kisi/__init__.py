"""Provider REST API — remote lock control."""

from access_notifier.kisi.client import KisiLockClient, LockAction
from access_notifier.kisi.exceptions import LockControlError, LockControlNotConfiguredError

__all__ = [
    "KisiLockClient",
    "LockAction",
    "LockControlError",
    "LockControlNotConfiguredError",
]
