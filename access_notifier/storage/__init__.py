"""Persistence for the event log and the recipient directory."""

from access_notifier.storage.events import (
    EventRecord,
    EventStore,
    InMemoryEventStore,
    JsonFileEventStore,
)
from access_notifier.storage.exceptions import PersistenceError, StorageError
from access_notifier.storage.recipients import (
    InMemoryRecipientDirectory,
    JsonFileRecipientDirectory,
    RecipientDirectory,
)

__all__ = [
    "EventRecord",
    "EventStore",
    "InMemoryEventStore",
    "InMemoryRecipientDirectory",
    "JsonFileEventStore",
    "JsonFileRecipientDirectory",
    "PersistenceError",
    "RecipientDirectory",
    "StorageError",
]
