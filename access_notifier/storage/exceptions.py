"""Storage exceptions."""

from __future__ import annotations


class StorageError(Exception):
    """Base exception for storage errors."""


class PersistenceError(StorageError):
    """A record could not be written to its backing file."""
