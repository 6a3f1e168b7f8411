"""Notification delivery exceptions."""

from __future__ import annotations


class NotifyError(Exception):
    """Base exception for notification errors."""


class DispatchError(NotifyError):
    """A message could not be handed to the delivery provider."""
