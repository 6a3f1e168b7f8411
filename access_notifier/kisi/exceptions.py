"""Lock-control exceptions."""

from __future__ import annotations


class LockControlError(Exception):
    """A lock action request to the provider failed."""


class LockControlNotConfiguredError(LockControlError):
    """No provider API key is configured."""
