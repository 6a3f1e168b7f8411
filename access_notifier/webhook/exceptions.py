"""Webhook intake exceptions."""

from __future__ import annotations


class WebhookError(Exception):
    """Base exception for rejected webhook deliveries."""


class AuthenticationError(WebhookError):
    """Signature checking is enabled and the payload signature did not match."""


class PayloadValidationError(WebhookError):
    """Payload is not a JSON object with a usable ``type`` field."""
