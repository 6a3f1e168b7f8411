"""Webhook intake — authentication, correlation, classification, pipeline."""

from access_notifier.webhook.classifier import EventClassifier, display_name
from access_notifier.webhook.correlation import UnlockCorrelationTracker
from access_notifier.webhook.exceptions import (
    AuthenticationError,
    PayloadValidationError,
    WebhookError,
)
from access_notifier.webhook.pipeline import WebhookPipeline, parse_event
from access_notifier.webhook.signature import compute_signature, verify_signature

__all__ = [
    "AuthenticationError",
    "EventClassifier",
    "PayloadValidationError",
    "UnlockCorrelationTracker",
    "WebhookError",
    "WebhookPipeline",
    "compute_signature",
    "display_name",
    "parse_event",
    "verify_signature",
]
