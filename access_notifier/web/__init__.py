"""HTTP surface — webhook endpoint and dashboard."""

from access_notifier.web.app import create_app
from access_notifier.web.pages import render_dashboard, render_events

__all__ = [
    "create_app",
    "render_dashboard",
    "render_events",
]
