"""Service entrypoint — wires all components and serves HTTP until interrupted."""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from dataclasses import dataclass

import structlog
from aiohttp import web

from access_notifier.core.config import Settings, load_settings
from access_notifier.core.logging import setup_logging
from access_notifier.kisi.client import KisiLockClient
from access_notifier.notify.broadcaster import AlertBroadcaster
from access_notifier.notify.channels import TwilioSmsChannel
from access_notifier.storage.events import JsonFileEventStore
from access_notifier.storage.recipients import JsonFileRecipientDirectory
from access_notifier.web.app import create_app
from access_notifier.webhook.classifier import EventClassifier
from access_notifier.webhook.correlation import UnlockCorrelationTracker
from access_notifier.webhook.pipeline import WebhookPipeline

logger = structlog.get_logger(__name__)


@dataclass
class Components:
    """Everything the HTTP app needs, built from settings."""

    tracker: UnlockCorrelationTracker
    pipeline: WebhookPipeline
    broadcaster: AlertBroadcaster
    events: JsonFileEventStore
    recipients: JsonFileRecipientDirectory
    lock_client: KisiLockClient


def build_components(settings: Settings) -> Components:
    events = JsonFileEventStore(settings.storage.events_path)
    recipients = JsonFileRecipientDirectory(settings.storage.recipients_path)
    broadcaster = AlertBroadcaster(
        channel=TwilioSmsChannel(settings.twilio),
        recipients=recipients,
        events=events,
    )
    tracker = UnlockCorrelationTracker(window_secs=settings.kisi.unlock_window_secs)
    pipeline = WebhookPipeline(
        classifier=EventClassifier(tracker),
        broadcaster=broadcaster,
        events=events,
        signature_key=settings.kisi.signature_key.get_secret_value(),
    )
    return Components(
        tracker=tracker,
        pipeline=pipeline,
        broadcaster=broadcaster,
        events=events,
        recipients=recipients,
        lock_client=KisiLockClient(settings.kisi),
    )


async def run(args: argparse.Namespace) -> int:
    """Start the HTTP server and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    components = build_components(settings)

    if not settings.kisi.signature_key.get_secret_value():
        logger.warning("signature_verification_disabled")
    if not settings.kisi.api_key.get_secret_value():
        logger.warning("lock_control_disabled")

    app = create_app(
        settings,
        pipeline=components.pipeline,
        recipients=components.recipients,
        events=components.events,
        broadcaster=components.broadcaster,
        lock_client=components.lock_client,
    )
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(
        "notifier_running",
        host=host,
        port=port,
        webhook_path=settings.server.webhook_path,
        unlock_window_secs=settings.kisi.unlock_window_secs,
    )

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("notifier_shutting_down")
    await runner.cleanup()
    await components.pipeline.drain(timeout=30.0)
    await components.broadcaster.close()
    await components.lock_client.close()
    logger.info("notifier_stopped")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the access-control webhook notifier.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument("--host", default=None, help="Bind address override")
    parser.add_argument("--port", type=int, default=None, help="Port override")
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
