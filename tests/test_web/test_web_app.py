"""Tests for the aiohttp app — webhook responses, dashboard routes, lock controls, auth."""

from __future__ import annotations

import json
from typing import Any

import aiohttp
import httpx
from aiohttp import test_utils
from pydantic import SecretStr

from access_notifier.core.config import DashboardConfig, KisiConfig, Settings
from access_notifier.core.types import Recipient
from access_notifier.kisi.client import KisiLockClient
from access_notifier.notify.broadcaster import AlertBroadcaster
from access_notifier.notify.channels import SmsChannel
from access_notifier.storage.events import InMemoryEventStore
from access_notifier.storage.recipients import InMemoryRecipientDirectory
from access_notifier.web.app import create_app
from access_notifier.webhook.classifier import EventClassifier
from access_notifier.webhook.correlation import UnlockCorrelationTracker
from access_notifier.webhook.pipeline import WebhookPipeline
from access_notifier.webhook.signature import compute_signature

KEY = "hook-key"


# ── Helpers ─────────────────────────────────────────────────────


class FakeChannel(SmsChannel):
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def send(self, phone: str, body: str) -> bool:
        self.sent.append((phone, body))
        return True

    async def close(self) -> None:
        pass


class Harness:
    """Bundles the app and its in-memory collaborators."""

    def __init__(
        self,
        api_key: str = "kisi-key",
        kisi_status: int = 200,
        username: str = "",
        password: str = "",
        main_door_ids: list[int] | None = None,
    ) -> None:
        self.settings = Settings(
            kisi=KisiConfig(
                signature_key=SecretStr(KEY),
                api_key=SecretStr(api_key),
                base_url="https://api.test.kisi",
                main_door_ids=[1234, 5678] if main_door_ids is None else main_door_ids,
            ),
            dashboard=DashboardConfig(username=username, password=SecretStr(password)),
        )
        self.kisi_requests: list[httpx.Request] = []

        def _kisi(request: httpx.Request) -> httpx.Response:
            self.kisi_requests.append(request)
            return httpx.Response(kisi_status, json={})

        self.channel = FakeChannel()
        self.events = InMemoryEventStore()
        self.recipients = InMemoryRecipientDirectory([Recipient(name="Alice", phone="+1001")])
        self.broadcaster = AlertBroadcaster(self.channel, self.recipients, self.events)
        self.pipeline = WebhookPipeline(
            classifier=EventClassifier(UnlockCorrelationTracker()),
            broadcaster=self.broadcaster,
            events=self.events,
            signature_key=KEY,
        )
        self.lock_client = KisiLockClient(
            self.settings.kisi, transport=httpx.MockTransport(_kisi)
        )
        self.app = create_app(
            self.settings,
            pipeline=self.pipeline,
            recipients=self.recipients,
            events=self.events,
            broadcaster=self.broadcaster,
            lock_client=self.lock_client,
        )

    def client(self) -> test_utils.TestClient:
        return test_utils.TestClient(test_utils.TestServer(self.app))


def _signed_post(payload: dict[str, Any]) -> tuple[bytes, dict[str, str]]:
    body = json.dumps(payload).encode()
    return body, {"X-Signature": compute_signature(body, KEY), "Content-Type": "application/json"}


# ── Webhook ─────────────────────────────────────────────────────


class TestWebhookRoute:
    async def test_valid_event_ok(self) -> None:
        h = Harness()
        body, headers = _signed_post({"type": "lock.force_open", "object_id": 1})
        async with h.client() as client:
            resp = await client.post("/api/kisi/webhook", data=body, headers=headers)
            assert resp.status == 200
            assert await resp.text() == "OK"
        await h.pipeline.drain()
        assert len(h.channel.sent) == 1
        assert h.channel.sent[0][1].startswith("Hi Alice,\nForced Open detected")

    async def test_bad_signature_401(self) -> None:
        h = Harness()
        body, headers = _signed_post({"type": "lock.force_open", "object_id": 1})
        headers["X-Signature"] = "deadbeef"
        async with h.client() as client:
            resp = await client.post("/api/kisi/webhook", data=body, headers=headers)
            assert resp.status == 401
            assert await resp.text() == "Invalid signature"
        assert await h.events.read_all() == []

    async def test_missing_type_400(self) -> None:
        h = Harness()
        body, headers = _signed_post({"object_id": 1})
        async with h.client() as client:
            resp = await client.post("/api/kisi/webhook", data=body, headers=headers)
            assert resp.status == 400
            assert await resp.text() == "Invalid payload"

    async def test_unknown_type_still_ok(self) -> None:
        h = Harness()
        body, headers = _signed_post({"type": "unknown.thing"})
        async with h.client() as client:
            resp = await client.post("/api/kisi/webhook", data=body, headers=headers)
            assert resp.status == 200
        assert len(await h.events.read_all()) == 1

    async def test_webhook_exempt_from_dashboard_auth(self) -> None:
        h = Harness(username="admin", password="pw")
        body, headers = _signed_post({"type": "unknown.thing"})
        async with h.client() as client:
            resp = await client.post("/api/kisi/webhook", data=body, headers=headers)
            assert resp.status == 200


# ── Dashboard ───────────────────────────────────────────────────


class TestDashboard:
    async def test_index_lists_recipients(self) -> None:
        h = Harness()
        async with h.client() as client:
            resp = await client.get("/")
            assert resp.status == 200
            text = await resp.text()
        assert "Alice" in text
        assert "+1001" in text
        assert "/lockdown" in text

    async def test_index_escapes_html(self) -> None:
        h = Harness()
        await h.recipients.add("<script>x</script>", "+1999")
        async with h.client() as client:
            text = await (await client.get("/")).text()
        assert "<script>x</script>" not in text
        assert "&lt;script&gt;" in text

    async def test_index_without_api_key_hides_controls(self) -> None:
        h = Harness(api_key="")
        async with h.client() as client:
            text = await (await client.get("/")).text()
        assert "Lock control disabled" in text

    async def test_add_and_delete_recipient(self) -> None:
        h = Harness()
        async with h.client() as client:
            resp = await client.post(
                "/recipients/add",
                data={"name": "Bob", "phone": "+1002"},
                allow_redirects=False,
            )
            assert resp.status == 302
            assert resp.headers["Location"] == "/"
            assert [r.name for r in await h.recipients.list_all()] == ["Alice", "Bob"]

            await client.post("/recipients/delete", data={"phone": "+1001"}, allow_redirects=False)
            assert [r.name for r in await h.recipients.list_all()] == ["Bob"]

    async def test_add_requires_name_and_phone(self) -> None:
        h = Harness()
        async with h.client() as client:
            resp = await client.post(
                "/recipients/add", data={"name": "Bob"}, allow_redirects=False
            )
            assert resp.status == 302
        assert len(await h.recipients.list_all()) == 1

    async def test_events_search(self) -> None:
        h = Harness()
        await h.events.append({"kind": "kisi", "event": {"object_name": "Front Door"}})
        await h.events.append({"kind": "kisi", "event": {"object_name": "Garage"}})
        async with h.client() as client:
            text = await (await client.get("/events", params={"q": "front"})).text()
            api = await (await client.get("/api/events", params={"q": "garage"})).json()
        assert "Front Door" in text
        assert "Garage" not in text
        assert len(api) == 1

    async def test_api_recipients(self) -> None:
        h = Harness()
        async with h.client() as client:
            data = await (await client.get("/api/recipients")).json()
        assert data == [{"name": "Alice", "phone": "+1001"}]


# ── Lock control ────────────────────────────────────────────────


class TestLockControl:
    async def test_open_calls_unlock_and_records(self) -> None:
        h = Harness()
        async with h.client() as client:
            resp = await client.post(
                "/locks/open", data={"lockId": "42"}, allow_redirects=False
            )
            assert resp.status == 302
        assert h.kisi_requests[0].url.path == "/locks/42/unlock"
        record = (await h.events.read_all())[0]
        assert record["kind"] == "action"
        assert record["action"] == "open"
        assert record["lock_id"] == "42"

    async def test_lock_action(self) -> None:
        h = Harness()
        async with h.client() as client:
            await client.post("/locks/lock", data={"lockId": "7"}, allow_redirects=False)
        assert h.kisi_requests[0].url.path == "/locks/7/lock"

    async def test_missing_lock_id_redirects_without_call(self) -> None:
        h = Harness()
        async with h.client() as client:
            resp = await client.post("/locks/unlock", data={}, allow_redirects=False)
            assert resp.status == 302
        assert h.kisi_requests == []

    async def test_unknown_action_404(self) -> None:
        h = Harness()
        async with h.client() as client:
            resp = await client.post("/locks/explode", data={"lockId": "1"})
            assert resp.status == 404

    async def test_provider_failure_500(self) -> None:
        h = Harness(kisi_status=500)
        async with h.client() as client:
            resp = await client.post("/locks/unlock", data={"lockId": "1"})
            assert resp.status == 500
            assert await resp.text() == "Failed to unlock door"
        assert await h.events.read_all() == []

    async def test_lockdown_locks_all_and_notifies(self) -> None:
        h = Harness()
        async with h.client() as client:
            resp = await client.post("/lockdown", allow_redirects=False)
            assert resp.status == 302
        assert [r.url.path for r in h.kisi_requests] == [
            "/locks/1234/lockdown",
            "/locks/5678/lockdown",
        ]
        assert len(h.channel.sent) == 1
        assert "All main doors lockdown activated at" in h.channel.sent[0][1]
        kinds = [(r["kind"], r.get("action")) for r in await h.events.read_all()]
        assert ("action", "lockdown") in kinds

    async def test_lockdown_without_api_key_500(self) -> None:
        h = Harness(api_key="")
        async with h.client() as client:
            resp = await client.post("/lockdown")
            assert resp.status == 500
            assert await resp.text() == "Server misconfiguration"

    async def test_lockdown_without_main_doors_500(self) -> None:
        h = Harness(main_door_ids=[])
        async with h.client() as client:
            resp = await client.post("/lockdown")
            assert resp.status == 500
            assert await resp.text() == "Server misconfiguration"
        assert h.kisi_requests == []
        assert h.channel.sent == []
        assert await h.events.read_all() == []

    async def test_lockdown_failure_500(self) -> None:
        h = Harness(kisi_status=502)
        async with h.client() as client:
            resp = await client.post("/lockdown")
            assert resp.status == 500
            assert await resp.text() == "Failed to lockdown"
        assert h.channel.sent == []


# ── Basic auth ──────────────────────────────────────────────────


class TestBasicAuth:
    async def test_dashboard_requires_credentials(self) -> None:
        h = Harness(username="admin", password="pw")
        async with h.client() as client:
            resp = await client.get("/")
            assert resp.status == 401
            assert "WWW-Authenticate" in resp.headers

    async def test_dashboard_accepts_credentials(self) -> None:
        h = Harness(username="admin", password="pw")
        async with h.client() as client:
            resp = await client.get("/", auth=aiohttp.BasicAuth("admin", "pw"))
            assert resp.status == 200

    async def test_wrong_password_rejected(self) -> None:
        h = Harness(username="admin", password="pw")
        async with h.client() as client:
            resp = await client.get("/", auth=aiohttp.BasicAuth("admin", "nope"))
            assert resp.status == 401

    async def test_healthz_public(self) -> None:
        h = Harness(username="admin", password="pw")
        async with h.client() as client:
            resp = await client.get("/healthz")
            assert resp.status == 200
            assert await resp.text() == "ok"
