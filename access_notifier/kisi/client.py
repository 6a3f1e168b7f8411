"""Kisi REST client for remote lock actions."""

from __future__ import annotations

from enum import StrEnum
from types import TracebackType

import httpx
import structlog

from access_notifier.core.config import KisiConfig
from access_notifier.core.types import ObjectId
from access_notifier.kisi.exceptions import LockControlError, LockControlNotConfiguredError

logger = structlog.get_logger(__name__)


class LockAction(StrEnum):
    """Remote actions exposed by ``POST /locks/{id}/{action}``."""

    UNLOCK = "unlock"
    LOCK = "lock"
    LOCKDOWN = "lockdown"


class KisiLockClient:
    """Invokes remote actions on locks through the provider API.

    Usage::

        async with KisiLockClient(settings.kisi) as client:
            await client.unlock(1234)
    """

    def __init__(
        self,
        config: KisiConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._api_key = config.api_key.get_secret_value()
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    @property
    def main_door_ids(self) -> list[ObjectId]:
        return list(self._config.main_door_ids)

    async def connect(self) -> None:
        """Create the httpx async client."""
        if self._http is not None:
            return
        self._http = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=httpx.Timeout(self._config.timeout_secs),
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "Authorization": f"KISI-LOGIN {self._api_key}",
            },
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the httpx async client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> KisiLockClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def unlock(self, lock_id: ObjectId) -> None:
        await self.perform(lock_id, LockAction.UNLOCK)

    async def lock(self, lock_id: ObjectId) -> None:
        await self.perform(lock_id, LockAction.LOCK)

    async def lockdown(self, lock_id: ObjectId) -> None:
        await self.perform(lock_id, LockAction.LOCKDOWN)

    async def lockdown_main_doors(self) -> list[ObjectId]:
        """Lock down every configured main door, stopping at the first failure.

        Raises:
            LockControlNotConfiguredError: no API key or no main doors configured.
            LockControlError: a door failed to lock down.
        """
        doors = self.main_door_ids
        if not doors:
            raise LockControlNotConfiguredError("No main doors configured for lockdown")
        for lock_id in doors:
            await self.lockdown(lock_id)
        return doors

    async def perform(self, lock_id: ObjectId, action: LockAction) -> None:
        """POST the action for *lock_id*.

        Raises:
            LockControlNotConfiguredError: no API key configured.
            LockControlError: transport failure or non-2xx response.
        """
        if not self.configured:
            raise LockControlNotConfiguredError("No Kisi API key configured")
        if self._http is None:
            await self.connect()
        assert self._http is not None

        path = f"/locks/{lock_id}/{action.value}"
        try:
            response = await self._http.post(path, json={})
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise LockControlError(
                f"Kisi API returned {exc.response.status_code} for {action.value} on lock {lock_id}"
            ) from exc
        except httpx.HTTPError as exc:
            raise LockControlError(
                f"Kisi API request failed for {action.value} on lock {lock_id}: {exc}"
            ) from exc

        logger.info("lock_action_performed", lock_id=str(lock_id), action=action.value)
