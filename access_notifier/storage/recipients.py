"""Recipient directory — who receives broadcast alerts."""

from __future__ import annotations

import abc
import asyncio
import json
from pathlib import Path

import structlog
from pydantic import ValidationError

from access_notifier.core.types import Recipient
from access_notifier.storage.exceptions import PersistenceError

logger = structlog.get_logger(__name__)


class RecipientDirectory(abc.ABC):
    """Base class for recipient backends."""

    @abc.abstractmethod
    async def list_all(self) -> list[Recipient]:
        """Snapshot of every recipient."""

    @abc.abstractmethod
    async def add(self, name: str, phone: str) -> Recipient:
        """Append a recipient."""

    @abc.abstractmethod
    async def remove(self, phone: str) -> int:
        """Delete every recipient with *phone*. Returns how many were removed."""


class InMemoryRecipientDirectory(RecipientDirectory):
    """Recipient list held in memory."""

    def __init__(self, recipients: list[Recipient] | None = None) -> None:
        self._recipients: list[Recipient] = list(recipients or [])

    async def list_all(self) -> list[Recipient]:
        return list(self._recipients)

    async def add(self, name: str, phone: str) -> Recipient:
        recipient = Recipient(name=name, phone=phone)
        self._recipients.append(recipient)
        return recipient

    async def remove(self, phone: str) -> int:
        before = len(self._recipients)
        self._recipients = [r for r in self._recipients if r.phone != phone]
        return before - len(self._recipients)


class JsonFileRecipientDirectory(RecipientDirectory):
    """Recipients stored as a JSON array of ``{name, phone}`` objects."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    def _load(self) -> list[Recipient]:
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, ValueError):
            logger.exception("recipients_unreadable", path=str(self._path))
            return []

        if not isinstance(data, list):
            logger.warning("recipients_not_a_list", path=str(self._path))
            return []

        recipients: list[Recipient] = []
        for entry in data:
            try:
                recipients.append(Recipient.model_validate(entry))
            except ValidationError:
                logger.warning("recipient_entry_skipped", entry=entry)
        return recipients

    def _write(self, recipients: list[Recipient]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [r.model_dump() for r in recipients]
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        tmp.replace(self._path)

    async def list_all(self) -> list[Recipient]:
        async with self._lock:
            return await asyncio.to_thread(self._load)

    async def add(self, name: str, phone: str) -> Recipient:
        recipient = Recipient(name=name, phone=phone)
        async with self._lock:
            recipients = await asyncio.to_thread(self._load)
            recipients.append(recipient)
            await self._save(recipients)
        logger.info("recipient_added", name=name, phone=phone)
        return recipient

    async def remove(self, phone: str) -> int:
        async with self._lock:
            recipients = await asyncio.to_thread(self._load)
            kept = [r for r in recipients if r.phone != phone]
            await self._save(kept)
        removed = len(recipients) - len(kept)
        logger.info("recipient_removed", phone=phone, removed=removed)
        return removed

    async def _save(self, recipients: list[Recipient]) -> None:
        try:
            await asyncio.to_thread(self._write, recipients)
        except OSError as exc:
            raise PersistenceError(f"Failed to write {self._path}: {exc}") from exc
