"""Append-only event log."""

from __future__ import annotations

import abc
import asyncio
import datetime
import json
from pathlib import Path
from typing import Any

import structlog

from access_notifier.storage.exceptions import PersistenceError

logger = structlog.get_logger(__name__)

EventRecord = dict[str, Any]


def _utc_now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


class EventStore(abc.ABC):
    """Base class for event history backends.

    Records are plain dicts shaped ``{timestamp, kind, ...}``. ``append``
    stamps the timestamp; callers supply the rest.
    """

    @abc.abstractmethod
    async def append(self, record: EventRecord) -> None:
        """Persist one record. Raises PersistenceError on failure."""

    @abc.abstractmethod
    async def read_all(self) -> list[EventRecord]:
        """Return every record, newest first."""

    async def search(self, query: str) -> list[EventRecord]:
        """Records whose JSON text contains *query*, case-insensitively."""
        records = await self.read_all()
        needle = query.strip().lower()
        if not needle:
            return records
        return [
            r for r in records
            if needle in json.dumps(r, ensure_ascii=False, default=str).lower()
        ]


class InMemoryEventStore(EventStore):
    """Event store kept in process memory."""

    def __init__(self) -> None:
        self._records: list[EventRecord] = []

    async def append(self, record: EventRecord) -> None:
        self._records.insert(0, {"timestamp": _utc_now_iso(), **record})

    async def read_all(self) -> list[EventRecord]:
        return list(self._records)


class JsonFileEventStore(EventStore):
    """Event store backed by a single JSON array file, newest entry first.

    A missing or unreadable file reads as an empty log. Writes rewrite the
    whole file under an asyncio lock, off the event loop.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> list[EventRecord]:
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, ValueError):
            logger.warning("event_log_unreadable", path=str(self._path))
            return []
        if not isinstance(data, list):
            logger.warning("event_log_not_a_list", path=str(self._path))
            return []
        records = [entry for entry in data if isinstance(entry, dict)]
        if len(records) != len(data):
            logger.warning(
                "event_log_entries_skipped",
                path=str(self._path),
                skipped=len(data) - len(records),
            )
        return records

    def _write(self, records: list[EventRecord]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, ensure_ascii=False, default=str)
        tmp.replace(self._path)

    async def append(self, record: EventRecord) -> None:
        entry = {"timestamp": _utc_now_iso(), **record}
        async with self._lock:
            try:
                records = await asyncio.to_thread(self._load)
                records.insert(0, entry)
                await asyncio.to_thread(self._write, records)
            except (OSError, TypeError, ValueError) as exc:
                raise PersistenceError(
                    f"Failed to append to {self._path}: {exc}"
                ) from exc

    async def read_all(self) -> list[EventRecord]:
        async with self._lock:
            return await asyncio.to_thread(self._load)
