"""Correlates door-open events with the unlock that preceded them."""

from __future__ import annotations

import threading

import structlog

from access_notifier.core.types import ObjectId, UnlockRecord

logger = structlog.get_logger(__name__)


class UnlockCorrelationTracker:
    """Remembers the most recent successful unlock per lock.

    A ``lock.open`` that follows an unlock of the same lock within the window
    is explained by that unlock and consumes it. An open with no unlock on
    record, or only an unlock older than the window, is unexplained.

    Lock ids are normalised to strings, so ``9`` and ``"9"`` share a record.
    Every read-modify-write of the mapping happens under one lock, which is
    never held across I/O.
    """

    DEFAULT_WINDOW_SECS = 5.0

    def __init__(self, window_secs: float = DEFAULT_WINDOW_SECS) -> None:
        self._window_secs = window_secs
        self._records: dict[str, UnlockRecord] = {}
        self._lock = threading.Lock()

    @property
    def window_secs(self) -> float:
        return self._window_secs

    def record_unlock(self, lock_id: ObjectId, at: float) -> None:
        """Store *at* as the latest unlock of *lock_id*, replacing any previous one."""
        record = UnlockRecord(object_id=lock_id, observed_at=at)
        with self._lock:
            self._records[str(lock_id)] = record

    def check_and_consume(
        self,
        lock_id: ObjectId,
        at: float,
        window_secs: float | None = None,
    ) -> bool:
        """Return True when an open of *lock_id* at *at* is unexplained.

        A record within the window is deleted and False is returned. A stale
        record stays in place until the next unlock overwrites it.
        """
        window = self._window_secs if window_secs is None else window_secs
        key = str(lock_id)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return True
            if at - record.observed_at > window:
                logger.debug(
                    "unlock_record_stale",
                    lock_id=key,
                    age_secs=round(at - record.observed_at, 3),
                    window_secs=window,
                )
                return True
            del self._records[key]
            return False

    def get(self, lock_id: ObjectId) -> UnlockRecord | None:
        with self._lock:
            return self._records.get(str(lock_id))

    def snapshot(self) -> dict[str, float]:
        """Copy of lock id → last unlock time."""
        with self._lock:
            return {k: r.observed_at for k, r in self._records.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
