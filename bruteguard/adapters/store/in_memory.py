"""In-memory point store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state, and no await happens while
  the lock is held, so each operation is atomic for asyncio callers as well.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from bruteguard.adapters.store.base import (
    AbstractPointStore,
    CapacityExhaustedError,
    StoreOptions,
    StoreResult,
)


@dataclass
class _Record:
    consumed: int
    expires_at: float


class InMemoryPointStore(AbstractPointStore):
    """Point store keeping one expiring counter per key in a dict.

    Expired records are dropped lazily when their key is touched.
    """

    def __init__(
        self,
        options: StoreOptions,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            options: Capacity and window for this namespace.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If points or duration are invalid.
        """
        if options.points < 0:
            raise ValueError("points must be >= 0")
        if options.duration < 1:
            raise ValueError("duration must be >= 1")

        super().__init__(options)
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, _Record] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _live_record_locked(self, key: str, now: float) -> _Record | None:
        record = self._records.get(key)
        if record is not None and record.expires_at <= now:
            del self._records[key]
            return None
        return record

    def _to_result(self, record: _Record, now: float) -> StoreResult:
        return StoreResult(
            consumed_points=record.consumed,
            ms_before_next=max(0, math.ceil((record.expires_at - now) * 1000)),
            remaining_points=max(0, self.options.points - record.consumed),
        )

    def _upsert_locked(self, key: str, points: int, duration: int) -> StoreResult:
        now = self._clock()
        record = self._live_record_locked(key, now)
        if record is None:
            record = _Record(consumed=0, expires_at=now + duration)
            self._records[key] = record
        record.consumed += points
        return self._to_result(record, now)

    async def consume(self, key: str, points: int = 1) -> StoreResult:
        if points < 1:
            raise ValueError("points must be >= 1")
        with self._lock:
            result = self._upsert_locked(key, points, self.options.duration)
        if result.consumed_points > self.options.points:
            raise CapacityExhaustedError(result)
        return result

    async def penalty(
        self,
        key: str,
        points: int = 1,
        *,
        custom_duration: int | None = None,
    ) -> StoreResult:
        duration = custom_duration if custom_duration else self.options.duration
        with self._lock:
            return self._upsert_locked(key, points, duration)

    async def get(self, key: str) -> StoreResult | None:
        with self._lock:
            now = self._clock()
            record = self._live_record_locked(key, now)
            if record is None:
                return None
            return self._to_result(record, now)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)
