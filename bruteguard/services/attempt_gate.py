"""Attempt accounting and lockout decisions.

Three store namespaces are composed per key:

- ``free``: attempts allowed before any delay (``free_retries - 1`` points).
- ``block``: a single point marking an active lockout window.
- ``counter``: failures recorded so far, used only to pick the next delay
  from the schedule. It is advanced with penalties, never consumed.

The gate keeps no per-key state of its own and relies on the stores'
per-key atomicity for ``consume`` and ``penalty``. When several requests
race to open the same lockout window, only the one whose block penalty
lands first (``consumed_points == 1``) advances the counter; the others are
denied with the window that request opened.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import NoReturn

from bruteguard.adapters.store.base import (
    AbstractPointStore,
    CapacityExhaustedError,
    StoreFactory,
    StoreOptions,
)
from bruteguard.core.errors import INCREMENT_ERROR_MESSAGE, StoreErrorContext, raise_store_error
from bruteguard.schemas.decision import GateDecision, GateOutcome
from bruteguard.schemas.policy import BrutePolicy
from bruteguard.services.delay_schedule import delay_for_attempt
from bruteguard.services.reset_controller import StoreErrorSink


class AttemptGate:
    """Decides allow / allow-and-record-failure / deny for a derived key."""

    def __init__(
        self,
        policy: BrutePolicy,
        store_factory: StoreFactory,
        *,
        handle_store_error: StoreErrorSink = raise_store_error,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.policy = policy
        self._delays = policy.delays
        self._handle_store_error = handle_store_error
        self._clock = clock

        self.free_store = store_factory(
            StoreOptions(points=policy.free_points, duration=policy.lifetime, key_prefix="free")
        )
        self.block_store = store_factory(
            StoreOptions(points=1, duration=policy.block_duration, key_prefix="block")
        )
        self.counter_store = store_factory(
            StoreOptions(points=1, duration=policy.lifetime, key_prefix="counter")
        )

    @property
    def delays(self) -> tuple[int, ...]:
        return self._delays

    @property
    def stores(self) -> tuple[AbstractPointStore, AbstractPointStore, AbstractPointStore]:
        return self.free_store, self.block_store, self.counter_store

    def _deny(self, ms_before_next: int) -> GateDecision:
        retry_at = self._clock() + ms_before_next / 1000
        return GateDecision(
            outcome=GateOutcome.DENY,
            retry_not_before=datetime.fromtimestamp(retry_at, tz=timezone.utc),
        )

    def _store_failed(self, exc: Exception, key: str, ip: str | None) -> NoReturn:
        context = StoreErrorContext(
            message=INCREMENT_ERROR_MESSAGE,
            parent=exc,
            key=key,
            ip=ip,
        )
        self._handle_store_error(context)
        raise context.to_error() from exc

    async def decide(self, key: str, *, ip: str | None = None) -> GateDecision:
        """Account for one attempt against ``key``.

        Args:
            key: Derived store key.
            ip: Client address, reported to the error sink only.

        Returns:
            GateDecision; ``retry_not_before`` is set for DENY.

        Raises:
            StoreAppError: If a store call failed and the sink did not raise.
        """
        try:
            await self.free_store.consume(key)
        except CapacityExhaustedError:
            pass
        except Exception as exc:
            self._store_failed(exc, key, ip)
        else:
            return GateDecision(outcome=GateOutcome.ALLOW)

        try:
            block, counter = await asyncio.gather(
                self.block_store.get(key),
                self.counter_store.get(key),
            )
            if block is not None:
                return self._deny(block.ms_before_next)

            ordinal = counter.consumed_points + 1 if counter is not None else 1
            ms_delay = delay_for_attempt(ordinal, self._delays, self.policy.max_wait_ms)
            opened = await self.block_store.penalty(
                key, 1, custom_duration=math.ceil(ms_delay / 1000)
            )
            if opened.consumed_points != 1:
                return self._deny(opened.ms_before_next)

            await self.counter_store.penalty(key, 1)
        except Exception as exc:
            self._store_failed(exc, key, ip)

        return GateDecision(outcome=GateOutcome.ALLOW_AND_RECORD_FAILURE)
