"""Brute-force protection dependencies for FastAPI routes.

This module wires the attempt gate into the HTTP layer.

Usage:
    guard = BruteForceGuard("login", BrutePolicy(), create_store_factory(settings.store))

    @router.post("/login")
    async def login(attempt: Annotated[BruteAttempt, Depends(guard.prevent)]):
        ...
        await attempt.reset()

Each dependency derives a store key from ``[client_ip, guard_name, key]``
(or ``[guard_name, key]`` with ``ignore_ip``), asks the gate for a decision
and, on deny, hands the retry date to the fail callback. When
``attach_reset_to_request`` is enabled every guarded request also collects
its reset handles, oldest first, in ``request.state.brute_resets`` so a route
guarded by several dependencies can clear them all with ``reset_request``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from fastapi import Request, Response

from bruteguard.adapters.store.base import StoreFactory
from bruteguard.core.errors import ConfigurationAppError, StoreErrorContext, raise_store_error
from bruteguard.core.fail_policies import FailCallback, fail_too_many_requests
from bruteguard.core.logging import hash_identity
from bruteguard.schemas.decision import GateOutcome
from bruteguard.schemas.policy import BrutePolicy
from bruteguard.services.attempt_gate import AttemptGate
from bruteguard.services.reset_controller import ResetController, StoreErrorSink
from bruteguard.utils.key_deriver import derive_key

logger = logging.getLogger(__name__)

KeyExtractor = Callable[[Request], Awaitable[str | None] | str | None]
ResetHandle = Callable[[], Awaitable[None]]


@dataclass
class BruteAttempt:
    """What a guarded route receives from the dependency.

    Attributes:
        key: Derived store key.
        outcome: Gate decision for this request.
        next_valid_request_date: Retry date when the request was denied
            (only observable by the route under ``fail_mark``).
    """

    key: str
    outcome: GateOutcome
    next_valid_request_date: datetime | None = None
    _reset: ResetHandle | None = field(default=None, repr=False)

    async def reset(self) -> None:
        """Clear all counters for this attempt's key."""
        if self._reset is not None:
            await self._reset()


def get_client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


async def reset_request(request: Request) -> None:
    """Run every reset handle attached to ``request``, oldest first."""
    for handle in list(getattr(request.state, "brute_resets", ())):
        await handle()


async def _resolve_key(key: KeyExtractor | str | None, request: Request) -> str | None:
    if key is None or isinstance(key, str):
        return key
    value = key(request)
    if inspect.isawaitable(value):
        value = await value
    return value


class BruteForceGuard:
    """One protection instance: a policy, its stores and its key namespace.

    Args:
        name: Explicit instance identifier mixed into every derived key.
        policy: Validated policy.
        store_factory: Builds one point store per namespace.
        fail_callback: Default response on deny.
        ignore_ip: Whether the default ``prevent`` dependency leaves the
            client address out of its key.
        handle_store_error: Sink for store failures; raises by default.
        clock: Time source for retry dates.

    Raises:
        ConfigurationAppError: If ``name`` is empty.
    """

    def __init__(
        self,
        name: str,
        policy: BrutePolicy,
        store_factory: StoreFactory,
        *,
        fail_callback: FailCallback = fail_too_many_requests,
        ignore_ip: bool = False,
        handle_store_error: StoreErrorSink = raise_store_error,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not name:
            raise ConfigurationAppError(
                code="missing_guard_name",
                message="BruteForceGuard requires a non-empty instance name",
            )
        self.name = name
        self.policy = policy
        self.fail_callback = fail_callback
        self._handle_store_error = handle_store_error
        self._clock = clock
        self.gate = AttemptGate(
            policy,
            store_factory,
            handle_store_error=self._report_store_error,
            clock=clock,
        )
        self.resetter = ResetController(
            self.gate.stores,
            handle_store_error=self._report_store_error,
        )
        self.prevent = self.dependency(ignore_ip=ignore_ip)

    def _report_store_error(self, context: StoreErrorContext) -> None:
        logger.error(
            "brute_force.store_error",
            extra={
                "guard": self.name,
                "error_message": context.message,
                "error_type": type(context.parent).__name__,
                "key_hash": hash_identity(context.key),
            },
        )
        self._handle_store_error(context)

    def derive(self, identity: str | None, ip: str | None = None) -> str:
        return derive_key([ip, self.name, identity])

    async def reset(self, ip: str | None, key: str | None) -> None:
        """Clear counters for the key a non-``ignore_ip`` dependency would derive.

        Pass ``ip=None`` for keys guarded with ``ignore_ip``.
        """
        await self.resetter.reset(self.derive(key, ip), ip=ip, identity=key)

    async def close(self) -> None:
        """Close the point stores; call once on application shutdown."""
        await asyncio.gather(*(store.close() for store in self.gate.stores))

    def dependency(
        self,
        *,
        key: KeyExtractor | str | None = None,
        ignore_ip: bool = False,
        fail_callback: FailCallback | None = None,
    ) -> Callable[[Request, Response], Awaitable[BruteAttempt]]:
        """Build a FastAPI dependency enforcing this guard.

        Args:
            key: Static sub-key, or a (sync or async) callable extracting it
                from the request; None guards on the client address only.
            ignore_ip: Leave the client address out of the derived key.
            fail_callback: Override of the guard's default fail callback.

        Returns:
            Dependency resolving to a BruteAttempt.
        """

        async def enforce_brute_force(request: Request, response: Response) -> BruteAttempt:
            identity = await _resolve_key(key, request)
            ip = None if ignore_ip else get_client_ip(request)
            derived = self.derive(identity, ip)

            async def _reset() -> None:
                await self.resetter.reset(derived, ip=ip, identity=identity)

            if self.policy.attach_reset_to_request:
                resets = getattr(request.state, "brute_resets", None)
                if resets is None:
                    resets = []
                    request.state.brute_resets = resets
                resets.append(_reset)

            decision = await self.gate.decide(derived, ip=ip)
            attempt = BruteAttempt(key=derived, outcome=decision.outcome, _reset=_reset)
            if decision.allowed:
                return attempt

            attempt.next_valid_request_date = decision.retry_not_before
            logger.warning(
                "brute_force.denied",
                extra={
                    "guard": self.name,
                    "key_hash": hash_identity(derived),
                    "client_ip": ip,
                    "ignore_ip": ignore_ip,
                    "next_valid_request_date": decision.retry_not_before.isoformat(),
                },
            )
            request.state.brute_clock = self._clock
            callback = fail_callback or self.fail_callback
            result = callback(request, response, decision.retry_not_before)
            if inspect.isawaitable(result):
                await result
            return attempt

        return enforce_brute_force
