"""Progressive-delay brute-force protection for FastAPI endpoints."""

from bruteguard.adapters.store import (
    AbstractPointStore,
    CapacityExhaustedError,
    InMemoryPointStore,
    StoreOptions,
    StoreResult,
    create_store_factory,
)
from bruteguard.core.brute_force import BruteAttempt, BruteForceGuard, reset_request
from bruteguard.core.errors import StoreAppError, StoreErrorContext, TooManyAttemptsError
from bruteguard.core.fail_policies import fail_forbidden, fail_mark, fail_too_many_requests
from bruteguard.schemas.decision import GateDecision, GateOutcome
from bruteguard.schemas.policy import BrutePolicy
from bruteguard.services.attempt_gate import AttemptGate
from bruteguard.services.delay_schedule import build_delays, delay_for_attempt
from bruteguard.services.reset_controller import ResetController
from bruteguard.utils.key_deriver import derive_key

__all__ = [
    "AbstractPointStore",
    "AttemptGate",
    "BruteAttempt",
    "BruteForceGuard",
    "BrutePolicy",
    "CapacityExhaustedError",
    "GateDecision",
    "GateOutcome",
    "InMemoryPointStore",
    "ResetController",
    "StoreAppError",
    "StoreErrorContext",
    "StoreOptions",
    "StoreResult",
    "TooManyAttemptsError",
    "build_delays",
    "create_store_factory",
    "delay_for_attempt",
    "derive_key",
    "fail_forbidden",
    "fail_mark",
    "fail_too_many_requests",
    "reset_request",
]
