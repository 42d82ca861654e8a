"""Application-level exception types.

This module defines the errors raised across the guard, its stores and the
HTTP layer, enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TypedDict


INCREMENT_ERROR_MESSAGE = "Cannot increment request count"
RESET_ERROR_MESSAGE = "Cannot reset request count"


class ErrorDetails(TypedDict, total=False):
    """Structured error context returned to clients."""

    parent: str
    backend: str


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationAppError(AppError):
    """Raised at construction time for invalid guard or store configuration."""


class StoreAppError(AppError):
    """Raised when a point store operation fails for reasons other than capacity."""


class AuthenticationAppError(AppError):
    """Raised when the demo login rejects credentials."""


@dataclass
class TooManyAttemptsError(AppError):
    """Raised by the stock fail policies to short-circuit a denied request.

    Attributes:
        status_code: HTTP status to answer with (429 or 403).
        next_valid_request_date: Earliest time the caller may try again (UTC).
        retry_after_seconds: Value for the Retry-After header.
    """

    status_code: int = 429
    next_valid_request_date: datetime | None = None
    retry_after_seconds: int = 0


@dataclass
class StoreErrorContext:
    """What a store error sink receives.

    ``key`` is the caller-supplied identity (or derived key during gating),
    ``ip`` the client address when it took part in key derivation.
    """

    message: str
    parent: BaseException
    key: str | None = None
    ip: str | None = None

    def to_error(self) -> StoreAppError:
        return StoreAppError(
            code="store_error",
            message=self.message,
            details={"parent": type(self.parent).__name__},
        )


def raise_store_error(context: StoreErrorContext) -> None:
    """Default store error sink: re-raise as fatal, chained to the cause."""
    raise context.to_error() from context.parent
