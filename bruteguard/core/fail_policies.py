"""Stock responses for denied requests.

A fail policy is called with the request, the dependency-scoped response and
the earliest time the caller may retry. Policies that short-circuit raise
``TooManyAttemptsError`` (rendered by the exception handlers); ``fail_mark``
only annotates the response and lets the route run.

Retry-After is computed on the denying guard's clock, which the guard
exposes as ``request.state.brute_clock``; the wall clock is used otherwise.
"""

from __future__ import annotations

import math
import time
from collections.abc import Awaitable, Callable
from datetime import datetime

from fastapi import Request, Response, status

from bruteguard.core.errors import ConfigurationAppError, TooManyAttemptsError

FailCallback = Callable[[Request, Response, datetime], Awaitable[None] | None]

DENIED_MESSAGE = "Too many requests in this time frame."


def seconds_until(next_valid_request_date: datetime, now: float | None = None) -> int:
    """Whole seconds until ``next_valid_request_date``, rounded up, never negative."""
    if now is None:
        now = time.time()
    return max(0, math.ceil(next_valid_request_date.timestamp() - now))


def request_now(request: Request) -> float:
    """Current time on the clock of the guard that denied ``request``."""
    clock = getattr(request.state, "brute_clock", time.time)
    return clock()


def set_retry_after(request: Request, response: Response, next_valid_request_date: datetime) -> int:
    retry_after = seconds_until(next_valid_request_date, request_now(request))
    response.headers["Retry-After"] = str(retry_after)
    return retry_after


def _deny(
    request: Request, status_code: int, next_valid_request_date: datetime
) -> TooManyAttemptsError:
    return TooManyAttemptsError(
        code="too_many_attempts",
        message=DENIED_MESSAGE,
        status_code=status_code,
        next_valid_request_date=next_valid_request_date,
        retry_after_seconds=seconds_until(next_valid_request_date, request_now(request)),
    )


def fail_too_many_requests(
    request: Request, response: Response, next_valid_request_date: datetime
) -> None:
    """Answer 429 with Retry-After and the retry date in the error body."""
    raise _deny(request, status.HTTP_429_TOO_MANY_REQUESTS, next_valid_request_date)


def fail_forbidden(
    request: Request, response: Response, next_valid_request_date: datetime
) -> None:
    """Answer 403 with Retry-After and the retry date in the error body."""
    raise _deny(request, status.HTTP_403_FORBIDDEN, next_valid_request_date)


def fail_mark(
    request: Request, response: Response, next_valid_request_date: datetime
) -> None:
    """Mark the response as throttled and let the route decide what to do.

    The route can read ``request.state.next_valid_request_date``; status 429
    and Retry-After apply unless the route returns its own Response.
    """
    response.status_code = status.HTTP_429_TOO_MANY_REQUESTS
    set_retry_after(request, response, next_valid_request_date)
    request.state.next_valid_request_date = next_valid_request_date


FAIL_POLICIES: dict[str, FailCallback] = {
    "too_many_requests": fail_too_many_requests,
    "forbidden": fail_forbidden,
    "mark": fail_mark,
}


def resolve_fail_policy(name: str) -> FailCallback:
    """Look up a stock fail policy by its configuration name.

    Raises:
        ConfigurationAppError: If the name is unknown.
    """
    try:
        return FAIL_POLICIES[name.lower()]
    except KeyError:
        raise ConfigurationAppError(
            code="unknown_fail_policy",
            message=(
                f"Unknown fail policy: '{name}'. "
                f"Supported policies: {', '.join(FAIL_POLICIES)}"
            ),
        ) from None
