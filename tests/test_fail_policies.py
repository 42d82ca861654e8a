"""Tests for the stock fail policies."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi import Response

from bruteguard.core.errors import ConfigurationAppError, TooManyAttemptsError
from bruteguard.core.fail_policies import (
    DENIED_MESSAGE,
    FAIL_POLICIES,
    fail_forbidden,
    fail_mark,
    fail_too_many_requests,
    resolve_fail_policy,
    request_now,
    seconds_until,
)


def _request() -> SimpleNamespace:
    return SimpleNamespace(state=SimpleNamespace())


def _in(seconds: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)


def test_seconds_until_rounds_up() -> None:
    assert seconds_until(_in(1.2)) == 2


def test_seconds_until_past_date_is_zero() -> None:
    assert seconds_until(_in(-30)) == 0


def test_too_many_requests_raises_429() -> None:
    retry_at = _in(5)

    with pytest.raises(TooManyAttemptsError) as exc_info:
        fail_too_many_requests(_request(), Response(), retry_at)

    error = exc_info.value
    assert error.status_code == 429
    assert error.code == "too_many_attempts"
    assert error.message == DENIED_MESSAGE
    assert error.next_valid_request_date == retry_at
    assert 4 <= error.retry_after_seconds <= 5


def test_forbidden_raises_403() -> None:
    with pytest.raises(TooManyAttemptsError) as exc_info:
        fail_forbidden(_request(), Response(), _in(60))

    assert exc_info.value.status_code == 403


def test_mark_annotates_without_raising() -> None:
    request = _request()
    response = Response()
    retry_at = _in(10)

    assert fail_mark(request, response, retry_at) is None

    assert response.status_code == 429
    assert 9 <= int(response.headers["Retry-After"]) <= 10
    assert request.state.next_valid_request_date == retry_at


@pytest.mark.parametrize("name", ["too_many_requests", "forbidden", "mark", "FORBIDDEN"])
def test_resolve_known_policies(name: str) -> None:
    assert resolve_fail_policy(name) is FAIL_POLICIES[name.lower()]


def test_resolve_unknown_policy() -> None:
    with pytest.raises(ConfigurationAppError) as exc_info:
        resolve_fail_policy("teapot")

    assert exc_info.value.code == "unknown_fail_policy"
    assert "teapot" in exc_info.value.message


def test_seconds_until_with_explicit_now() -> None:
    retry_at = datetime.fromtimestamp(1002.5, tz=timezone.utc)

    assert seconds_until(retry_at, now=1000.0) == 3


def test_retry_after_follows_guard_clock() -> None:
    request = _request()
    request.state.brute_clock = lambda: 1000.0
    response = Response()
    retry_at = datetime.fromtimestamp(1004.0, tz=timezone.utc)

    assert request_now(request) == 1000.0
    fail_mark(request, response, retry_at)
    assert response.headers["Retry-After"] == "4"

    with pytest.raises(TooManyAttemptsError) as exc_info:
        fail_too_many_requests(request, Response(), retry_at)
    assert exc_info.value.retry_after_seconds == 4
