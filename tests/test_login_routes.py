"""End-to-end tests for the demo login and health routes."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from bruteguard.adapters.store.in_memory import InMemoryPointStore
from bruteguard.core.app_factory import build_guard_from_settings, create_app
from bruteguard.core.brute_force import BruteForceGuard
from bruteguard.core.config import BruteSettings, Settings


@pytest.fixture
def guard() -> BruteForceGuard:
    return build_guard_from_settings(store_factory=lambda options: InMemoryPointStore(options))


@pytest.fixture
def client(guard: BruteForceGuard) -> TestClient:
    return TestClient(create_app(guard))


def _free_record(guard: BruteForceGuard, key: str):
    return asyncio.run(guard.gate.free_store.get(key))


def test_health_reports_backend(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "store": "memory"}


def test_wrong_password_locks_out_after_free_retries(client: TestClient) -> None:
    body = {"username": "admin", "password": "wrong"}

    first = client.post("/v1/auth/login", json=body)
    second = client.post("/v1/auth/login", json=body)
    third = client.post("/v1/auth/login", json=body)

    assert first.status_code == 401
    assert first.json()["error"]["code"] == "invalid_credentials"
    assert second.status_code == 401
    assert third.status_code == 429
    assert "Retry-After" in third.headers
    assert third.json()["error"]["nextValidRequestDate"]


def test_lockout_holds_even_with_correct_password(client: TestClient) -> None:
    for _ in range(2):
        client.post("/v1/auth/login", json={"username": "admin", "password": "wrong"})

    response = client.post(
        "/v1/auth/login", json={"username": "admin", "password": "correct-horse-battery"}
    )

    assert response.status_code == 429


def test_success_clears_ip_and_username_counters(
    client: TestClient, guard: BruteForceGuard
) -> None:
    client.post("/v1/auth/login", json={"username": "admin", "password": "wrong"})

    response = client.post(
        "/v1/auth/login", json={"username": "admin", "password": "correct-horse-battery"}
    )

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "username": "admin"}
    assert _free_record(guard, guard.derive(None, "testclient")) is None
    assert _free_record(guard, guard.derive("admin")) is None


def test_username_counter_is_keyed_without_ip(client: TestClient, guard: BruteForceGuard) -> None:
    client.post("/v1/auth/login", json={"username": "mallory", "password": "x"})

    assert _free_record(guard, guard.derive("mallory")) is not None
    assert _free_record(guard, guard.derive("mallory", "testclient")) is None


def test_error_responses_carry_request_id(client: TestClient) -> None:
    response = client.post(
        "/v1/auth/login",
        json={"username": "admin", "password": "wrong"},
        headers={"X-Request-ID": "req-login-1"},
    )

    assert response.headers["X-Request-ID"] == "req-login-1"
    assert response.json()["error"]["request_id"] == "req-login-1"


def test_success_clears_counters_without_attached_handles() -> None:
    detached = Settings(brute=BruteSettings(free_retries=3, attach_reset_to_request=False))
    guard = build_guard_from_settings(detached, store_factory=lambda options: InMemoryPointStore(options))
    client = TestClient(create_app(guard))
    for _ in range(2):
        assert client.post("/v1/auth/login", json={"username": "admin", "password": "wrong"}).status_code == 401

    response = client.post(
        "/v1/auth/login", json={"username": "admin", "password": "correct-horse-battery"}
    )

    assert response.status_code == 200
    assert _free_record(guard, guard.derive(None, "testclient")) is None
    assert _free_record(guard, guard.derive("admin")) is None


def test_shutdown_closes_stores() -> None:
    closed: list[str] = []

    class ClosingStore(InMemoryPointStore):
        async def close(self) -> None:
            closed.append(self.options.key_prefix)

    guard = build_guard_from_settings(store_factory=lambda options: ClosingStore(options))

    with TestClient(create_app(guard)) as client:
        assert client.get("/health").status_code == 200
        assert closed == []

    assert sorted(closed) == ["block", "counter", "free"]
