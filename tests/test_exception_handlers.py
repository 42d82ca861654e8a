"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bruteguard.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    StoreAppError,
    TooManyAttemptsError,
)
from bruteguard.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers)


def _body(response) -> dict:
    return json.loads(bytes(response.body).decode())


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        ("error_cls", "status_code"),
        [
            (AppError, 400),
            (AuthenticationAppError, 401),
            (ConfigurationAppError, 500),
            (StoreAppError, 503),
        ],
    )
    def test_status_mapping(
        self, client: TestClient, app_with_handlers: FastAPI, error_cls, status_code: int
    ):
        """Verify each AppError subclass maps to its HTTP status."""
        @app_with_handlers.get("/boom")
        async def boom():
            raise error_cls(code="test_code", message="Test message")

        response = client.get("/boom")

        assert response.status_code == status_code
        data = response.json()
        assert data["error"]["code"] == "test_code"
        assert data["error"]["message"] == "Test message"
        assert "request_id" in data["error"]

    def test_store_error_includes_details(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify details are passed through when provided."""
        @app_with_handlers.get("/store")
        async def store():
            raise StoreAppError(
                code="store_error",
                message="Cannot increment request count",
                details={"parent": "ConnectionError"},
            )

        data = client.get("/store").json()

        assert data["error"]["details"] == {"parent": "ConnectionError"}

    def test_error_response_format_is_consistent(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify error responses have consistent JSON structure."""
        @app_with_handlers.get("/test-format")
        async def test_endpoint():
            raise AppError(code="test", message="test")

        data = client.get("/test-format").json()

        assert "error" in data
        assert "code" in data["error"]
        assert "message" in data["error"]
        assert "request_id" in data["error"]
        assert "details" not in data["error"]


class TestTooManyAttemptsHandler:
    """Test rendering of denied attempts."""

    @pytest.mark.parametrize("status_code", [429, 403])
    def test_status_header_and_retry_date(
        self, client: TestClient, app_with_handlers: FastAPI, status_code: int
    ):
        retry_at = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

        @app_with_handlers.get("/denied")
        async def denied():
            raise TooManyAttemptsError(
                code="too_many_attempts",
                message="Too many requests in this time frame.",
                status_code=status_code,
                next_valid_request_date=retry_at,
                retry_after_seconds=42,
            )

        response = client.get("/denied")

        assert response.status_code == status_code
        assert response.headers["Retry-After"] == "42"
        error = response.json()["error"]
        assert error["code"] == "too_many_attempts"
        assert error["nextValidRequestDate"] == "2030-01-01T12:00:00+00:00"


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        """Verify fallback exception handler is registered."""
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_logic(self):
        """Verify general_exception_handler returns correct structure."""
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("Unexpected error: redis connection refused")
        response = asyncio.run(general_exception_handler(request, exc))

        data = _body(response)
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        # Original error message should NOT be in response
        assert "redis" not in data["error"]["message"]
        assert "request_id" in data["error"]

    def test_general_exception_handler_never_leaks_stack_trace(self):
        """Verify stack traces are never included in response."""
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_text = bytes(response.body).decode()
        assert "Traceback" not in response_text
        assert "File \"" not in response_text
        assert "ValueError" not in response_text


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        assert TooManyAttemptsError in app_with_handlers.exception_handlers
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self):
        """Verify calling setup_exception_handlers multiple times is safe."""
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
