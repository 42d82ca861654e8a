"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the TESTING flag so no .env file is loaded, and pins the settings
the demo app reads at import time.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

os.environ.setdefault("APP_DEMO_USERNAME", "admin")
os.environ.setdefault("APP_DEMO_PASSWORD", "correct-horse-battery")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402

from bruteguard.adapters.store.base import StoreOptions  # noqa: E402
from bruteguard.adapters.store.in_memory import InMemoryPointStore  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Deterministic clock shared by gate and stores."""
    return Mock(return_value=1000.0)


@pytest.fixture
def memory_factory(clock: Mock):
    """Store factory building in-memory stores on the shared fake clock."""

    def _factory(options: StoreOptions) -> InMemoryPointStore:
        return InMemoryPointStore(options, clock=clock)

    return _factory
