"""Tests for store backend selection."""

import pytest

from bruteguard.adapters.store.base import StoreOptions
from bruteguard.adapters.store.factory import create_store_factory
from bruteguard.adapters.store.in_memory import InMemoryPointStore
from bruteguard.adapters.store.redis_store import RedisPointStore
from bruteguard.core.config import StoreSettings
from bruteguard.core.errors import ConfigurationAppError


def test_memory_backend_builds_independent_stores() -> None:
    factory = create_store_factory(StoreSettings(backend="memory", key_prefix="bg"))

    free = factory(StoreOptions(points=1, duration=10, key_prefix="free"))
    block = factory(StoreOptions(points=1, duration=10, key_prefix="block"))

    assert isinstance(free, InMemoryPointStore)
    assert free is not block
    assert free.options.key_prefix == "bg:free"


def test_backend_name_is_case_insensitive() -> None:
    factory = create_store_factory(StoreSettings(backend="MEMORY"))

    assert isinstance(factory(StoreOptions(points=1, duration=1)), InMemoryPointStore)


def test_redis_backend_builds_redis_stores() -> None:
    factory = create_store_factory(
        StoreSettings(backend="redis", redis_url="redis://localhost:6379/5", key_prefix="bg")
    )

    store = factory(StoreOptions(points=1, duration=10, key_prefix="counter"))

    assert isinstance(store, RedisPointStore)
    assert store.options.key_prefix == "bg:counter"


def test_empty_prefix_leaves_namespace_untouched() -> None:
    factory = create_store_factory(StoreSettings(backend="memory", key_prefix=""))

    assert factory(StoreOptions(points=1, duration=1, key_prefix="free")).options.key_prefix == "free"


def test_unknown_backend_raises_configuration_error() -> None:
    with pytest.raises(ConfigurationAppError) as exc_info:
        create_store_factory(StoreSettings(backend="mongo"))

    assert exc_info.value.code == "unknown_store_backend"
    assert "mongo" in exc_info.value.message
    assert exc_info.value.details == {"backend": "mongo"}
