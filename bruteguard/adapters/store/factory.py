"""Factory for point store backends."""

from __future__ import annotations

from bruteguard.adapters.store.base import AbstractPointStore, StoreFactory, StoreOptions
from bruteguard.adapters.store.in_memory import InMemoryPointStore
from bruteguard.core.config import StoreSettings
from bruteguard.core.errors import ConfigurationAppError

STORE_BACKENDS = ("memory", "redis")


def _prefixed(options: StoreOptions, prefix: str) -> StoreOptions:
    if not prefix:
        return options
    key_prefix = f"{prefix}:{options.key_prefix}" if options.key_prefix else prefix
    return StoreOptions(points=options.points, duration=options.duration, key_prefix=key_prefix)


def create_store_factory(store_settings: StoreSettings) -> StoreFactory:
    """Return a callable building one store per namespace for the configured backend.

    Redis namespaces share a single connection pool.

    Returns:
        StoreFactory: ``StoreOptions -> AbstractPointStore``.

    Raises:
        ConfigurationAppError: If the backend name is unknown.
    """
    backend = store_settings.backend.lower()
    prefix = store_settings.key_prefix

    if backend == "memory":

        def _memory(options: StoreOptions) -> AbstractPointStore:
            return InMemoryPointStore(_prefixed(options, prefix))

        return _memory

    if backend == "redis":
        from redis.asyncio import Redis

        from bruteguard.adapters.store.redis_store import RedisPointStore

        client = Redis.from_url(store_settings.redis_url)

        def _redis(options: StoreOptions) -> AbstractPointStore:
            return RedisPointStore(client, _prefixed(options, prefix))

        return _redis

    raise ConfigurationAppError(
        code="unknown_store_backend",
        message=(
            f"Unknown store backend: '{store_settings.backend}'. "
            f"Supported backends: {', '.join(STORE_BACKENDS)}"
        ),
        details={"backend": store_settings.backend},
    )
