"""Point store adapters.

This package provides the storage abstraction the attempt gate runs
against, with an in-memory backend for single-process deployments and tests
and a Redis backend for shared state.
"""

from bruteguard.adapters.store.base import (
    AbstractPointStore,
    CapacityExhaustedError,
    StoreFactory,
    StoreOptions,
    StoreResult,
)
from bruteguard.adapters.store.factory import create_store_factory
from bruteguard.adapters.store.in_memory import InMemoryPointStore

__all__ = [
    "AbstractPointStore",
    "CapacityExhaustedError",
    "InMemoryPointStore",
    "StoreFactory",
    "StoreOptions",
    "StoreResult",
    "create_store_factory",
]
