"""Point store interfaces.

The attempt gate depends on this abstraction (not a concrete backend) so the
same accounting runs against process memory, Redis, or anything else that
can atomically add points to a key with an expiry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class StoreOptions:
    """Capacity and window of one store namespace.

    Attributes:
        points: Points a key may consume within one window.
        duration: Window length in seconds; starts with the first point.
        key_prefix: Namespace prepended to keys by shared backends.
    """

    points: int
    duration: int
    key_prefix: str = ""


@dataclass(frozen=True)
class StoreResult:
    """State of a key after (or without) a store operation.

    Attributes:
        consumed_points: Points consumed in the current window.
        ms_before_next: Milliseconds until the window expires.
        remaining_points: Points still available (0 when exhausted).
    """

    consumed_points: int
    ms_before_next: int
    remaining_points: int = 0


class CapacityExhaustedError(Exception):
    """Raised by ``consume`` when a key has no points left.

    This is the expected rejection; every other exception raised by a store
    is a store failure.
    """

    def __init__(self, result: StoreResult) -> None:
        super().__init__(f"capacity exhausted ({result.consumed_points} points consumed)")
        self.result = result


class AbstractPointStore(ABC):
    """Interface for point stores.

    ``consume`` and ``penalty`` must be atomic per key with respect to
    concurrent callers.
    """

    def __init__(self, options: StoreOptions) -> None:
        self.options = options

    @abstractmethod
    async def consume(self, key: str, points: int = 1) -> StoreResult:
        """Consume points for a key.

        Raises:
            CapacityExhaustedError: If consumed points exceed capacity.
        """
        raise NotImplementedError

    @abstractmethod
    async def penalty(
        self,
        key: str,
        points: int = 1,
        *,
        custom_duration: int | None = None,
    ) -> StoreResult:
        """Add points without a capacity check.

        A record created by this call expires after ``custom_duration``
        seconds (or the configured duration); an existing record keeps its
        expiry.
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, key: str) -> StoreResult | None:
        """Return the current state of a key, or None if absent/expired."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key; deleting an absent key is a no-op."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources; safe to call more than once."""
        return None


StoreFactory = Callable[[StoreOptions], AbstractPointStore]
