"""Redis-backed point store.

Shared across processes and hosts. Every upsert runs as one MULTI/EXEC
transaction (``SET NX EX`` + ``INCRBY`` + ``PTTL``), so concurrent callers on
the same key each observe a distinct consumed-points value.
"""

from __future__ import annotations

from redis.asyncio import Redis

from bruteguard.adapters.store.base import (
    AbstractPointStore,
    CapacityExhaustedError,
    StoreOptions,
    StoreResult,
)


class RedisPointStore(AbstractPointStore):
    """Point store keeping one integer with a TTL per key."""

    def __init__(self, client: Redis, options: StoreOptions) -> None:
        if options.points < 0:
            raise ValueError("points must be >= 0")
        if options.duration < 1:
            raise ValueError("duration must be >= 1")

        super().__init__(options)
        self._client = client

    def _redis_key(self, key: str) -> str:
        if not self.options.key_prefix:
            return key
        return f"{self.options.key_prefix}:{key}"

    def _to_result(self, consumed: int, pttl: int) -> StoreResult:
        return StoreResult(
            consumed_points=int(consumed),
            ms_before_next=max(0, int(pttl)),
            remaining_points=max(0, self.options.points - int(consumed)),
        )

    async def _upsert(self, key: str, points: int, duration: int) -> StoreResult:
        redis_key = self._redis_key(key)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(redis_key, 0, ex=duration, nx=True)
            pipe.incrby(redis_key, points)
            pipe.pttl(redis_key)
            _, consumed, pttl = await pipe.execute()
        return self._to_result(consumed, pttl)

    async def consume(self, key: str, points: int = 1) -> StoreResult:
        if points < 1:
            raise ValueError("points must be >= 1")
        result = await self._upsert(key, points, self.options.duration)
        if result.consumed_points > self.options.points:
            raise CapacityExhaustedError(result)
        return result

    async def penalty(
        self,
        key: str,
        points: int = 1,
        *,
        custom_duration: int | None = None,
    ) -> StoreResult:
        duration = custom_duration if custom_duration else self.options.duration
        return await self._upsert(key, points, duration)

    async def get(self, key: str) -> StoreResult | None:
        redis_key = self._redis_key(key)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.get(redis_key)
            pipe.pttl(redis_key)
            consumed, pttl = await pipe.execute()
        if consumed is None:
            return None
        return self._to_result(consumed, pttl)

    async def delete(self, key: str) -> None:
        await self._client.delete(self._redis_key(key))

    async def close(self) -> None:
        await self._client.aclose()
