"""Clearing of all attempt counters for a key."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence

from bruteguard.adapters.store.base import AbstractPointStore
from bruteguard.core.errors import RESET_ERROR_MESSAGE, StoreErrorContext, raise_store_error

StoreErrorSink = Callable[[StoreErrorContext], None]


class ResetController:
    """Deletes a key from every store namespace of a gate.

    Deletions run concurrently and are all attempted even when one fails.
    Applied deletions are not rolled back.
    """

    def __init__(
        self,
        stores: Sequence[AbstractPointStore],
        *,
        handle_store_error: StoreErrorSink = raise_store_error,
    ) -> None:
        self._stores = tuple(stores)
        self._handle_store_error = handle_store_error

    async def reset(
        self,
        key: str,
        *,
        ip: str | None = None,
        identity: str | None = None,
    ) -> None:
        """Delete ``key`` from all stores.

        Args:
            key: Derived store key.
            ip: Client address, reported to the error sink.
            identity: Caller-supplied key, reported to the error sink.

        Raises:
            StoreAppError: If any deletion failed and the sink did not raise.
        """
        results = await asyncio.gather(
            *(store.delete(key) for store in self._stores),
            return_exceptions=True,
        )
        failure = next((r for r in results if isinstance(r, BaseException)), None)
        if failure is None:
            return

        context = StoreErrorContext(
            message=RESET_ERROR_MESSAGE,
            parent=failure,
            key=identity,
            ip=ip,
        )
        self._handle_store_error(context)
        raise context.to_error() from failure
