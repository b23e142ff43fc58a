"""Cooperative cancellation shared by every task of one export run."""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from mastrfetch.errors import Cancelled

T = TypeVar("T")


class CancelToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise Cancelled(self._reason or "cancelled")

    async def race(self, aw: Awaitable[T]) -> T:
        """
        Await `aw`, aborting it as soon as the token fires.

        The awaitable is cancelled (not left running) when the token wins.
        """
        work = asyncio.ensure_future(aw)
        if self.cancelled:
            work.cancel()
            raise Cancelled(self._reason or "cancelled")
        stop = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, stop}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            stop.cancel()

        if work.done():
            return work.result()

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise Cancelled(self._reason or "cancelled")
