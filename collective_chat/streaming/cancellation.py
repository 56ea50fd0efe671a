"""
Cancellation token shared by the stream relay and the client consumer.
"""

import asyncio
from typing import Optional


class CancellationToken:
    """
    One-shot cancellation signal.

    Created when a turn starts and checked between chunk reads. Cancelling is
    idempotent; the first reason wins.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
