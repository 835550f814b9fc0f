import asyncio
from typing import Optional


class CancellationSignal:
    """Caller-owned switch that aborts an in-flight request.

    One signal can be shared by several calls; once cancelled it stays cancelled.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
