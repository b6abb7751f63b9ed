import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    """Time source used by the supervisor for every timer it owns."""

    def now(self) -> float:
        ...

    async def sleep(self, seconds: float) -> None:
        ...


class MonotonicClock:
    """Default clock backed by ``time.monotonic`` and ``asyncio.sleep``."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
