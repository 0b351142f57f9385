"""Time source used for token expiry and authorization deadlines."""

import asyncio
import time


class Clock:
    """Injectable clock.

    Expiry arithmetic uses wall-clock epoch milliseconds; deadlines use a
    monotonic reading so they survive system clock adjustments.
    """

    def now_ms(self) -> int:
        raise NotImplementedError

    def monotonic(self) -> float:
        raise NotImplementedError

    async def sleep(self, seconds: float) -> None:
        raise NotImplementedError


class SystemClock(Clock):
    """Clock backed by the real system time."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
