import asyncio
import math
import time
from typing import Callable


def now_ms() -> int:
    return int(time.time() * 1000)


def monotonic() -> float:
    return time.monotonic()


def ceil_seconds(delta: float) -> int:
    """Whole seconds left in delta, rounded up, clamped to >= 0."""
    if delta <= 0:
        return 0
    return int(math.ceil(delta))


class _NullHandle:
    def cancel(self) -> None:
        return None


class AsyncioScheduler:
    """
    Schedules callbacks on the running asyncio loop.

    Outside a running loop (e.g. a synchronous caller building a session) nothing
    is scheduled; timers derive their remaining time from the clock on every
    read, so a missing tick only delays the expiry callback, never the value.
    """

    def call_later(self, delay: float, callback: Callable[[], None]):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return _NullHandle()
        return loop.call_later(delay, callback)
