from typing import Callable, Optional

from authflow.utils.time import AsyncioScheduler, ceil_seconds, monotonic

TICK_SECONDS = 1.0


class CooldownTimer:
    """
    Countdown gating the resend action.

    INVARIANT: seconds_remaining == max(0, ceil(deadline - clock())).
    The value is derived on every read; the periodic tick only notifies
    listeners (`on_tick`, `on_expire`) and stops itself at zero.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], float]] = None,
        scheduler=None,
        on_tick: Optional[Callable[[int], None]] = None,
        on_expire: Optional[Callable[[], None]] = None,
    ):
        self._clock = clock or monotonic
        self._scheduler = scheduler or AsyncioScheduler()
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._deadline: Optional[float] = None
        self._handle = None
        # incremented on start/reset/dispose so a stale tick can tell it is stale
        self._generation = 0
        self._disposed = False

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def seconds_remaining(self) -> int:
        if self._deadline is None:
            return 0
        return ceil_seconds(self._deadline - self._clock())

    @property
    def running(self) -> bool:
        return self.seconds_remaining > 0

    @property
    def disposed(self) -> bool:
        return self._disposed

    def start(self, duration_seconds: int) -> None:
        if self._disposed:
            return
        self._cancel_tick()
        self._generation += 1
        self._deadline = self._clock() + max(0, int(duration_seconds))
        self._schedule(self._generation)

    def reset(self) -> None:
        self._cancel_tick()
        self._generation += 1
        self._deadline = None

    def dispose(self) -> None:
        self.reset()
        self._disposed = True

    def _cancel_tick(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self, generation: int) -> None:
        self._handle = self._scheduler.call_later(TICK_SECONDS, lambda: self._tick(generation))

    def _tick(self, generation: int) -> None:
        if self._disposed or generation != self._generation:
            return
        self._handle = None
        remaining = self.seconds_remaining
        if self._on_tick:
            self._on_tick(remaining)
        if remaining > 0:
            self._schedule(generation)
            return
        if self._on_expire:
            self._on_expire()
