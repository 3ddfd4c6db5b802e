import threading
from typing import Callable, Optional

from .scheduler import Scheduler, TimerHandle


class GameClock:
    """Fixed-period countdown ticker.

    The clock only produces ticks; the owner decides what a tick means and
    must re-check its own liveness inside on_tick. Every start() bumps the
    generation so a tick armed by an earlier run can never fire into a
    later one.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_tick: Callable[[], None],
        interval_s: float = 1.0,
        lock=None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._scheduler = scheduler
        self._on_tick = on_tick
        self._interval_s = float(interval_s)
        self._generation = 0
        self._running = False
        self._handle: Optional[TimerHandle] = None
        self._lock = lock if lock is not None else threading.RLock()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def generation(self) -> int:
        return self._generation

    def start(self) -> None:
        self.stop()
        self._generation += 1
        self._running = True
        self._arm(self._generation)

    def stop(self) -> None:
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _arm(self, generation: int) -> None:
        self._handle = self._scheduler.call_later(self._interval_s, lambda: self._fire(generation))

    def _fire(self, generation: int) -> None:
        with self._lock:
            if not self._running or generation != self._generation:
                return
            self._handle = None
            self._on_tick()
            # on_tick may have stopped or restarted the clock
            if self._running and generation == self._generation and self._handle is None:
                self._arm(generation)
