import heapq
import itertools
from typing import Callable, List, Protocol, Tuple


class TimerHandle:
    """Cancellable reference to a pending deferred callback."""

    __slots__ = ('cancelled', 'fired')

    def __init__(self) -> None:
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class Scheduler(Protocol):
    def call_later(self, delay_s: float, fn: Callable[[], None]) -> TimerHandle:
        """Run fn once after delay_s seconds unless the handle is cancelled first."""
        ...


class BackgroundTaskScheduler:
    """Runs each deferred callback in a Socket.IO background task.

    Works with whatever async mode the SocketIO instance was created with
    (threading, eventlet, gevent) because it only uses socketio.sleep.
    """

    def __init__(self, socketio) -> None:
        self._socketio = socketio

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()

        def _worker(delay: float):
            self._socketio.sleep(delay)
            if handle.cancelled:
                return
            handle.fired = True
            fn()

        self._socketio.start_background_task(_worker, max(0.0, float(delay_s)))
        return handle


class ManualScheduler:
    """Virtual-time scheduler. Nothing runs until advance() is called.

    Callbacks fire in due-time order (ties in scheduling order) and may
    schedule further callbacks, which also fire if they fall due inside
    the advanced window.
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, TimerHandle, Callable[[], None]]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()
        due = self._now + max(0.0, float(delay_s))
        heapq.heappush(self._queue, (due, next(self._seq), handle, fn))
        return handle

    def pending(self) -> int:
        return sum(1 for _, _, h, _ in self._queue if h.pending)

    def advance(self, seconds: float) -> None:
        target = self._now + max(0.0, float(seconds))
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, fn = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            handle.fired = True
            fn()
        self._now = target
