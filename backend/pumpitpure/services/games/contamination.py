import logging
import random
import threading
from typing import Callable, Optional

from .profiles import DifficultyProfile
from .rng import random_int
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class ContaminationScheduler:
    """One-shot, re-armable timer that makes clean water dirty again.

    arm() is called each time the water turns clean during a round. The
    callback only tells the owner the delay elapsed; the owner re-checks
    that the round is active and the water is still clean before
    contaminating. Becoming contaminated schedules nothing further.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_due: Callable[[], None],
        rng: Optional[random.Random] = None,
        label: str = '',
        lock=None,
    ) -> None:
        self._scheduler = scheduler
        self._on_due = on_due
        self._rng = rng
        self._label = label
        self._generation = 0
        self._handle: Optional[TimerHandle] = None
        self.last_delay_ms: Optional[int] = None
        self._lock = lock if lock is not None else threading.RLock()

    @property
    def armed(self) -> bool:
        return self._handle is not None and self._handle.pending

    def arm(self, profile: DifficultyProfile) -> int:
        """Cancel any pending event and schedule a new one. Returns the delay in ms."""
        self.cancel()
        delay_ms = random_int(profile.contamination_delay_min_ms, profile.contamination_delay_max_ms, self._rng)
        generation = self._generation
        self._handle = self._scheduler.call_later(delay_ms / 1000.0, lambda: self._fire(generation))
        self.last_delay_ms = delay_ms
        logger.debug(f"[contamination-set] game={self._label} delay={delay_ms}ms")
        return delay_ms

    def cancel(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug(f"[contamination-abort] game={self._label} stale generation={generation}")
                return
            self._handle = None
            self._on_due()
