import logging
import random
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set, Tuple

from .clock import GameClock
from .contamination import ContaminationScheduler
from .milestones import EPSILON, MILESTONES, Milestone, MilestoneTracker
from .profiles import DEFAULT_DIFFICULTY, DifficultyProfile, get_profile
from .rng import random_int
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

SUCCESS_THRESHOLD = 100.0

# Events emitted to the presentation layer
ROUND_STARTED = 'round_started'
ROUND_ENDED = 'round_ended'
ROUND_RESET = 'round_reset'
PROGRESS_CHANGED = 'progress_changed'
SCORE_CHANGED = 'score_changed'
TIME_CHANGED = 'time_changed'
CONTAMINATION_CHANGED = 'contamination_changed'
MILESTONE_REACHED = 'milestone_reached'
PUMP_RESULT = 'pump_result'
PURIFY_RESULT = 'purify_result'
DIFFICULTY_SELECTED = 'difficulty_selected'
DIFFICULTY_LOCKED = 'difficulty_locked'


class Phase(str, Enum):
    IDLE = "idle"
    ACTIVE_CLEAN = "active_clean"
    ACTIVE_CONTAMINATED = "active_contaminated"
    ENDED = "ended"


@dataclass(frozen=True)
class GameEvent:
    name: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GameState:
    score: int = 0
    progress: float = 0.0
    time_left: int = 0
    active: bool = False
    contaminated: bool = False
    pump_gain: float = 0.0
    required_pumps: int = 0
    triggered_milestones: Set[float] = field(default_factory=set)


@dataclass(frozen=True)
class RoundSummary:
    success: bool
    final_progress: float
    final_score: int
    difficulty: str
    difficulty_label: str
    celebration_seed: Optional[int] = None

    @property
    def message(self) -> str:
        pct = round(self.final_progress)
        if self.success:
            return f"Great job! You filled the meter to {pct}% and scored {self.final_score}."
        return f"Time's up! You reached {pct}% with a score of {self.final_score}. Try again!"

    def to_dict(self):
        return {
            'success': self.success,
            'final_progress': self.final_progress,
            'final_score': self.final_score,
            'difficulty': self.difficulty,
            'difficulty_label': self.difficulty_label,
            'celebration_seed': self.celebration_seed,
            'message': self.message,
        }


Listener = Callable[[GameEvent], None]


class PumpGame:
    """Pump it Pure round logic: pump, purify, countdown, contamination.

    All transitions are total and never raise for player mistakes; invalid
    actions are reported as pump_result/purify_result events with ok=False.
    Timer callbacks from the clock and the contamination scheduler take the
    same lock as player actions and re-check `active` before touching state,
    so a callback left over from an ended round is discarded.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler,
        listener: Optional[Listener] = None,
        rng: Optional[random.Random] = None,
        code: str = '',
        default_difficulty: str = DEFAULT_DIFFICULTY,
        pump_penalty: int = 1,
        pump_range: Tuple[int, int] = (25, 35),
        tick_interval_s: float = 1.0,
        milestone_display_s: int = 3,
        milestones=MILESTONES,
    ) -> None:
        min_pumps, max_pumps = pump_range
        if min_pumps < 1 or min_pumps > max_pumps:
            raise ValueError("pump_range must satisfy 1 <= min <= max")
        if pump_penalty < 0:
            raise ValueError("pump_penalty must be >= 0")

        self.code = code
        self._listener = listener
        self._rng = rng if rng is not None else random.Random()
        self._default_difficulty = default_difficulty
        self._pump_penalty = int(pump_penalty)
        self._pump_range = (int(min_pumps), int(max_pumps))
        self._milestone_display_s = milestone_display_s
        self._lock = threading.RLock()

        self._selected: DifficultyProfile = get_profile(default_difficulty, default_difficulty)
        self._round_profile: Optional[DifficultyProfile] = None
        self._last_summary: Optional[RoundSummary] = None
        self._ended = False
        self._disposed = False
        self._round = 0

        self.state = GameState(time_left=self._selected.duration_s)
        self._milestones = MilestoneTracker(milestones, fired=self.state.triggered_milestones)
        self._clock = GameClock(scheduler, self._on_clock_tick, interval_s=tick_interval_s, lock=self._lock)
        self._contamination = ContaminationScheduler(
            scheduler, self._on_contamination_due, rng=self._rng, label=code, lock=self._lock
        )

    # ---- read-only views ----

    @property
    def phase(self) -> Phase:
        if self.state.active:
            return Phase.ACTIVE_CONTAMINATED if self.state.contaminated else Phase.ACTIVE_CLEAN
        return Phase.ENDED if self._ended else Phase.IDLE

    @property
    def selected_profile(self) -> DifficultyProfile:
        return self._selected

    @property
    def round_profile(self) -> Optional[DifficultyProfile]:
        return self._round_profile

    @property
    def last_summary(self) -> Optional[RoundSummary]:
        return self._last_summary

    @property
    def clock_running(self) -> bool:
        return self._clock.running

    @property
    def contamination_armed(self) -> bool:
        return self._contamination.armed

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            s = self.state
            return {
                'game_code': self.code,
                'phase': self.phase.value,
                'round': self._round,
                'score': s.score,
                'progress': s.progress,
                'time_left': s.time_left,
                'active': s.active,
                'contaminated': s.contaminated,
                'pump_gain': s.pump_gain,
                'required_pumps': s.required_pumps,
                'triggered_milestones': sorted(s.triggered_milestones),
                'selected_difficulty': self._selected.to_dict(),
                'round_difficulty': self._round_profile.to_dict() if self._round_profile else None,
                'difficulty_locked': s.active,
                'last_result': self._last_summary.to_dict() if self._last_summary else None,
            }

    # ---- transitions ----

    def select_difficulty(self, key: Optional[str]) -> DifficultyProfile:
        """Choose the profile for the next round. The active round keeps its own."""
        with self._lock:
            self._selected = get_profile(key, self._default_difficulty)
            if self.phase is Phase.IDLE:
                self._set_time(self._selected.duration_s)
            self._emit(
                DIFFICULTY_SELECTED,
                difficulty=self._selected.key,
                difficulty_label=self._selected.label,
                applies_next_round=self.state.active,
            )
            return self._selected

    def start(self, difficulty_key: Optional[str] = None) -> bool:
        with self._lock:
            if self._disposed:
                return False
            if self.state.active:
                logger.info(f"[round-start-skip] game={self.code} round={self._round} already active")
                return False
            if difficulty_key is not None:
                self._selected = get_profile(difficulty_key, self._default_difficulty)
            profile = self._selected
            self._round_profile = profile
            self._round += 1

            required = random_int(self._pump_range[0], self._pump_range[1], self._rng)
            self.state.required_pumps = required
            self.state.pump_gain = SUCCESS_THRESHOLD / required
            self._milestones.reset()
            self._last_summary = None
            self._ended = False
            self.state.active = True

            logger.info(
                f"[round-start] game={self.code} round={self._round} difficulty={profile.key} "
                f"pumps={required} gain={self.state.pump_gain:.2f}"
            )
            self._emit(
                ROUND_STARTED,
                round=self._round,
                difficulty=profile.key,
                difficulty_label=profile.label,
                duration_s=profile.duration_s,
                required_pumps=required,
                pump_gain=self.state.pump_gain,
            )
            self._emit(DIFFICULTY_LOCKED, value=True)
            self._set_score(0)
            self._set_time(profile.duration_s)
            self._set_progress(0)
            # Starts clean, which arms the first contamination
            self._set_contaminated(False)
            self._clock.start()
            return True

    def pump(self) -> bool:
        with self._lock:
            s = self.state
            if not s.active:
                self._emit(PUMP_RESULT, ok=False, reason='inactive')
                return False

            if s.contaminated:
                self._set_score(s.score - self._pump_penalty)
                self._set_progress(s.progress - s.pump_gain)
                logger.debug(f"[pump-blocked] game={self.code} score={s.score} progress={s.progress:.2f}")
                self._emit(PUMP_RESULT, ok=False, reason='contaminated')
                return False

            self._set_progress(s.progress + s.pump_gain)
            self._set_score(s.score + 1)
            for milestone in self._milestones.check(s.progress):
                self._emit_milestone(milestone)
            self._emit(PUMP_RESULT, ok=True, reason='pumped')

            if s.progress >= SUCCESS_THRESHOLD - EPSILON:
                if s.progress != SUCCESS_THRESHOLD:
                    self._set_progress(SUCCESS_THRESHOLD)
                self.end(won=True)
            return True

    def purify(self) -> bool:
        with self._lock:
            if not self.state.active:
                self._emit(PURIFY_RESULT, ok=False, reason='inactive')
                return False
            if not self.state.contaminated:
                self._emit(PURIFY_RESULT, ok=False, reason='not_needed')
                return False
            self._set_contaminated(False)
            self._emit(PURIFY_RESULT, ok=True, reason='purified')
            return True

    def end(self, won: bool = False) -> Optional[RoundSummary]:
        with self._lock:
            s = self.state
            if not s.active:
                return None
            s.active = False
            self._clock.stop()
            self._contamination.cancel()

            success = bool(won) or s.progress >= SUCCESS_THRESHOLD - EPSILON
            profile = self._round_profile or self._selected
            summary = RoundSummary(
                success=success,
                final_progress=s.progress,
                final_score=s.score,
                difficulty=profile.key,
                difficulty_label=profile.label,
                celebration_seed=random_int(0, 2**31 - 1, self._rng) if success else None,
            )
            self._last_summary = summary
            self._ended = True

            logger.info(
                f"[round-end] game={self.code} round={self._round} success={success} "
                f"progress={s.progress:.1f} score={s.score} time_left={s.time_left}"
            )
            self._emit(ROUND_ENDED, **summary.to_dict())
            self._emit(DIFFICULTY_LOCKED, value=False)
            return summary

    def reset(self) -> None:
        with self._lock:
            self._clock.stop()
            self._contamination.cancel()
            self.state.active = False
            self._ended = False
            self._last_summary = None
            self._round_profile = None
            self._milestones.reset()

            self._set_score(0)
            self._set_time(self._selected.duration_s)
            self._set_progress(0)
            self._set_contaminated(False)
            logger.info(f"[round-reset] game={self.code} round={self._round}")
            self._emit(DIFFICULTY_LOCKED, value=False)
            self._emit(ROUND_RESET, time_left=self.state.time_left, difficulty=self._selected.key)

    def dispose(self) -> None:
        """Stop all timers and detach the listener. The game is unusable afterwards."""
        with self._lock:
            self._clock.stop()
            self._contamination.cancel()
            self.state.active = False
            self._listener = None
            self._disposed = True

    # ---- timer callbacks ----

    def _on_clock_tick(self) -> None:
        with self._lock:
            if not self.state.active:
                logger.debug(f"[timer-abort] game={self.code} tick after round end")
                return
            self._set_time(self.state.time_left - 1)
            if self.state.time_left <= 0:
                self.end(won=False)

    def _on_contamination_due(self) -> None:
        with self._lock:
            if not self.state.active or self.state.contaminated:
                logger.debug(f"[contamination-abort] game={self.code} active={self.state.active}")
                return
            self._set_contaminated(True)

    # ---- clamped setters ----

    def _set_score(self, value: int) -> None:
        self.state.score = max(0, int(value))
        self._emit(SCORE_CHANGED, value=self.state.score)

    def _set_progress(self, value: float) -> None:
        self.state.progress = max(0.0, min(SUCCESS_THRESHOLD, float(value)))
        self._emit(PROGRESS_CHANGED, value=self.state.progress)

    def _set_time(self, value: int) -> None:
        self.state.time_left = max(0, int(value))
        self._emit(TIME_CHANGED, value=self.state.time_left)

    def _set_contaminated(self, flag: bool) -> None:
        self.state.contaminated = bool(flag)
        self._emit(CONTAMINATION_CHANGED, value=self.state.contaminated)
        if not flag and self.state.active:
            self._contamination.arm(self._round_profile or self._selected)

    def _emit_milestone(self, milestone: Milestone) -> None:
        self._emit(
            MILESTONE_REACHED,
            threshold=milestone.threshold,
            message=milestone.message,
            display_seconds=self._milestone_display_s,
        )

    def _emit(self, name: str, **data) -> None:
        if self._listener is not None:
            self._listener(GameEvent(name, data))
