from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set

# Progress is a float; treat values this close to a threshold as reaching it
EPSILON = 1e-9


@dataclass(frozen=True)
class Milestone:
    threshold: float
    message: str

    def to_dict(self):
        return {'threshold': self.threshold, 'message': self.message}


MILESTONES: Sequence[Milestone] = (
    Milestone(10, "Nice start! The first drops are flowing."),
    Milestone(25, "A quarter full. Keep pumping!"),
    Milestone(40, "The meter is filling up fast!"),
    Milestone(50, "Halfway there!"),
    Milestone(75, "Three quarters full. Almost there!"),
    Milestone(90, "So close! Just a few more pumps."),
)


class MilestoneTracker:
    """Emit-once-per-round progress thresholds."""

    def __init__(self, milestones: Iterable[Milestone] = MILESTONES, fired: Optional[Set[float]] = None) -> None:
        ordered = sorted(milestones, key=lambda m: m.threshold)
        for m in ordered:
            if not (0 < m.threshold <= 100):
                raise ValueError(f"milestone threshold must be in (0, 100]: {m.threshold}")
        self._milestones: List[Milestone] = ordered
        # May be shared with the owning GameState, so only ever mutate in place
        self._fired: Set[float] = fired if fired is not None else set()

    @property
    def milestones(self) -> List[Milestone]:
        return list(self._milestones)

    @property
    def fired(self) -> Set[float]:
        return set(self._fired)

    def reset(self) -> None:
        self._fired.clear()

    def check(self, progress: float) -> List[Milestone]:
        """Mark and return every unfired milestone at or below progress, ascending."""
        reached = []
        for m in self._milestones:
            if m.threshold in self._fired:
                continue
            if m.threshold <= progress + EPSILON:
                self._fired.add(m.threshold)
                reached.append(m)
        return reached
