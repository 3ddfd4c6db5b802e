import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DifficultyProfile:
    """Round settings picked from the difficulty selector.

    Contamination delays are in milliseconds, duration in seconds.
    """
    key: str
    label: str
    duration_s: int
    contamination_delay_min_ms: int
    contamination_delay_max_ms: int

    def to_dict(self):
        return {
            'key': self.key,
            'label': self.label,
            'duration_s': self.duration_s,
            'contamination_delay_min_ms': self.contamination_delay_min_ms,
            'contamination_delay_max_ms': self.contamination_delay_max_ms,
        }


DEFAULT_DIFFICULTY = 'normal'

PROFILES: Dict[str, DifficultyProfile] = {
    'easy': DifficultyProfile('easy', 'Easy', 60, 1500, 3500),
    'normal': DifficultyProfile('normal', 'Normal', 45, 900, 2500),
    'hard': DifficultyProfile('hard', 'Hard', 30, 600, 1800),
}


def normalize_key(key) -> str:
    # Anything that is not a string (e.g. a number from JSON) counts as unknown
    return key.strip().lower() if isinstance(key, str) else ''


def get_profile(key: Optional[str], default: str = DEFAULT_DIFFICULTY) -> DifficultyProfile:
    """Look up a profile, falling back to the default for unknown keys."""
    profile = PROFILES.get(normalize_key(key))
    if profile is not None:
        return profile
    fallback = PROFILES.get(normalize_key(default)) or PROFILES[DEFAULT_DIFFICULTY]
    if key:
        logger.info(f"[difficulty-fallback] requested={key!r} using={fallback.key}")
    return fallback


def list_profiles() -> List[DifficultyProfile]:
    return list(PROFILES.values())
