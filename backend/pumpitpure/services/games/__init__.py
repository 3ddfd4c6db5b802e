"""Game domain services: round state machine and its timers.

This package contains the pure game logic that HTTP routes and socket
handlers call into. Nothing here imports Flask; transport concerns stay
in the adapters, which observe the game through emitted GameEvents.
"""

from .engine import GameEvent, GameState, Phase, PumpGame, RoundSummary
from .profiles import DifficultyProfile, get_profile, list_profiles
from .registry import GameRegistry
from .scheduler import BackgroundTaskScheduler, ManualScheduler

__all__ = [
    'BackgroundTaskScheduler',
    'DifficultyProfile',
    'GameEvent',
    'GameRegistry',
    'GameState',
    'ManualScheduler',
    'Phase',
    'PumpGame',
    'RoundSummary',
    'get_profile',
    'list_profiles',
]
