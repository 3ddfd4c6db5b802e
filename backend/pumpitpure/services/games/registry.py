import logging
import random
import string
import threading
from typing import Callable, Dict, Iterable, Optional

from .engine import Listener, PumpGame
from .profiles import DEFAULT_DIFFICULTY
from .rng import make_rng
from .scheduler import ManualScheduler, Scheduler

logger = logging.getLogger(__name__)


def generate_game_code(taken: Iterable[str], length: int = 4) -> str:
    """Generate a short game code not present in taken."""
    taken = set(taken)
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in taken:
            return code


class GameRegistry:
    """In-memory table of running games keyed by game code.

    Bound to a Flask app through init_app(), which reads the game settings
    from the app config. Nothing here survives a process restart.
    """

    def __init__(self) -> None:
        self._games: Dict[str, PumpGame] = {}
        self._lock = threading.Lock()
        self.scheduler: Scheduler = ManualScheduler()
        self._settings: Dict = {}
        self._rng_seed = None

    def init_app(self, app, scheduler: Scheduler) -> None:
        cfg = app.config
        self.scheduler = scheduler
        self._settings = {
            'default_difficulty': cfg.get('DEFAULT_DIFFICULTY', DEFAULT_DIFFICULTY),
            'pump_penalty': int(cfg.get('PUMP_PENALTY', 1)),
            'pump_range': (int(cfg.get('MIN_PUMPS', 25)), int(cfg.get('MAX_PUMPS', 35))),
            'tick_interval_s': float(cfg.get('TICK_INTERVAL_SEC', 1.0)),
            'milestone_display_s': int(cfg.get('MILESTONE_DISPLAY_SEC', 3)),
        }
        self._rng_seed = cfg.get('RNG_SEED')
        self.clear()
        app.extensions['pump_games'] = self

    def create(
        self,
        listener_factory: Optional[Callable[[str], Listener]] = None,
        difficulty: Optional[str] = None,
    ) -> PumpGame:
        with self._lock:
            code = generate_game_code(self._games.keys())
            game = PumpGame(
                scheduler=self.scheduler,
                listener=listener_factory(code) if listener_factory else None,
                rng=make_rng(self._rng_seed),
                code=code,
                **self._settings,
            )
            self._games[code] = game
        if difficulty:
            game.select_difficulty(difficulty)
        logger.info(f"[game-create] game={code} difficulty={game.selected_profile.key}")
        return game

    def get(self, code: Optional[str]) -> Optional[PumpGame]:
        if not code or not isinstance(code, str):
            return None
        return self._games.get(code.upper())

    def remove(self, code: Optional[str]) -> bool:
        if not isinstance(code, str):
            return False
        with self._lock:
            game = self._games.pop(code.upper(), None)
        if game is None:
            return False
        game.dispose()
        logger.info(f"[game-remove] game={game.code}")
        return True

    def clear(self) -> None:
        with self._lock:
            games = list(self._games.values())
            self._games.clear()
        for game in games:
            game.dispose()

    def __len__(self) -> int:
        return len(self._games)

    def __contains__(self, code) -> bool:
        return isinstance(code, str) and code.upper() in self._games
