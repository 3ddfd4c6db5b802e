import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of browser origins allowed to talk to the server
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
    ).split(',') if o.strip()]
    # Difficulty used when the client sends none or an unknown key
    DEFAULT_DIFFICULTY = os.environ.get('DEFAULT_DIFFICULTY', 'normal')
    # Points lost for pumping contaminated water
    PUMP_PENALTY = int(os.environ.get('PUMP_PENALTY', '1'))
    # Required pumps per round are drawn from [MIN_PUMPS, MAX_PUMPS]
    MIN_PUMPS = int(os.environ.get('MIN_PUMPS', '25'))
    MAX_PUMPS = int(os.environ.get('MAX_PUMPS', '35'))
    # Countdown tick period (seconds)
    TICK_INTERVAL_SEC = float(os.environ.get('TICK_INTERVAL_SEC', '1.0'))
    # How long clients should show a milestone message (seconds)
    MILESTONE_DISPLAY_SEC = int(os.environ.get('MILESTONE_DISPLAY_SEC', '3'))
    # 'background' runs timers as Socket.IO background tasks, 'manual' uses a virtual clock
    SCHEDULER = os.environ.get('SCHEDULER', 'background')
    # Optional: seed for reproducible rounds. Unset means nondeterministic.
    RNG_SEED = os.environ.get('RNG_SEED')
    # Seconds an unattended game is kept after its last socket leaves; 0 ends it at once
    EMPTY_GAME_GRACE_SEC = float(os.environ.get('EMPTY_GAME_GRACE_SEC', '10'))
