import os
import random
import sys
import pytest

# Ensure the backend root (containing the `pumpitpure` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from pumpitpure import create_app, games_registry, socketio
from pumpitpure.services.games import ManualScheduler, PumpGame


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:5173']
    DEFAULT_DIFFICULTY = 'normal'
    PUMP_PENALTY = 1
    # Fixed pump count so every round has a gain of exactly 4%
    MIN_PUMPS = 25
    MAX_PUMPS = 25
    TICK_INTERVAL_SEC = 1.0
    MILESTONE_DISPLAY_SEC = 3
    SCHEDULER = 'manual'
    RNG_SEED = 1234


class EventRecorder:
    """Listener that keeps every GameEvent for later assertions."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def names(self):
        return [e.name for e in self.events]

    def of(self, name):
        return [e.data for e in self.events if e.name == name]

    def clear(self):
        self.events.clear()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
    games_registry.clear()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def recorder():
    return EventRecorder()


@pytest.fixture()
def make_game(scheduler, recorder):
    def _make(**kwargs):
        kwargs.setdefault('pump_range', (25, 25))
        kwargs.setdefault('rng', random.Random(7))
        return PumpGame(scheduler=scheduler, listener=recorder, code='TEST', **kwargs)
    return _make
