import random

import pytest

from pumpitpure import socketio
from pumpitpure.services.games import PumpGame
from pumpitpure.services.games.clock import GameClock
from pumpitpure.services.games.contamination import ContaminationScheduler
from pumpitpure.services.games.profiles import DifficultyProfile
from pumpitpure.services.games.scheduler import BackgroundTaskScheduler, ManualScheduler, TimerHandle

FIXED = DifficultyProfile('fixed', 'Fixed', 10, 1000, 1000)


def test_manual_scheduler_fires_in_due_order():
    sched = ManualScheduler()
    fired = []
    sched.call_later(2.0, lambda: fired.append('b'))
    sched.call_later(1.0, lambda: fired.append('a'))
    sched.call_later(2.0, lambda: fired.append('c'))
    sched.advance(1.5)
    assert fired == ['a']
    sched.advance(1.0)
    assert fired == ['a', 'b', 'c']
    assert sched.now() == pytest.approx(2.5)


def test_manual_scheduler_skips_cancelled_and_runs_nested():
    sched = ManualScheduler()
    fired = []
    handle = sched.call_later(1.0, lambda: fired.append('cancelled'))
    sched.call_later(0.5, lambda: sched.call_later(0.5, lambda: fired.append('nested')))
    handle.cancel()
    assert sched.pending() == 1
    sched.advance(1.0)
    assert fired == ['nested']
    assert sched.pending() == 0


def test_timer_handle_states():
    handle = TimerHandle()
    assert handle.pending
    handle.cancel()
    assert not handle.pending


def test_clock_ticks_once_per_interval():
    sched = ManualScheduler()
    ticks = []
    clock = GameClock(sched, lambda: ticks.append(sched.now()))
    clock.start()
    sched.advance(3.0)
    assert ticks == [1.0, 2.0, 3.0]
    clock.stop()
    sched.advance(5.0)
    assert len(ticks) == 3
    assert not clock.running


def test_clock_restart_replaces_previous_run():
    sched = ManualScheduler()
    ticks = []
    clock = GameClock(sched, lambda: ticks.append(sched.now()))
    clock.start()
    sched.advance(0.6)
    clock.start()
    sched.advance(1.0)
    assert ticks == [pytest.approx(1.6)]
    assert clock.generation == 2


def test_clock_stopped_from_inside_tick_does_not_rearm():
    sched = ManualScheduler()
    ticks = []

    def on_tick():
        ticks.append(sched.now())
        if len(ticks) == 2:
            clock.stop()

    clock = GameClock(sched, on_tick)
    clock.start()
    sched.advance(10.0)
    assert len(ticks) == 2
    assert sched.pending() == 0


def test_clock_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        GameClock(ManualScheduler(), lambda: None, interval_s=0)


def test_contamination_fires_once_after_delay():
    sched = ManualScheduler()
    due = []
    contamination = ContaminationScheduler(sched, lambda: due.append(sched.now()))
    assert contamination.arm(FIXED) == 1000
    assert contamination.armed
    sched.advance(0.5)
    assert due == []
    sched.advance(0.5)
    assert due == [pytest.approx(1.0)]
    assert not contamination.armed
    sched.advance(10.0)
    assert len(due) == 1


def test_contamination_rearm_cancels_pending_event():
    sched = ManualScheduler()
    due = []
    contamination = ContaminationScheduler(sched, lambda: due.append(sched.now()))
    contamination.arm(FIXED)
    sched.advance(0.5)
    contamination.arm(FIXED)
    sched.advance(5.0)
    assert due == [pytest.approx(1.5)]


def test_contamination_cancel_discards_event():
    sched = ManualScheduler()
    due = []
    contamination = ContaminationScheduler(sched, lambda: due.append(True))
    contamination.arm(FIXED)
    contamination.cancel()
    sched.advance(5.0)
    assert due == []


def test_contamination_delay_within_profile_bounds():
    sched = ManualScheduler()
    contamination = ContaminationScheduler(sched, lambda: None)
    profile = DifficultyProfile('r', 'R', 10, 900, 2500)
    for _ in range(50):
        assert 900 <= contamination.arm(profile) <= 2500


def test_background_scheduler_ticks_and_stops_on_reset(flask_app, recorder):
    # Real time: 50 ms ticks through Socket.IO background tasks
    game = PumpGame(
        scheduler=BackgroundTaskScheduler(socketio),
        listener=recorder,
        rng=random.Random(3),
        code='LIVE',
        pump_range=(25, 25),
        tick_interval_s=0.05,
    )
    try:
        game.start('hard')
        socketio.sleep(0.3)
        assert game.state.time_left < 30
        assert recorder.of('time_changed')

        game.reset()
        assert game.state.time_left == 30
        recorder.clear()
        socketio.sleep(0.2)
        assert game.state.time_left == 30
        assert recorder.of('time_changed') == []
    finally:
        game.dispose()


def test_background_scheduler_skips_cancelled_callback(flask_app):
    fired = []
    sched = BackgroundTaskScheduler(socketio)
    kept = sched.call_later(0.01, lambda: fired.append('kept'))
    dropped = sched.call_later(0.01, lambda: fired.append('dropped'))
    dropped.cancel()
    socketio.sleep(0.2)
    assert fired == ['kept']
    assert kept.fired and not kept.pending
    assert not dropped.fired
