from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from pumpitpure import socketio, games_registry
from pumpitpure.services.games import GameEvent
from typing import Dict, Any, Set
import logging

logger = logging.getLogger(__name__)


def room_for(game_code: str) -> str:
    return f"game:{game_code.upper()}"


def make_broadcaster(game_code: str):
    """Build the listener that relays a game's events to its Socket.IO room."""
    room = room_for(game_code)

    def _broadcast(event: GameEvent) -> None:
        payload = dict(event.data)
        payload['game_code'] = game_code
        # Use socketio.emit since this may be called from a background task
        socketio.emit(event.name, payload, to=room, namespace='/ws')

    return _broadcast


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # The last socket to go takes its game with it
    _detach(_get_sid())


def handle_join_game(data):
    game = _require_game(data)
    if game is None:
        return
    sid = _get_sid()
    ctx = _sid_to_ctx.get(sid)
    if ctx and ctx.get('game_code') != game.code:
        leave_room(room_for(ctx['game_code']))
        _detach(sid)
    room = room_for(game.code)
    join_room(room)
    _sid_to_ctx[sid] = {'game_code': game.code}
    _members.setdefault(game.code, set()).add(sid)
    _cancel_scheduled_end(game.code)
    emit('joined', {'room': room, 'state': game.snapshot()})


def handle_leave_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code or not isinstance(game_code, str):
        emit('error', {'message': 'game_code is required'})
        return
    room = room_for(game_code)
    leave_room(room)
    sid = _get_sid()
    ctx = _sid_to_ctx.get(sid)
    if ctx and ctx.get('game_code') == game_code.upper():
        _detach(sid)
    emit('left', {'room': room})


def handle_select_difficulty(data):
    game = _require_game(data)
    if game is None:
        return
    game.select_difficulty((data or {}).get('difficulty'))


def handle_start_round(data):
    game = _require_game(data)
    if game is None:
        return
    if not game.start((data or {}).get('difficulty')):
        emit('error', {'message': 'Round already in progress', 'game_code': game.code})


def handle_pump(data):
    game = _require_game(data)
    if game is not None:
        game.pump()


def handle_purify(data):
    game = _require_game(data)
    if game is not None:
        game.purify()


def handle_reset_round(data):
    game = _require_game(data)
    if game is not None:
        game.reset()


def handle_ping(data):
    emit('pong', data or {})


# ---- Socket context helpers ----

_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
# game code -> sids currently joined to its room
_members: Dict[str, Set[str]] = {}
# game code -> token of the pending end; a newer join drops it
_end_pending: Dict[str, object] = {}

def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore

def _require_game(data):
    """Resolve the game named in an event payload, reporting problems to the sender."""
    game_code = (data or {}).get('game_code')
    if not game_code or not isinstance(game_code, str):
        emit('error', {'message': 'game_code is required'})
        return None
    game = games_registry.get(game_code)
    if game is None:
        emit('error', {'message': 'Game not found', 'game_code': game_code.upper()})
        return None
    return game


def _detach(sid: str) -> None:
    ctx = _sid_to_ctx.pop(sid, None)
    if not ctx:
        return
    game_code = ctx['game_code']
    members = _members.get(game_code)
    if members is not None:
        members.discard(sid)
        if members:
            return
        _members.pop(game_code, None)
    grace = float(current_app.config.get('EMPTY_GAME_GRACE_SEC', 0))
    # In tests, end immediately for determinism; in prod, allow a grace period
    if current_app.config.get('TESTING') or grace <= 0:
        _end_session(game_code)
        return
    _schedule_end_if_empty(game_code, grace)


def _end_session(game_code: str) -> None:
    _end_pending.pop(game_code, None)
    if games_registry.remove(game_code):
        socketio.emit('session_ended', {'game_code': game_code}, to=room_for(game_code), namespace='/ws')


def _schedule_end_if_empty(game_code: str, delay_sec: float) -> None:
    if _members.get(game_code):
        return
    token = object()
    _end_pending[game_code] = token
    logger.info(f"[game-end-scheduled] game={game_code} in={delay_sec}s")

    def _runner():
        socketio.sleep(delay_sec)
        if not _members.get(game_code) and _end_pending.get(game_code) is token:
            _end_session(game_code)

    socketio.start_background_task(_runner)


def _cancel_scheduled_end(game_code: str) -> None:
    _end_pending.pop(game_code, None)

_HANDLERS = (
    ('connect', handle_connect),
    ('disconnect', handle_disconnect),
    ('join_game', handle_join_game),
    ('leave_game', handle_leave_game),
    ('select_difficulty', handle_select_difficulty),
    ('start_round', handle_start_round),
    ('pump', handle_pump),
    ('purify', handle_purify),
    ('reset_round', handle_reset_round),
    ('ping', handle_ping),
)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for name, handler in _HANDLERS:
        socketio.on_event(name, handler, namespace='/ws')

    if testing:
        # Test-only mirror on default namespace
        for name, handler in _HANDLERS:
            socketio.on_event(name, handler, namespace='/')
