from flask import Blueprint, jsonify, request, current_app
from pumpitpure import games_registry
from pumpitpure.services.games import list_profiles
from pumpitpure.socketio_events import make_broadcaster


games = Blueprint('games', __name__)


def _lookup(game_code):
    game = games_registry.get(game_code)
    if game is None:
        return None, (jsonify({'error': 'Game not found'}), 404)
    return game, None


@games.route('/difficulties', methods=['GET'])
def get_difficulties():
    default = current_app.config.get('DEFAULT_DIFFICULTY', 'normal')
    return jsonify({
        'default': default,
        'profiles': [p.to_dict() for p in list_profiles()],
    })


@games.route('/create', methods=['POST'])
def create_game():
    data = request.get_json(silent=True) or {}
    game = games_registry.create(make_broadcaster, difficulty=data.get('difficulty'))
    return jsonify({
        'message': 'New game created!',
        'game_code': game.code,
        'state': game.snapshot(),
    }), 201


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    game, error = _lookup(game_code)
    if error:
        return error
    return jsonify(game.snapshot())


@games.route('/<string:game_code>/difficulty', methods=['POST'])
def select_difficulty(game_code):
    game, error = _lookup(game_code)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    if not data.get('difficulty'):
        return jsonify({'error': 'difficulty is required'}), 400
    profile = game.select_difficulty(data['difficulty'])
    return jsonify({'ok': True, 'difficulty': profile.to_dict(), 'state': game.snapshot()})


@games.route('/<string:game_code>/start', methods=['POST'])
def start_round(game_code):
    game, error = _lookup(game_code)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    if not game.start(data.get('difficulty')):
        return jsonify({'error': 'Round already in progress', 'state': game.snapshot()}), 409
    return jsonify({'ok': True, 'state': game.snapshot()})


@games.route('/<string:game_code>/pump', methods=['POST'])
def pump(game_code):
    game, error = _lookup(game_code)
    if error:
        return error
    ok = game.pump()
    return jsonify({'ok': ok, 'state': game.snapshot()})


@games.route('/<string:game_code>/purify', methods=['POST'])
def purify(game_code):
    game, error = _lookup(game_code)
    if error:
        return error
    ok = game.purify()
    return jsonify({'ok': ok, 'state': game.snapshot()})


@games.route('/<string:game_code>/reset', methods=['POST'])
def reset_round(game_code):
    game, error = _lookup(game_code)
    if error:
        return error
    game.reset()
    return jsonify({'ok': True, 'state': game.snapshot()})


@games.route('/<string:game_code>', methods=['DELETE'])
def delete_game(game_code):
    if not games_registry.remove(game_code):
        return jsonify({'error': 'Game not found'}), 404
    return jsonify({'message': 'Game closed.'})
