from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config
from pumpitpure.services.games import BackgroundTaskScheduler, GameRegistry, ManualScheduler, list_profiles

socketio = SocketIO(async_mode=None)
games_registry = GameRegistry()

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Round timers: virtual clock in tests, Socket.IO background tasks otherwise
    if flask_app.config.get('SCHEDULER') == 'manual':
        scheduler = ManualScheduler()
    else:
        scheduler = BackgroundTaskScheduler(socketio)
    games_registry.init_app(flask_app, scheduler)

    from pumpitpure.main import main
    flask_app.register_blueprint(main)

    from pumpitpure.api.games import games
    # Mount game routes under /api to match frontend API client
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Register Socket.IO event handlers
    from pumpitpure.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('profiles')
    def profiles_command():
        """Prints the difficulty profiles available to clients."""
        for p in list_profiles():
            click.echo(
                f"{p.key:<8} {p.label:<8} {p.duration_s:>3}s  "
                f"contamination {p.contamination_delay_min_ms}-{p.contamination_delay_max_ms}ms"
            )

    flask_app.cli.add_command(profiles_command)

    flask_app.logger.info(f"[startup] scheduler={type(scheduler).__name__}")
    return flask_app
