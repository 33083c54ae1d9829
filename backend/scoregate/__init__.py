from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def build_protocol(flask_app):
    """Wire the session/leaderboard stores selected by SCORE_STORE_BACKEND."""
    from scoregate.services.integrity import (
        SessionProtocol,
        InMemorySessionStore,
        InMemoryLeaderboardStore,
        SqlSessionStore,
        SqlLeaderboardStore,
    )
    from scoregate.socketio_events import broadcast_score_accepted

    ttl = int(flask_app.config.get('SESSION_TTL_SEC', 600))
    backend = flask_app.config.get('SCORE_STORE_BACKEND', 'sql')
    if backend == 'memory':
        sessions, leaderboard = InMemorySessionStore(ttl=ttl), InMemoryLeaderboardStore()
    elif backend == 'sql':
        sessions, leaderboard = SqlSessionStore(ttl=ttl), SqlLeaderboardStore()
    else:
        raise ValueError(f"Unknown SCORE_STORE_BACKEND: {backend!r}")

    return SessionProtocol(
        sessions,
        leaderboard,
        logger=flask_app.logger,
        on_accept=broadcast_score_accepted,
        leaderboard_limit=int(flask_app.config.get('LEADERBOARD_LIMIT', 100)),
    )


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    origins = flask_app.config.get('CORS_ORIGINS') or []
    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=origins)
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from scoregate import models  # noqa: F401  register tables with the metadata

    flask_app.extensions['scoregate'] = build_protocol(flask_app)

    from scoregate.main import main
    flask_app.register_blueprint(main)

    from scoregate.api.game import game
    flask_app.register_blueprint(game, url_prefix='/api/game')

    from scoregate.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api')

    from scoregate.services.integrity.errors import ScoreGateError

    @flask_app.errorhandler(ScoreGateError)
    def handle_score_gate_error(exc):
        if exc.status_code >= 500:
            flask_app.logger.error(f"[error] {exc.message}: {exc.__cause__!r}")
        return jsonify(exc.to_dict()), exc.status_code

    from scoregate.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('sessions-purge')
    def sessions_purge_command():
        """Deletes game sessions whose TTL has elapsed."""
        with flask_app.app_context():
            removed = flask_app.extensions['scoregate'].sessions.purge_expired()
            print(f'Purged {removed} expired session(s).')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(sessions_purge_command)

    return flask_app


def get_protocol():
    from flask import current_app
    return current_app.extensions['scoregate']
