import os
import sys
import pytest

# Ensure the backend root (containing the `scoregate` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from scoregate import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SCORE_STORE_BACKEND = 'sql'
    SESSION_TTL_SEC = 600
    LEADERBOARD_LIMIT = 100
    CORS_ORIGINS = ['http://localhost:3000']


class MemoryTestConfig(TestConfig):
    SCORE_STORE_BACKEND = 'memory'


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture(params=[TestConfig, MemoryTestConfig], ids=['sql', 'memory'])
def flask_app(request):
    application = create_app(request.param)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def sql_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def protocol(flask_app):
    return flask_app.extensions['scoregate']


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


def make_trace(seed, score=10, events=None, elapsed=None, cleared=None):
    """A trace that passes every rule for ``score`` unless overridden."""
    if events is None:
        events = [i * 2000 for i in range(max(score - 1, 0))]
    if elapsed is None:
        elapsed = max(20000, score * 2000)
    return {
        'seed': seed,
        'inputEvents': events,
        'elapsedMillis': elapsed,
        'obstaclesCleared': score if cleared is None else cleared,
    }
