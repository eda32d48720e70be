import os
import sys
import pytest

# Ensure the backend root (containing the `buzzboard` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from buzzboard import create_app, db, socketio
from config import Config


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PERSIST_SYNC = True
    BUZZER_WINDOW_SEC = 0
    ALLOW_NAME_RECONNECT = True
    DEFAULT_ALLOW_NEGATIVE = True
    POINT_VALUES = [100, 200, 300, 400, 500]
    MAX_CATEGORIES = 6


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import buzzboard.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


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
def make_sio(flask_app):
    """Factory for extra socket clients (players, moderator screens)."""
    clients = []

    def _make(game_id=None):
        kwargs = {'namespace': '/ws'}
        if game_id:
            kwargs['query_string'] = f'gameId={game_id}'
        c = socketio.test_client(flask_app, **kwargs)
        clients.append(c)
        return c

    yield _make
    for c in clients:
        try:
            c.disconnect(namespace='/ws')
        except Exception:
            pass


def science_board():
    """One 'Science' category worth 100..500."""
    return [{
        'name': 'Science',
        'questions': [
            {'question': f'Clue {p}', 'answer': f'Answer {p}', 'points': p}
            for p in (100, 200, 300, 400, 500)
        ],
    }]


@pytest.fixture()
def science_game(client):
    """A started game with the science board; returns the snapshot."""
    game = client.post('/api/games', json={'name': 'Quiz Night'}).get_json()
    game = client.put(f"/api/games/{game['id']}", json={'categories': science_board()}).get_json()
    return client.post(f"/api/games/{game['id']}/start").get_json()


@pytest.fixture()
def board_payload():
    return science_board()
