import os
import sys
import pytest

# Ensure the project root (containing `config` and `quizlobby`) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from quizlobby import create_app, get_registry, socketio
from quizlobby.models import Question, QuestionType
from quizlobby.services.questions import QuestionSource

NAMESPACE = '/ws'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    QUESTIONS_PATH = os.path.join(CURRENT_DIR, 'data', 'questions.json')
    MAX_PLAYERS = 8
    DEFAULT_QUESTION_LIMIT = 5
    MAX_QUESTION_LIMIT = 99
    SOCKETIO_NAMESPACE = NAMESPACE
    CORS_ORIGINS = ['http://localhost:5173']
    LOG_LEVEL = 'DEBUG'


class Recorder:
    """Broadcaster stand-in that keeps every emitted event."""

    def __init__(self):
        self.events = []

    def __call__(self, event, payload, code):
        self.events.append((event, payload, code))

    def named(self, event):
        return [payload for name, payload, _ in self.events if name == event]

    def clear(self):
        self.events.clear()


def numeric_questions(count=3, answer=100):
    return [
        Question(id=i, text=f'Frage {i}', type=QuestionType.NUMBER, correct_answer=answer)
        for i in range(1, count + 1)
    ]


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def questions():
    return QuestionSource(numeric_questions())


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def registry(flask_app):
    return get_registry(flask_app)


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace=NAMESPACE
    )
    yield test_client
    try:
        test_client.disconnect(namespace=NAMESPACE)
    except Exception:
        pass


@pytest.fixture()
def make_sio_client(flask_app):
    """Factory for additional connected Socket.IO test clients."""
    created = []

    def _make():
        test_client = socketio.test_client(flask_app, namespace=NAMESPACE)
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        if test_client.is_connected(NAMESPACE):
            test_client.disconnect(namespace=NAMESPACE)
