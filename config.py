import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _origins(value):
    return [origin.strip() for origin in value.split(',') if origin.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    QUESTIONS_PATH = os.environ.get('QUESTIONS_PATH') or os.path.join(BASE_DIR, 'quizlobby', 'data', 'questions.json')
    # Lobby limits
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '8'))
    DEFAULT_QUESTION_LIMIT = int(os.environ.get('DEFAULT_QUESTION_LIMIT', '5'))
    MAX_QUESTION_LIMIT = int(os.environ.get('MAX_QUESTION_LIMIT', '99'))
    # Socket.IO namespace all lobby events live on
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    CORS_ORIGINS = _origins(os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
    ))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
