import logging

import click
from flask import Flask, current_app
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config

socketio = SocketIO(async_mode=None)


def _make_broadcaster(namespace):
    def broadcast(event, payload, code):
        socketio.emit(event, payload, to=code, namespace=namespace)
    return broadcast


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    log_level = flask_app.config.get('LOG_LEVEL', 'INFO')
    logging.getLogger('quizlobby').setLevel(log_level)
    flask_app.logger.setLevel(log_level)

    origins = flask_app.config.get('CORS_ORIGINS', [])
    CORS(flask_app, origins=origins)
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # One registry per application; handlers reach it through current_app
    from quizlobby.services.lobby import LobbyRegistry
    from quizlobby.services.questions import QuestionSource, load_questions

    questions = QuestionSource(load_questions(flask_app.config['QUESTIONS_PATH']))
    flask_app.extensions['lobby_registry'] = LobbyRegistry(
        questions,
        emit=_make_broadcaster(flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')),
        max_players=flask_app.config.get('MAX_PLAYERS', 8),
        default_question_limit=flask_app.config.get('DEFAULT_QUESTION_LIMIT', 5),
        max_question_limit=flask_app.config.get('MAX_QUESTION_LIMIT', 99),
    )

    from quizlobby.main import main
    flask_app.register_blueprint(main)

    from quizlobby.api.lobbies import lobbies
    flask_app.register_blueprint(lobbies, url_prefix='/api/lobbies')

    from quizlobby.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/ws'))

    @click.command('questions-check')
    @click.option('--path', default=None, help='Catalog file to check instead of QUESTIONS_PATH.')
    def questions_check_command(path):
        """Loads the question catalog and prints counts per question type."""
        from quizlobby.services.questions import CatalogError

        path = path or flask_app.config['QUESTIONS_PATH']
        try:
            catalog = load_questions(path)
        except (OSError, CatalogError) as exc:
            raise click.ClickException(str(exc))
        counts = {}
        for question in catalog:
            counts[question.type.value] = counts.get(question.type.value, 0) + 1
        click.echo(f'{len(catalog)} questions in {path}')
        for qtype in sorted(counts):
            click.echo(f'  {qtype}: {counts[qtype]}')

    flask_app.cli.add_command(questions_check_command)

    return flask_app


def get_registry(app=None):
    return (app or current_app).extensions['lobby_registry']
