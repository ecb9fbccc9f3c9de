from flask import Blueprint, current_app, jsonify, request

from quizlobby import get_registry
from quizlobby.errors import LobbyError, LobbyNotFound

lobbies = Blueprint('lobbies', __name__)


@lobbies.errorhandler(LobbyError)
def handle_lobby_error(exc):
    status = 404 if isinstance(exc, LobbyNotFound) else 400
    return jsonify({'error': exc.message, 'code': exc.code}), status


@lobbies.route('', methods=['POST'])
def create_lobby():
    """
    Creates a new lobby. Body: {"mode": "fixed"|"unlimited", "questionCount": int}.
    """
    data = request.get_json(silent=True) or {}
    lobby = get_registry().create(mode=data.get('mode'), question_count=data.get('questionCount'))
    current_app.logger.info(f"[http-create] lobby={lobby.code}")
    return jsonify({
        'code': lobby.code,
        'settings': lobby.settings.to_dict(),
    }), 201


@lobbies.route('/<string:code>', methods=['GET'])
def get_lobby_state(code):
    """
    Returns the full state of a lobby.
    """
    lobby = get_registry().get(code)
    return jsonify(lobby.snapshot()), 200
