from flask import Blueprint, jsonify

from quizlobby import get_registry

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({
        'message': 'Welcome to the quiz lobby server!',
        'lobbies': len(get_registry()),
    })
