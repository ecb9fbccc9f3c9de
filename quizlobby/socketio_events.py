from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from quizlobby import get_registry, socketio
from quizlobby.errors import AnswerRejected, LobbyError, VoteUnavailable
from quizlobby.services.lobby import normalize_code


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    emit('connected', {'playerId': _get_sid()})


def handle_disconnect(reason=None):
    # A disconnect is just another serialized leave; it may complete a round
    sid = _get_sid()
    lobby = get_registry().leave(sid)
    if lobby is not None:
        current_app.logger.info(f"[disconnect] lobby={lobby.code} sid={sid} reason={reason}")


def handle_join_lobby(data):
    data = data if isinstance(data, dict) else {}
    registry = get_registry()
    sid = _get_sid()
    try:
        code = normalize_code(data.get('code'))
    except LobbyError as exc:
        current_app.logger.info(f"[join-rejected] sid={sid} code={data.get('code')!r} reason={exc.code}")
        return exc.to_dict()

    previous = registry.find_by_player(sid)
    # Enter the room first so the joiner also receives the resulting lobbyUpdate
    join_room(code)
    try:
        lobby, player = registry.join(code, sid, data.get('name'))
    except LobbyError as exc:
        if previous is None or previous.code != code:
            leave_room(code)
        current_app.logger.info(f"[join-rejected] sid={sid} code={code} reason={exc.code}")
        return exc.to_dict()

    if previous is not None and previous.code != lobby.code:
        leave_room(previous.code)
    return {'success': True, 'playerId': player.id, 'lobby': lobby.snapshot()}


def handle_leave_lobby(data=None):
    sid = _get_sid()
    lobby = get_registry().leave(sid)
    if lobby is None:
        return {'success': False}
    leave_room(lobby.code)
    return {'success': True}


def handle_submit_answer(answer):
    sid = _get_sid()
    if isinstance(answer, dict):
        answer = answer.get('answer')
    lobby = get_registry().find_by_player(sid)
    if lobby is None:
        return
    try:
        lobby.submit_answer(sid, answer)
    except AnswerRejected:
        current_app.logger.debug(f"[answer-ignored] lobby={lobby.code} sid={sid} status={lobby.status.value}")


def handle_player_ready(data=None):
    sid = _get_sid()
    lobby = get_registry().find_by_player(sid)
    if lobby is not None:
        lobby.player_ready(sid)


def handle_start_round(data=None):
    sid = _get_sid()
    lobby = get_registry().find_by_player(sid)
    if lobby is not None:
        lobby.start_round(sid)


def handle_vote_end_game(data=None):
    sid = _get_sid()
    lobby = get_registry().find_by_player(sid)
    if lobby is None:
        return VoteUnavailable().to_dict()
    try:
        return lobby.vote_end_game(sid)
    except LobbyError as exc:
        current_app.logger.info(f"[vote-rejected] lobby={lobby.code} sid={sid} reason={exc.code}")
        return exc.to_dict()


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register the lobby Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('joinLobby', handle_join_lobby, namespace=namespace)
    socketio.on_event('leaveLobby', handle_leave_lobby, namespace=namespace)
    socketio.on_event('submitAnswer', handle_submit_answer, namespace=namespace)
    socketio.on_event('playerReady', handle_player_ready, namespace=namespace)
    socketio.on_event('startRound', handle_start_round, namespace=namespace)
    socketio.on_event('voteEndGame', handle_vote_end_game, namespace=namespace)
