"""Lobby error taxonomy.

Join and vote failures are returned to the caller as a structured result
(see ``LobbyError.to_dict``); they are never broadcast to the lobby.
"""


class LobbyError(Exception):
    code = 'LobbyError'
    message = 'Unbekannter Fehler.'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'success': False, 'error': self.message, 'code': self.code}


class LobbyNotFound(LobbyError):
    code = 'LobbyNotFound'
    message = 'Lobby nicht gefunden.'


class LobbyFull(LobbyError):
    code = 'LobbyFull'
    message = 'Die Lobby ist bereits voll.'


class InvalidName(LobbyError):
    code = 'InvalidName'
    message = 'Ungültiger Name.'


class InvalidCode(LobbyError):
    code = 'InvalidCode'
    message = 'Ungültiger Lobby-Code.'


class AlreadyVoted(LobbyError):
    code = 'AlreadyVoted'
    message = 'Du hast bereits abgestimmt.'


class VoteUnavailable(LobbyError):
    code = 'VoteUnavailable'
    message = 'Abstimmung ist gerade nicht möglich.'


class AnswerRejected(LobbyError):
    code = 'AnswerRejected'
    message = 'Antwort wird nicht angenommen.'
