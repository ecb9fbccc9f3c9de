import logging
import random
import threading
from typing import Callable, Dict, Optional, Tuple

from quizlobby.errors import InvalidCode, InvalidName, LobbyNotFound
from quizlobby.models import FinishReason, GameMode, LobbySettings, LobbyStatus, Player
from .players import MAX_PLAYERS, PlayerRegistry
from .questions import QuestionSource
from .rounds import RoundEngine
from .scoring import ScoreBoard

logger = logging.getLogger(__name__)

# No I, O, 0 or 1: too easy to misread when a code is read out loud.
LOBBY_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
LOBBY_CODE_LENGTH = 4
DEFAULT_QUESTION_LIMIT = 5
MAX_QUESTION_LIMIT = 99

Broadcaster = Callable[[str, dict, str], None]


def _discard(event, payload, code):
    pass


def generate_lobby_code(taken, rng=None) -> str:
    """Generate a short lobby code that is not in ``taken``."""
    rng = rng or random
    while True:
        code = ''.join(rng.choice(LOBBY_CODE_ALPHABET) for _ in range(LOBBY_CODE_LENGTH))
        if code not in taken:
            return code


def normalize_code(code) -> str:
    if not isinstance(code, str):
        raise InvalidCode()
    normalized = code.strip().upper()
    if len(normalized) != LOBBY_CODE_LENGTH or any(ch not in LOBBY_CODE_ALPHABET for ch in normalized):
        raise InvalidCode()
    return normalized


def build_settings(mode=None, question_count=None,
                   default_limit=DEFAULT_QUESTION_LIMIT, max_limit=MAX_QUESTION_LIMIT) -> LobbySettings:
    try:
        game_mode = GameMode(mode) if mode else GameMode.FIXED
    except ValueError:
        game_mode = GameMode.FIXED
    if game_mode == GameMode.UNLIMITED:
        return LobbySettings(mode=game_mode, question_limit=None)

    try:
        limit = int(question_count) if question_count is not None else default_limit
    except (TypeError, ValueError):
        limit = default_limit
    return LobbySettings(mode=game_mode, question_limit=max(1, min(max_limit, limit)))


class LobbyController:
    """All state of one lobby behind a single lock.

    Every public method holds ``_lock`` for its whole run, including any
    cascade it triggers (auto-evaluation, auto-start, finalize) and the
    broadcasts those emit.
    """

    def __init__(self, code: str, settings: LobbySettings, questions: QuestionSource,
                 emit: Broadcaster = _discard, max_players: int = MAX_PLAYERS):
        self.code = code
        self.settings = settings
        self._broadcast = emit
        self._lock = threading.RLock()
        self.disposed = False
        self.players = PlayerRegistry(max_players=max_players)
        self.scoreboard = ScoreBoard()
        self.engine = RoundEngine(
            code=code,
            settings=settings,
            players=self.players,
            scoreboard=self.scoreboard,
            questions=questions,
            emit=self._emit,
            publish_state=self.broadcast_lobby,
        )

    @classmethod
    def create(cls, settings: LobbySettings, questions: QuestionSource, taken=(), rng=None, **kwargs):
        return cls(generate_lobby_code(taken, rng=rng), settings, questions, **kwargs)

    @property
    def status(self) -> LobbyStatus:
        return self.engine.status

    @property
    def connected_count(self) -> int:
        return self.players.connected_count

    def join(self, identity: str, name) -> Player:
        if name is not None and (isinstance(name, bool) or not isinstance(name, (str, int, float))):
            raise InvalidName()
        with self._lock:
            if self.disposed:
                raise LobbyNotFound()
            player = self.players.join(identity, name)
            self.scoreboard.register(player.id, player.name)
            logger.info(f"[join] lobby={self.code} player={player.id} name={player.name!r} connected={self.connected_count}")
            self.broadcast_lobby()
            return player

    def leave(self, identity: str) -> int:
        """Remove a player; returns the connected count left behind."""
        with self._lock:
            player = self.players.leave(identity)
            if player is None:
                return self.connected_count
            remaining = self.connected_count
            logger.info(f"[leave] lobby={self.code} player={identity} connected={remaining}")
            if remaining:
                self.engine.player_left(identity)
            return remaining

    def close_if_empty(self) -> bool:
        with self._lock:
            if self.connected_count == 0:
                self.disposed = True
            return self.disposed

    def submit_answer(self, identity: str, raw) -> None:
        with self._lock:
            self.engine.submit_answer(identity, raw)

    def player_ready(self, identity: str) -> bool:
        with self._lock:
            return self.engine.player_ready(identity)

    def start_round(self, identity: str) -> bool:
        """Manual start of the very first round by any member."""
        with self._lock:
            if identity not in self.players or self.status != LobbyStatus.WAITING or self.engine.rounds_played:
                return False
            return self.engine.start_round()

    def vote_end_game(self, identity: str) -> dict:
        with self._lock:
            finished = self.engine.vote_end_game(identity)
            return {
                'success': True,
                'finished': finished,
                'votes': len(self.engine.end_vote),
                'required': self.engine.votes_required,
            }

    def finalize(self, reason: FinishReason = FinishReason.VOTE):
        with self._lock:
            return self.engine.finalize(reason)

    def snapshot(self) -> dict:
        with self._lock:
            engine = self.engine
            collecting = engine.status == LobbyStatus.COLLECTING
            state = {
                'code': self.code,
                'players': self.players.to_list(),
                'status': engine.status.value,
                'currentQuestion': engine.current_question.to_dict() if collecting else None,
                'lastResults': engine.last_result.to_dict() if engine.last_result else None,
                'settings': self.settings.to_dict(),
                'roundsPlayed': engine.rounds_played,
            }
            if self.settings.mode == GameMode.UNLIMITED and not engine.finished:
                state['endVote'] = {
                    'count': len(engine.end_vote),
                    'required': engine.votes_required,
                    'voters': [
                        {'id': pid, 'name': self.players.get(pid).name}
                        for pid in engine.end_vote.voters
                        if pid in self.players
                    ],
                }
            if engine.finished and engine.summary is not None:
                state['finalSummary'] = engine.summary.to_dict()
            return state

    def broadcast_lobby(self) -> None:
        self._emit('lobbyUpdate', self.snapshot())

    def _emit(self, event: str, payload: dict) -> None:
        self._broadcast(event, payload, self.code)


class LobbyRegistry:
    """Process-wide lobby code -> LobbyController map.

    Created once per application and handed to the request handlers; tracks
    which lobby each connection identity belongs to.
    """

    def __init__(self, questions: QuestionSource, emit: Broadcaster = _discard,
                 max_players: int = MAX_PLAYERS,
                 default_question_limit: int = DEFAULT_QUESTION_LIMIT,
                 max_question_limit: int = MAX_QUESTION_LIMIT,
                 rng=None):
        self.questions = questions
        self._emit = emit
        self.max_players = max_players
        self.default_question_limit = default_question_limit
        self.max_question_limit = max_question_limit
        self._rng = rng
        self._lobbies: Dict[str, LobbyController] = {}
        self._memberships: Dict[str, str] = {}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._lobbies)

    def __contains__(self, code):
        return code in self._lobbies

    def create(self, mode=None, question_count=None) -> LobbyController:
        settings = build_settings(
            mode, question_count,
            default_limit=self.default_question_limit,
            max_limit=self.max_question_limit,
        )
        with self._lock:
            lobby = LobbyController.create(
                settings, self.questions,
                taken=self._lobbies, rng=self._rng,
                emit=self._emit, max_players=self.max_players,
            )
            self._lobbies[lobby.code] = lobby
        logger.info(
            f"[lobby-create] lobby={lobby.code} mode={settings.mode.value} limit={settings.question_limit}"
        )
        return lobby

    def get(self, code) -> LobbyController:
        normalized = normalize_code(code)
        with self._lock:
            lobby = self._lobbies.get(normalized)
        if lobby is None:
            raise LobbyNotFound()
        return lobby

    def find_by_player(self, identity: str) -> Optional[LobbyController]:
        with self._lock:
            code = self._memberships.get(identity)
            return self._lobbies.get(code) if code else None

    def join(self, code, identity: str, name) -> Tuple[LobbyController, Player]:
        lobby = self.get(code)
        previous = self.find_by_player(identity)
        if previous is lobby:
            existing = lobby.players.get(identity)
            if existing is not None:
                return lobby, existing

        player = lobby.join(identity, name)
        if previous is not None and previous is not lobby:
            self.leave(identity)
        with self._lock:
            self._memberships[identity] = lobby.code
        return lobby, player

    def leave(self, identity: str) -> Optional[LobbyController]:
        with self._lock:
            code = self._memberships.pop(identity, None)
            lobby = self._lobbies.get(code) if code else None
        if lobby is None:
            return None
        remaining = lobby.leave(identity)
        if remaining == 0 and lobby.close_if_empty():
            self.dispose(lobby.code)
        return lobby

    def dispose(self, code: str) -> None:
        with self._lock:
            lobby = self._lobbies.pop(code, None)
            if lobby is None:
                return
            lobby.disposed = True
            for identity in [i for i, c in self._memberships.items() if c == code]:
                del self._memberships[identity]
        logger.info(f"[lobby-dispose] lobby={code}")
