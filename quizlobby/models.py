from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

DEFAULT_PLAYER_NAME = 'Spieler'
MAX_NAME_LENGTH = 18

# A submitted answer as it arrived from the channel: free text or a JSON number.
RawAnswer = Union[str, int, float]


class QuestionType(str, Enum):
    NUMBER = 'number'
    TEXT = 'text'


class LobbyStatus(str, Enum):
    WAITING = 'waiting'
    COLLECTING = 'collecting'
    RESULTS = 'results'
    FINISHED = 'finished'


class GameMode(str, Enum):
    FIXED = 'fixed'
    UNLIMITED = 'unlimited'


class FinishReason(str, Enum):
    VOTE = 'vote'
    LIMIT = 'limit'


@dataclass(frozen=True)
class Question:
    id: int
    text: str
    type: QuestionType
    correct_answer: Optional[Union[float, str]] = None

    @property
    def is_numeric(self) -> bool:
        return self.type == QuestionType.NUMBER and isinstance(self.correct_answer, (int, float))

    def to_dict(self):
        # correct answer stays server-side while the round is running
        return {
            'id': self.id,
            'question': self.text,
            'type': self.type.value,
        }


@dataclass
class Player:
    id: str
    name: str
    connected: bool = True
    ready: bool = False
    has_submitted: bool = False
    pending_answer: Optional[RawAnswer] = None

    def reset_for_round(self) -> None:
        self.ready = False
        self.has_submitted = False
        self.pending_answer = None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'ready': self.ready,
            'connected': self.connected,
            'hasSubmitted': self.has_submitted,
        }


@dataclass
class PlayerStatistics:
    player_id: str
    name: str
    rounds_participated: int = 0
    valid_answer_count: int = 0
    total_deviation: float = 0.0
    points: int = 0
    last_deviation: Optional[float] = None
    last_points_awarded: int = 0

    @property
    def average_deviation(self) -> Optional[float]:
        if self.valid_answer_count == 0:
            return None
        return self.total_deviation / self.valid_answer_count

    @property
    def has_played(self) -> bool:
        return self.rounds_participated > 0 or self.points > 0 or self.valid_answer_count > 0

    def to_dict(self):
        return {
            'playerId': self.player_id,
            'name': self.name,
            'roundsParticipated': self.rounds_participated,
            'validAnswerCount': self.valid_answer_count,
            'totalDeviation': self.total_deviation,
            'averageDeviation': self.average_deviation,
            'points': self.points,
            'lastDeviation': self.last_deviation,
            'lastPointsAwarded': self.last_points_awarded,
        }


@dataclass(frozen=True)
class ResultEntry:
    player_id: str
    name: str
    answer: Optional[RawAnswer]
    deviation: Optional[float]
    is_closest: bool = False
    is_farthest: bool = False
    points_awarded: int = 0

    def to_dict(self):
        return {
            'playerId': self.player_id,
            'name': self.name,
            'answer': self.answer,
            'deviation': self.deviation,
            'isClosest': self.is_closest,
            'isFarthest': self.is_farthest,
            'pointsAwarded': self.points_awarded,
        }


@dataclass(frozen=True)
class RoundResult:
    question_id: int
    question_text: str
    type: QuestionType
    correct_answer: Optional[Union[float, str]]
    entries: tuple = ()

    def to_dict(self):
        return {
            'questionId': self.question_id,
            'questionText': self.question_text,
            'type': self.type.value,
            'correctAnswer': self.correct_answer,
            'entries': [entry.to_dict() for entry in self.entries],
        }


@dataclass(frozen=True)
class HighscoreEntry:
    rank: int
    stats: PlayerStatistics

    def to_dict(self):
        payload = self.stats.to_dict()
        payload['rank'] = self.rank
        return payload


@dataclass(frozen=True)
class GameSummary:
    reason: FinishReason
    highscore: tuple
    rounds_played: int

    def to_dict(self):
        return {
            'reason': self.reason.value,
            'highscore': [entry.to_dict() for entry in self.highscore],
            'roundsPlayed': self.rounds_played,
        }


@dataclass(frozen=True)
class LobbySettings:
    mode: GameMode = GameMode.FIXED
    question_limit: Optional[int] = None

    def to_dict(self):
        return {
            'mode': self.mode.value,
            'questionLimit': self.question_limit,
        }


@dataclass
class EndVote:
    voters: List[str] = field(default_factory=list)

    def __contains__(self, player_id):
        return player_id in self.voters

    def __len__(self):
        return len(self.voters)

    def add(self, player_id: str) -> None:
        if player_id not in self.voters:
            self.voters.append(player_id)

    def discard(self, player_id: str) -> None:
        if player_id in self.voters:
            self.voters.remove(player_id)

    def clear(self) -> None:
        self.voters.clear()


def sanitize_name(name) -> str:
    """Trim and truncate a display name, falling back to the default."""
    trimmed = str(name or '').strip()[:MAX_NAME_LENGTH]
    return trimmed or DEFAULT_PLAYER_NAME


def coerce_raw_answer(value) -> RawAnswer:
    """Normalize a submitted payload to text or a number; parsing happens at evaluation."""
    if isinstance(value, bool) or value is None:
        return str(value or '').strip()
    if isinstance(value, (int, float)):
        return value
    return str(value).strip()
