import logging
from dataclasses import replace
from typing import Callable, Optional

from quizlobby.errors import AlreadyVoted, AnswerRejected, VoteUnavailable
from quizlobby.models import (
    EndVote,
    FinishReason,
    GameMode,
    GameSummary,
    LobbySettings,
    LobbyStatus,
    Question,
    ResultEntry,
    RoundResult,
    coerce_raw_answer,
)
from .players import PlayerRegistry
from .questions import QuestionSource
from .scoring import ScoreBoard, parse_answer

logger = logging.getLogger(__name__)


class RoundEngine:
    """Round lifecycle for one lobby.

    waiting -> collecting -> results -> waiting ... and finally -> finished
    (from collecting/results, by question limit or end vote). ``finished`` is
    terminal. ``status`` is only ever assigned inside the transition methods.

    The engine does no locking of its own; its owner serializes every call.
    """

    def __init__(
        self,
        code: str,
        settings: LobbySettings,
        players: PlayerRegistry,
        scoreboard: ScoreBoard,
        questions: QuestionSource,
        emit: Callable[[str, dict], None],
        publish_state: Callable[[], None],
    ):
        self.code = code
        self.settings = settings
        self.players = players
        self.scoreboard = scoreboard
        self._questions = questions
        self._emit = emit
        self._publish_state = publish_state

        self.status = LobbyStatus.WAITING
        self.current_question: Optional[Question] = None
        self.last_result: Optional[RoundResult] = None
        self.rounds_played = 0
        self.end_vote = EndVote()
        self.summary: Optional[GameSummary] = None
        self._used_question_ids = set()

    @property
    def finished(self) -> bool:
        return self.status == LobbyStatus.FINISHED

    @property
    def limit_reached(self) -> bool:
        return (
            self.settings.mode == GameMode.FIXED
            and self.settings.question_limit is not None
            and self.rounds_played >= self.settings.question_limit
        )

    @property
    def votes_required(self) -> int:
        return self.players.connected_count

    # ---- transitions ----

    def start_round(self) -> bool:
        if self.status not in (LobbyStatus.WAITING, LobbyStatus.RESULTS):
            return False
        if self.limit_reached:
            self.finalize(FinishReason.LIMIT)
            return False

        question = self._questions.pick(self._used_question_ids)
        self._used_question_ids.add(question.id)
        self.players.reset_for_round()
        self.end_vote.clear()
        self.current_question = question
        self.last_result = None
        self.status = LobbyStatus.COLLECTING
        logger.info(f"[round-start] lobby={self.code} round={self.rounds_played + 1} question={question.id}")

        self._emit('roundStarted', {
            'question': question.text,
            'type': question.type.value,
            'questionId': question.id,
            'round': self.rounds_played + 1,
        })
        self._publish_state()
        return True

    def submit_answer(self, identity: str, raw) -> None:
        if self.status != LobbyStatus.COLLECTING:
            raise AnswerRejected()
        player = self.players.mark_submitted(identity, coerce_raw_answer(raw))
        self._emit('answerReceived', {'playerId': player.id, 'name': player.name})
        if self.players.all_connected_submitted():
            self.evaluate_round()
        else:
            self._publish_state()

    def evaluate_round(self, finalize_on_limit: bool = True) -> Optional[RoundResult]:
        if self.status != LobbyStatus.COLLECTING:
            return None
        question = self.current_question

        entries = []
        for player in self.players.connected():
            deviation = None
            if question.is_numeric:
                value = parse_answer(player.pending_answer)
                if value is not None:
                    deviation = abs(value - question.correct_answer)
            entries.append(ResultEntry(
                player_id=player.id,
                name=player.name,
                answer=player.pending_answer,
                deviation=deviation,
            ))

        valid = [e for e in entries if e.deviation is not None]
        closest_id = farthest_id = None
        if valid:
            # min/max keep the first of equal elements
            closest_id = min(valid, key=lambda e: e.deviation).player_id
            farthest_id = max(valid, key=lambda e: e.deviation).player_id

        awards = self.scoreboard.record(entries)
        result = RoundResult(
            question_id=question.id,
            question_text=question.text,
            type=question.type,
            correct_answer=question.correct_answer,
            entries=tuple(
                replace(
                    e,
                    is_closest=e.player_id == closest_id,
                    is_farthest=e.player_id == farthest_id,
                    points_awarded=awards.get(e.player_id, 0),
                )
                for e in entries
            ),
        )

        self.last_result = result
        self.rounds_played += 1
        self.status = LobbyStatus.RESULTS
        logger.info(
            f"[round-evaluate] lobby={self.code} round={self.rounds_played} "
            f"answers={len(entries)} valid={len(valid)}"
        )
        self._emit('roundResults', result.to_dict())

        if finalize_on_limit and self.limit_reached:
            self.finalize(FinishReason.LIMIT, results_override=result)
        else:
            self._publish_state()
        return result

    def player_ready(self, identity: str) -> bool:
        if self.status not in (LobbyStatus.WAITING, LobbyStatus.RESULTS):
            return False
        if self.players.mark_ready(identity) is None:
            return False
        self._emit('playersUpdate', self.players.to_list())
        if self.players.all_connected_ready():
            self.start_round()
        return True

    def vote_end_game(self, identity: str) -> bool:
        """Register an end-game vote; True when it finished the game."""
        if self.settings.mode != GameMode.UNLIMITED or self.finished or identity not in self.players:
            raise VoteUnavailable()
        if identity in self.end_vote:
            raise AlreadyVoted()
        self.end_vote.add(identity)
        logger.info(
            f"[vote] lobby={self.code} player={identity} votes={len(self.end_vote)}/{self.votes_required}"
        )
        if self._vote_quorum():
            self.finalize(FinishReason.VOTE)
            return True
        self._publish_state()
        return False

    def player_left(self, identity: str) -> None:
        """Re-check round and vote gates after a departure."""
        self.end_vote.discard(identity)
        if self.status == LobbyStatus.COLLECTING and self.players.all_connected_submitted():
            self.evaluate_round()
            if not self.finished and self._vote_quorum():
                self.finalize(FinishReason.VOTE)
        elif len(self.end_vote) and self._vote_quorum():
            self.finalize(FinishReason.VOTE)
        else:
            self._publish_state()

    def finalize(self, reason: FinishReason, results_override: Optional[RoundResult] = None) -> Optional[GameSummary]:
        if self.finished:
            return None
        if self.status == LobbyStatus.COLLECTING and results_override is None:
            self.evaluate_round(finalize_on_limit=False)
        if results_override is not None:
            self.last_result = results_override

        self.status = LobbyStatus.FINISHED
        self.current_question = None
        self.end_vote.clear()
        self.summary = GameSummary(
            reason=reason,
            highscore=tuple(self.scoreboard.build_highscore()),
            rounds_played=self.rounds_played,
        )
        logger.info(f"[finish] lobby={self.code} reason={reason.value} rounds={self.rounds_played}")
        self._emit('gameSummary', self.summary.to_dict())
        self._publish_state()
        return self.summary

    def _vote_quorum(self) -> bool:
        required = self.votes_required
        return required > 0 and self.settings.mode == GameMode.UNLIMITED and len(self.end_vote) >= required
