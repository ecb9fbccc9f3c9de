import math
import re
import unicodedata
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from quizlobby.models import HighscoreEntry, PlayerStatistics, RawAnswer, ResultEntry

_NUMBER_RE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')


def parse_answer(raw: Optional[RawAnswer]) -> Optional[float]:
    """Parse a raw answer into a finite float, or None.

    Text answers are trimmed and may use a comma as decimal separator
    ("3,5" == 3.5). Blank text, booleans and non-finite values are invalid.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        try:
            value = float(raw)
        except OverflowError:
            return None
    else:
        text = str(raw).strip().replace(',', '.', 1)
        if not _NUMBER_RE.match(text):
            return None
        value = float(text)
    return value if math.isfinite(value) else None


def _name_key(name: str):
    decomposed = unicodedata.normalize('NFKD', name)
    folded = ''.join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return folded, name


def _highscore_key(stats: PlayerStatistics):
    average = stats.average_deviation
    return (
        -stats.points,
        average is None,
        average if average is not None else 0.0,
        stats.total_deviation,
        _name_key(stats.name),
    )


class ScoreBoard:
    """Per-lobby statistics, kept for the lifetime of the lobby."""

    def __init__(self):
        self._stats: Dict[str, PlayerStatistics] = {}

    def __contains__(self, player_id):
        return player_id in self._stats

    def get(self, player_id: str) -> Optional[PlayerStatistics]:
        return self._stats.get(player_id)

    def register(self, player_id: str, name: str) -> PlayerStatistics:
        stats = self._stats.get(player_id)
        if stats is None:
            stats = PlayerStatistics(player_id=player_id, name=name)
            self._stats[player_id] = stats
        return stats

    def record(self, entries: Sequence[ResultEntry]) -> Dict[str, int]:
        """Fold one evaluated round into the statistics.

        ``entries`` is the round's answer list in evaluation order; an entry
        with a ``deviation`` counts as a valid answer. Returns the points
        awarded this round per player id.

        Valid answers are ranked by deviation (stable, so ties keep the entry
        order) and the k-th ranked player gets ``len(entries) - k`` points.
        """
        participant_count = len(entries)
        awards = {}
        for entry in entries:
            stats = self.register(entry.player_id, entry.name)
            stats.rounds_participated += 1
            stats.last_points_awarded = 0
            awards[entry.player_id] = 0
            if entry.deviation is None:
                stats.last_deviation = None
                continue
            stats.valid_answer_count += 1
            stats.total_deviation += entry.deviation
            stats.last_deviation = entry.deviation

        ranked = sorted((e for e in entries if e.deviation is not None), key=lambda e: e.deviation)
        for k, entry in enumerate(ranked):
            points = participant_count - k
            stats = self._stats[entry.player_id]
            stats.points += points
            stats.last_points_awarded = points
            awards[entry.player_id] = points
        return awards

    def build_highscore(self) -> List[HighscoreEntry]:
        played = [s for s in self._stats.values() if s.has_played]
        ordered = sorted(played, key=_highscore_key)
        return [HighscoreEntry(rank=i + 1, stats=replace(s)) for i, s in enumerate(ordered)]
