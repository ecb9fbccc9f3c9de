from typing import Dict, List, Optional

from quizlobby.errors import AnswerRejected, LobbyFull
from quizlobby.models import Player, RawAnswer, sanitize_name

MAX_PLAYERS = 8


class PlayerRegistry:
    """Connection identity -> player record for a single lobby.

    Insertion order is join order; evaluation iterates players in that order.
    """

    def __init__(self, max_players: int = MAX_PLAYERS):
        self.max_players = max_players
        self._players: Dict[str, Player] = {}

    def __contains__(self, identity):
        return identity in self._players

    def __len__(self):
        return len(self._players)

    def get(self, identity: str) -> Optional[Player]:
        return self._players.get(identity)

    def all(self) -> List[Player]:
        return list(self._players.values())

    def connected(self) -> List[Player]:
        return [p for p in self._players.values() if p.connected]

    @property
    def connected_count(self) -> int:
        return len(self.connected())

    def join(self, identity: str, name) -> Player:
        if self.connected_count >= self.max_players:
            raise LobbyFull()
        player = Player(id=identity, name=sanitize_name(name))
        self._players[identity] = player
        return player

    def leave(self, identity: str) -> Optional[Player]:
        """Drop the record entirely; a reconnect comes back as a new player."""
        player = self._players.pop(identity, None)
        if player is not None:
            player.connected = False
        return player

    def mark_submitted(self, identity: str, raw_answer: RawAnswer) -> Player:
        player = self._players.get(identity)
        if player is None or player.has_submitted:
            raise AnswerRejected()
        player.pending_answer = raw_answer
        player.has_submitted = True
        return player

    def mark_ready(self, identity: str) -> Optional[Player]:
        player = self._players.get(identity)
        if player is not None:
            player.ready = True
        return player

    def reset_for_round(self) -> None:
        for player in self._players.values():
            player.reset_for_round()

    def all_connected_submitted(self) -> bool:
        connected = self.connected()
        return bool(connected) and all(p.has_submitted for p in connected)

    def all_connected_ready(self) -> bool:
        connected = self.connected()
        return bool(connected) and all(p.ready for p in connected)

    def to_list(self):
        return [p.to_dict() for p in self._players.values()]
