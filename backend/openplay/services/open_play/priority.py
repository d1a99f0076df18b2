"""
Queue priority: who is most overdue to play.

priority = games_played * 1000 + queue_index

Lower plays sooner. Games played dominates; queue position only breaks
ties among equally rested players.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from openplay.services.open_play.domain import Player

GAMES_WEIGHT = 1000


@dataclass(frozen=True)
class Candidate:
    player: Player
    priority: int


def priority(player: Player, queue_index: int) -> int:
    return player.games_played * GAMES_WEIGHT + queue_index


def rank_queue(queue: Sequence[Player]) -> List[Candidate]:
    """Queue as candidates, lowest priority first (stable)."""
    candidates = [Candidate(player=p, priority=priority(p, i)) for i, p in enumerate(queue)]
    candidates.sort(key=lambda c: c.priority)
    return candidates
