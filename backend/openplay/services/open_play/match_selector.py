"""
Match selection: which players take the next free court.

Singles pairs the most overdue player (the anchor) with the best skill
match available. Doubles keeps locked partners together where it can and
steers away from immediate rematches between the same two locked pairs.
When no lock-aware grouping is possible it falls back to the lowest
priorities in the queue, which may split a lock.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from openplay.services.open_play.domain import GameMode, Player, players_required
from openplay.services.open_play.locks import find_locked_pairs
from openplay.services.open_play.priority import Candidate, rank_queue

# Two locked pairs whose average skills differ by more than this are a poor match.
MAX_PAIR_SKILL_GAP = 1


@dataclass(frozen=True)
class LockedPair:
    first: Candidate
    second: Candidate

    @property
    def players(self) -> Tuple[Player, Player]:
        return (self.first.player, self.second.player)

    @property
    def average_priority(self) -> float:
        return (self.first.priority + self.second.priority) / 2

    @property
    def average_games(self) -> float:
        return (self.first.player.games_played + self.second.player.games_played) / 2

    @property
    def average_skill(self) -> Optional[float]:
        skills = [p.skill for p in self.players if p.skill is not None]
        if not skills:
            return None
        return sum(skills) / len(skills)

    @property
    def partnered_last_match(self) -> bool:
        a, b = self.players
        return a.last_partner == b.id and b.last_partner == a.id


def select_next_players(queue: Sequence[Player], game_mode: GameMode) -> Optional[Tuple[Player, ...]]:
    """
    Pick the group for the next court.

    Returns None when the queue is shorter than the group size for the
    mode, otherwise exactly 2 (singles) or 4 (doubles) players.
    """
    needed = players_required(game_mode)
    if len(queue) < needed:
        return None

    ranked = rank_queue(queue)
    if game_mode == GameMode.SINGLES:
        return _select_singles(ranked)
    return _select_doubles(ranked)


# ============================================================================
# Singles
# ============================================================================


def _select_singles(ranked: List[Candidate]) -> Tuple[Player, ...]:
    anchor = ranked[0].player
    rest = ranked[1:]

    if anchor.skill is not None:
        opponent = next((c for c in rest if c.player.skill == anchor.skill), None)
        if opponent is None:
            opponent = next(
                (c for c in rest if c.player.skill is not None and abs(c.player.skill - anchor.skill) <= 1),
                None,
            )
        if opponent is not None:
            return (anchor, opponent.player)

    return (ranked[0].player, ranked[1].player)


# ============================================================================
# Doubles
# ============================================================================


def _select_doubles(ranked: List[Candidate]) -> Tuple[Player, ...]:
    raw_pairs, _ = find_locked_pairs(ranked, key=lambda c: c.player)
    pairs = sorted((LockedPair(a, b) for a, b in raw_pairs), key=lambda p: p.average_priority)
    unlocked = [c for c in ranked if c.player.locked_partner_id is None]

    if len(pairs) >= 2:
        top, runner_up = pairs[0], pairs[1]
        if _just_played_each_other(top, runner_up) or _skill_gap(top, runner_up) > MAX_PAIR_SKILL_GAP:
            if len(unlocked) >= 2:
                return top.players + (unlocked[0].player, unlocked[1].player)
            if len(pairs) >= 3:
                # min() keeps the earliest pair on equal gaps
                closest = min(pairs[2:], key=lambda p: _skill_gap(top, p))
                return top.players + closest.players
            # Nothing else to offer: accept the rematch
        return top.players + runner_up.players

    if len(pairs) == 1 and len(unlocked) >= 2:
        return pairs[0].players + (unlocked[0].player, unlocked[1].player)

    return tuple(c.player for c in ranked[:4])


def _just_played_each_other(a: LockedPair, b: LockedPair) -> bool:
    return (
        a.partnered_last_match
        and b.partnered_last_match
        and a.average_games == b.average_games
        and a.average_games > 0
    )


def _skill_gap(a: LockedPair, b: LockedPair) -> float:
    """Absolute gap in average skill; 0 when either side is unrated."""
    skill_a, skill_b = a.average_skill, b.average_skill
    if skill_a is None or skill_b is None:
        return 0
    return abs(skill_a - skill_b)
