"""
Team formation: split a selected group into two sides.

Doubles rules, in order:
  - two locked pairs: a coin flip decides which pair is team 1
  - one locked pair: a coin flip decides its side, the other two play together
  - no locks: skill-balanced (high+low vs mid+mid) when anyone is rated,
    otherwise a random split; either way the cross pairing is used instead
    when it strictly reduces the number of repeat partnerships
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from openplay.services.open_play.domain import GameMode, Player
from openplay.services.open_play.locks import find_locked_pairs


@dataclass(frozen=True)
class Teams:
    team1: Tuple[Player, ...]
    team2: Tuple[Player, ...]


def form_teams(
    group: Sequence[Player],
    game_mode: GameMode,
    avoid_recent_partners: bool = True,
    rng: Optional[random.Random] = None,
) -> Optional[Teams]:
    """Return the two sides, or None when the group size does not fit the mode."""
    rng = rng or random.Random()
    players = list(group)

    if game_mode == GameMode.SINGLES:
        if len(players) != 2:
            return None
        return Teams(team1=(players[0],), team2=(players[1],))

    if len(players) != 4:
        return None

    pairs, unlocked = find_locked_pairs(players)

    if len(pairs) == 2:
        first, second = pairs
        if _coin_flip(rng):
            first, second = second, first
        return Teams(team1=tuple(first), team2=tuple(second))

    if len(pairs) == 1:
        locked = tuple(pairs[0])
        others = tuple(unlocked)
        if _coin_flip(rng):
            return Teams(team1=locked, team2=others)
        return Teams(team1=others, team2=locked)

    return _form_unlocked(players, avoid_recent_partners, rng)


def _form_unlocked(players: List[Player], avoid_recent_partners: bool, rng: random.Random) -> Teams:
    if any(p.skill is not None for p in players):
        ordered = sorted(players, key=lambda p: p.skill or 0, reverse=True)
        # highest + lowest vs the middle two
        team1, team2 = (ordered[0], ordered[3]), (ordered[1], ordered[2])
        alt1, alt2 = (ordered[0], ordered[2]), (ordered[1], ordered[3])
    else:
        ordered = list(players)
        rng.shuffle(ordered)
        team1, team2 = (ordered[0], ordered[1]), (ordered[2], ordered[3])
        alt1, alt2 = (ordered[0], ordered[2]), (ordered[1], ordered[3])

    if avoid_recent_partners:
        collisions = _recent_partner_count(team1, team2)
        if collisions and _recent_partner_count(alt1, alt2) < collisions:
            team1, team2 = alt1, alt2

    return Teams(team1=team1, team2=team2)


def were_recent_partners(a: Player, b: Player) -> bool:
    """Both players list each other as their partner from their last match."""
    return a.last_partner == b.id and b.last_partner == a.id


def _recent_partner_count(team1: Tuple[Player, Player], team2: Tuple[Player, Player]) -> int:
    return sum(1 for a, b in (team1, team2) if were_recent_partners(a, b))


def _coin_flip(rng: random.Random) -> bool:
    return rng.random() < 0.5
