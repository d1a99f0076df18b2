"""
Standings.

Order: most wins, then best win rate, then fewer games (efficiency),
then name.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Sequence

from openplay.services.open_play.domain import Player, PlayerStatus

STARVATION_THRESHOLD = 3


@dataclass(frozen=True)
class LeaderboardRow:
    rank: int
    player_id: str
    name: str
    wins: int
    losses: int
    games_played: int
    win_percentage: int


def win_rate(player: Player) -> float:
    if player.games_played == 0:
        return 0.0
    return player.wins / player.games_played


def get_win_percentage(player: Player) -> int:
    """Whole-number percentage, halves rounded up. 0 for players without games."""
    if player.games_played == 0:
        return 0
    pct = Decimal(player.wins * 100) / Decimal(player.games_played)
    return int(pct.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def calculate_leaderboard(players: Sequence[Player]) -> List[Player]:
    played = [p for p in players if p.games_played > 0]
    return sorted(
        played,
        key=lambda p: (-p.wins, -win_rate(p), p.games_played, p.name.casefold(), p.name),
    )


def leaderboard_rows(players: Sequence[Player]) -> List[LeaderboardRow]:
    return [
        LeaderboardRow(
            rank=i,
            player_id=p.id,
            name=p.name,
            wins=p.wins,
            losses=p.losses,
            games_played=p.games_played,
            win_percentage=get_win_percentage(p),
        )
        for i, p in enumerate(calculate_leaderboard(players), start=1)
    ]


def players_waiting_too_long(players: Sequence[Player], threshold: int = STARVATION_THRESHOLD) -> List[Player]:
    """
    Checked-in players trailing the checked-in average by `threshold` games or more.

    Informational only; nothing in the rotation acts on it.
    """
    checked_in = [p for p in players if p.status == PlayerStatus.CHECKED_IN]
    if not checked_in:
        return []
    average = sum(p.games_played for p in checked_in) / len(checked_in)
    return [p for p in checked_in if average - p.games_played >= threshold]
