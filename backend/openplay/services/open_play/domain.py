"""
Open-play domain types.

Every type here is a frozen dataclass; sequences are tuples. The reducer
builds new instances with dataclasses.replace() and never mutates a
snapshot in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

SKILL_LEVELS = (1, 2, 3)
MIN_COURTS = 1
MAX_COURTS = 10
DEFAULT_COURTS = 4


class PlayerStatus(str, Enum):
    NOT_HERE = "not-here"
    CHECKED_IN = "checked-in"
    PLAYING = "playing"
    LEFT = "left"


class GameMode(str, Enum):
    DOUBLES = "doubles"
    SINGLES = "singles"


class UndoKind(str, Enum):
    WINNER = "winner"


def players_required(game_mode: GameMode) -> int:
    """Players needed to seat one court: 4 for doubles, 2 for singles."""
    return 4 if game_mode == GameMode.DOUBLES else 2


def clamp_courts(courts: int) -> int:
    return max(MIN_COURTS, min(MAX_COURTS, int(courts)))


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    skill: Optional[int] = None  # 1..3 or unset
    status: PlayerStatus = PlayerStatus.NOT_HERE
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    last_partner: Optional[str] = None  # teammate from the most recently started match
    locked_partner_id: Optional[str] = None
    courts_played: Tuple[int, ...] = ()
    checked_in_at: Optional[datetime] = None


@dataclass(frozen=True)
class Match:
    id: str
    court: int
    team1: Tuple[str, ...]
    team2: Tuple[str, ...]
    start_time: datetime
    winner: Optional[int] = None  # 1 | 2
    end_time: Optional[datetime] = None

    @property
    def player_ids(self) -> Tuple[str, ...]:
        return self.team1 + self.team2

    def side_of(self, player_id: str) -> Optional[int]:
        if player_id in self.team1:
            return 1
        if player_id in self.team2:
            return 2
        return None

    def team(self, side: int) -> Tuple[str, ...]:
        return self.team1 if side == 1 else self.team2


@dataclass(frozen=True)
class Session:
    id: str
    location: str = ""
    courts: int = DEFAULT_COURTS
    game_mode: GameMode = GameMode.DOUBLES
    players: Tuple[Player, ...] = ()
    matches: Tuple[Match, ...] = ()  # completed
    active_matches: Tuple[Match, ...] = ()
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_setup(self) -> bool:
        return self.start_time is None

    @property
    def is_active(self) -> bool:
        return self.start_time is not None and self.end_time is None

    @property
    def is_ended(self) -> bool:
        return self.end_time is not None

    @property
    def phase(self) -> str:
        if self.is_ended:
            return "ended"
        if self.is_active:
            return "active"
        return "setup"

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def queue(self) -> Tuple[Player, ...]:
        """Checked-in players in roster order."""
        return tuple(p for p in self.players if p.status == PlayerStatus.CHECKED_IN)

    @property
    def checked_in_count(self) -> int:
        """Players checked in or currently on a court."""
        return sum(
            1 for p in self.players
            if p.status in (PlayerStatus.CHECKED_IN, PlayerStatus.PLAYING)
        )

    @property
    def can_start(self) -> bool:
        return (
            self.is_setup
            and self.checked_in_count >= players_required(self.game_mode)
            and self.location.strip() != ""
        )

    def player(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def active_match(self, match_id: str) -> Optional[Match]:
        for m in self.active_matches:
            if m.id == match_id:
                return m
        return None

    def match_on_court(self, court: int) -> Optional[Match]:
        for m in self.active_matches:
            if m.court == court:
                return m
        return None

    def idle_courts(self) -> Tuple[int, ...]:
        occupied = {m.court for m in self.active_matches}
        return tuple(c for c in range(1, self.courts + 1) if c not in occupied)


@dataclass(frozen=True)
class UndoAction:
    """Single-slot undo record. Only the most recent win is ever referenced."""
    kind: UndoKind
    match_id: str
    winner: int
    match: Match
    timestamp: datetime


@dataclass(frozen=True)
class SessionState:
    session: Session
    undo: Optional[UndoAction] = None
    synced_session_id: Optional[str] = None


@dataclass(frozen=True)
class PlayerSummary:
    """Per-player stats as handed to PlayerDirectory / CloudSync."""
    name: str
    skill: Optional[int]
    wins: int
    losses: int
    games_played: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "skill": self.skill,
            "wins": self.wins,
            "losses": self.losses,
            "games_played": self.games_played,
        }


@dataclass(frozen=True)
class SessionSummary:
    location: str
    courts: int
    total_games: int
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    players: Tuple[PlayerSummary, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": self.location,
            "courts": self.courts,
            "total_games": self.total_games,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "players": [p.to_dict() for p in self.players],
        }
