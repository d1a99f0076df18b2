"""
Transition context and effects.

The reducer is pure: time, ids and randomness come in through a
TransitionContext, and anything a collaborator must do afterwards goes out
as an effect record. The host runs effects only after the new state is
committed.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Tuple, Union

from openplay.services.open_play.domain import PlayerSummary, SessionState, SessionSummary
from openplay.utils.ids import generate_id


@dataclass
class TransitionContext:
    now: datetime
    new_id: Callable[[], str] = generate_id
    rng: random.Random = field(default_factory=random.Random)


# ============================================================================
# Effects
# ============================================================================


@dataclass(frozen=True)
class LocationUsed:
    name: str
    courts: int


@dataclass(frozen=True)
class FlushPlayerStats:
    players: Tuple[PlayerSummary, ...]


@dataclass(frozen=True)
class SyncEndedSession:
    summary: SessionSummary


@dataclass(frozen=True)
class MatchFormed:
    match_id: str
    court: int
    team1_names: Tuple[str, ...]
    team2_names: Tuple[str, ...]


@dataclass(frozen=True)
class WinnerRecorded:
    match_id: str
    court: int
    winner_names: Tuple[str, ...]


@dataclass(frozen=True)
class SessionCleared:
    """Previous session discarded by NewSession."""
    previous_session_id: str


Effect = Union[LocationUsed, FlushPlayerStats, SyncEndedSession, MatchFormed, WinnerRecorded, SessionCleared]


@dataclass(frozen=True)
class Transition:
    state: SessionState
    effects: Tuple[Effect, ...] = ()
