"""
Open-play court rotation core.

Pure functions and immutable snapshots only; persistence, sync and
announcements live in the surrounding services and run from effects.
"""

from openplay.services.open_play.domain import (
    GameMode,
    Match,
    Player,
    PlayerStatus,
    Session,
    SessionState,
    UndoAction,
    UndoKind,
)
from openplay.services.open_play.effects import Transition, TransitionContext
from openplay.services.open_play.state_machine import apply, initial_state, reduce

__all__ = [
    "GameMode",
    "Match",
    "Player",
    "PlayerStatus",
    "Session",
    "SessionState",
    "Transition",
    "TransitionContext",
    "UndoAction",
    "UndoKind",
    "apply",
    "initial_state",
    "reduce",
]
