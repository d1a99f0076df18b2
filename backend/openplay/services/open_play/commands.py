"""
Session commands.

A closed set: every command the reducer understands is listed in
ALL_COMMANDS, and the reducer's dispatch table must cover each of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union, get_args

from openplay.services.open_play.domain import DEFAULT_COURTS, GameMode, Session


@dataclass(frozen=True)
class LoadSession:
    session: Session


@dataclass(frozen=True)
class NewSession:
    location: str = ""
    courts: int = DEFAULT_COURTS


@dataclass(frozen=True)
class SetLocation:
    location: str


@dataclass(frozen=True)
class SetCourts:
    courts: int


@dataclass(frozen=True)
class SetGameMode:
    game_mode: GameMode


@dataclass(frozen=True)
class AddPlayer:
    name: str


@dataclass(frozen=True)
class AddPlayerWithSkill:
    name: str
    skill: Optional[int]


@dataclass(frozen=True)
class RemovePlayer:
    player_id: str


@dataclass(frozen=True)
class SetPlayerSkill:
    player_id: str
    skill: Optional[int]


@dataclass(frozen=True)
class CheckInPlayer:
    player_id: str


@dataclass(frozen=True)
class CheckOutPlayer:
    player_id: str


@dataclass(frozen=True)
class StartSession:
    pass


@dataclass(frozen=True)
class EndSession:
    pass


@dataclass(frozen=True)
class FillCourt:
    court: int


@dataclass(frozen=True)
class FillCourts:
    pass


@dataclass(frozen=True)
class RecordWinner:
    match_id: str
    winner: int  # 1 | 2


@dataclass(frozen=True)
class RemoveFromCourt:
    player_id: str
    match_id: str


@dataclass(frozen=True)
class UndoWinner:
    match_id: str


@dataclass(frozen=True)
class ClearUndo:
    pass


@dataclass(frozen=True)
class LockPartners:
    player1_id: str
    player2_id: str


@dataclass(frozen=True)
class UnlockPartner:
    player_id: str


@dataclass(frozen=True)
class SetSyncedSessionId:
    session_id: Optional[str]


Command = Union[
    LoadSession,
    NewSession,
    SetLocation,
    SetCourts,
    SetGameMode,
    AddPlayer,
    AddPlayerWithSkill,
    RemovePlayer,
    SetPlayerSkill,
    CheckInPlayer,
    CheckOutPlayer,
    StartSession,
    EndSession,
    FillCourt,
    FillCourts,
    RecordWinner,
    RemoveFromCourt,
    UndoWinner,
    ClearUndo,
    LockPartners,
    UnlockPartner,
    SetSyncedSessionId,
]

ALL_COMMANDS = get_args(Command)
