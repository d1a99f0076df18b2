"""
Live session endpoints.

Every mutating endpoint dispatches exactly one command to the SessionHost
and returns the resulting state. A command whose preconditions fail is a
no-op, so those calls answer 200 with the state unchanged.
"""
from dataclasses import asdict
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, field_validator

from openplay.services.open_play import commands as cmd
from openplay.services.open_play.domain import MAX_COURTS, MIN_COURTS, GameMode, SessionState
from openplay.services.open_play.leaderboard import leaderboard_rows, players_waiting_too_long
from openplay.services.open_play.snapshot import match_to_dict, player_to_dict
from openplay.services.session_host import SessionHost

router = APIRouter()

Skill = Optional[Literal[1, 2, 3]]


def get_host(request: Request) -> SessionHost:
    """The SessionHost created at startup (see openplay.main)."""
    return request.app.state.host


# ============================================================================
# Schemas
# ============================================================================


class PlayerView(BaseModel):
    id: str
    name: str
    skill: Optional[int] = None
    status: str
    games_played: int
    wins: int
    losses: int
    last_partner: Optional[str] = None
    locked_partner_id: Optional[str] = None
    courts_played: List[int]
    checked_in_at: Optional[datetime] = None


class MatchView(BaseModel):
    id: str
    court: int
    team1: List[str]
    team2: List[str]
    winner: Optional[int] = None
    start_time: datetime
    end_time: Optional[datetime] = None


class UndoView(BaseModel):
    kind: str
    match_id: str
    winner: int
    timestamp: datetime


class SessionView(BaseModel):
    id: str
    location: str
    courts: int
    game_mode: str
    phase: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    players: List[PlayerView]
    matches: List[MatchView]
    active_matches: List[MatchView]
    queue: List[str]
    checked_in_count: int
    can_start: bool
    undo: Optional[UndoView] = None
    synced_session_id: Optional[str] = None


class SettingsUpdate(BaseModel):
    location: Optional[str] = None
    courts: Optional[int] = None
    game_mode: Optional[GameMode] = None

    @field_validator("courts")
    @classmethod
    def clamp_to_range(cls, v):
        if v is None:
            return v
        return max(MIN_COURTS, min(MAX_COURTS, v))


class PlayerCreate(BaseModel):
    name: str
    skill: Skill = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class SkillUpdate(BaseModel):
    skill: Skill = None


class WinnerPayload(BaseModel):
    winner: Literal[1, 2]


class LeaderboardEntry(BaseModel):
    rank: int
    player_id: str
    name: str
    wins: int
    losses: int
    games_played: int
    win_percentage: int


def _session_view(state: SessionState) -> SessionView:
    session = state.session
    undo = None
    if state.undo is not None:
        undo = UndoView(
            kind=state.undo.kind.value,
            match_id=state.undo.match_id,
            winner=state.undo.winner,
            timestamp=state.undo.timestamp,
        )
    return SessionView(
        id=session.id,
        location=session.location,
        courts=session.courts,
        game_mode=session.game_mode.value,
        phase=session.phase,
        start_time=session.start_time,
        end_time=session.end_time,
        players=[PlayerView(**player_to_dict(p)) for p in session.players],
        matches=[MatchView(**match_to_dict(m)) for m in session.matches],
        active_matches=[MatchView(**match_to_dict(m)) for m in session.active_matches],
        queue=[p.id for p in session.queue],
        checked_in_count=session.checked_in_count,
        can_start=session.can_start,
        undo=undo,
        synced_session_id=state.synced_session_id,
    )


# ============================================================================
# Session lifecycle
# ============================================================================


@router.get("/session", response_model=SessionView)
def get_current_session(host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.state)


@router.post("/session/new", response_model=SessionView)
def new_session(host: SessionHost = Depends(get_host)) -> SessionView:
    """Discard the current session and start a fresh one at the last venue."""
    return _session_view(host.new_session())


@router.patch("/session/settings", response_model=SessionView)
def update_settings(payload: SettingsUpdate, host: SessionHost = Depends(get_host)) -> SessionView:
    state = host.state
    if payload.location is not None:
        state = host.dispatch(cmd.SetLocation(location=payload.location))
    if payload.courts is not None:
        state = host.dispatch(cmd.SetCourts(courts=payload.courts))
    if payload.game_mode is not None:
        state = host.dispatch(cmd.SetGameMode(game_mode=payload.game_mode))
    return _session_view(state)


@router.post("/session/start", response_model=SessionView)
def start_session(host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.StartSession()))


@router.post("/session/end", response_model=SessionView)
def end_session(host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.EndSession()))


# ============================================================================
# Roster
# ============================================================================


@router.post("/session/players", response_model=SessionView)
def add_player(payload: PlayerCreate, host: SessionHost = Depends(get_host)) -> SessionView:
    if payload.skill is None:
        return _session_view(host.dispatch(cmd.AddPlayer(name=payload.name)))
    return _session_view(host.dispatch(cmd.AddPlayerWithSkill(name=payload.name, skill=payload.skill)))


@router.delete("/session/players/{player_id}", response_model=SessionView)
def remove_player(player_id: str, host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.RemovePlayer(player_id=player_id)))


@router.patch("/session/players/{player_id}/skill", response_model=SessionView)
def set_player_skill(player_id: str, payload: SkillUpdate, host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.SetPlayerSkill(player_id=player_id, skill=payload.skill)))


@router.post("/session/players/{player_id}/check-in", response_model=SessionView)
def check_in_player(player_id: str, host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.CheckInPlayer(player_id=player_id)))


@router.post("/session/players/{player_id}/check-out", response_model=SessionView)
def check_out_player(player_id: str, host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.CheckOutPlayer(player_id=player_id)))


@router.post("/session/players/{player_id}/lock/{partner_id}", response_model=SessionView)
def lock_partners(player_id: str, partner_id: str, host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.LockPartners(player1_id=player_id, player2_id=partner_id)))


@router.post("/session/players/{player_id}/unlock", response_model=SessionView)
def unlock_partner(player_id: str, host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.UnlockPartner(player_id=player_id)))


# ============================================================================
# Courts & matches
# ============================================================================


@router.post("/session/courts/fill", response_model=SessionView)
def fill_courts(host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.FillCourts()))


@router.post("/session/courts/{court}/fill", response_model=SessionView)
def fill_court(court: int, host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.FillCourt(court=court)))


@router.post("/session/matches/{match_id}/winner", response_model=SessionView)
def record_winner(match_id: str, payload: WinnerPayload, host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.RecordWinner(match_id=match_id, winner=payload.winner)))


@router.post("/session/matches/{match_id}/undo", response_model=SessionView)
def undo_winner(match_id: str, host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.dispatch(cmd.UndoWinner(match_id=match_id)))


@router.post("/session/matches/{match_id}/players/{player_id}/pull", response_model=SessionView)
def pull_player(match_id: str, player_id: str, host: SessionHost = Depends(get_host)) -> SessionView:
    """Take a player off court; a queued substitute steps in if there is one."""
    return _session_view(host.dispatch(cmd.RemoveFromCourt(player_id=player_id, match_id=match_id)))


@router.delete("/session/undo", response_model=SessionView)
def clear_undo(host: SessionHost = Depends(get_host)) -> SessionView:
    return _session_view(host.clear_undo())


# ============================================================================
# Standings
# ============================================================================


@router.get("/session/leaderboard", response_model=List[LeaderboardEntry])
def get_leaderboard(host: SessionHost = Depends(get_host)) -> List[LeaderboardEntry]:
    return [LeaderboardEntry(**asdict(row)) for row in leaderboard_rows(host.state.session.players)]


@router.get("/session/alerts", response_model=List[PlayerView])
def get_waiting_alerts(host: SessionHost = Depends(get_host)) -> List[PlayerView]:
    """Checked-in players who have fallen well behind on games."""
    return [PlayerView(**player_to_dict(p)) for p in players_waiting_too_long(host.state.session.players)]
