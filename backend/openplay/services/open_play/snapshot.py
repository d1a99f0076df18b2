"""
Session document <-> domain objects.

The document is plain JSON-compatible data (snake_case keys, ISO-8601
timestamps, enum values as strings). It is the only thing persistence and
sync collaborators ever see.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from openplay.services.open_play.domain import (
    DEFAULT_COURTS,
    GameMode,
    Match,
    Player,
    PlayerStatus,
    Session,
    clamp_courts,
)


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def player_to_dict(player: Player) -> Dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "skill": player.skill,
        "status": player.status.value,
        "games_played": player.games_played,
        "wins": player.wins,
        "losses": player.losses,
        "last_partner": player.last_partner,
        "locked_partner_id": player.locked_partner_id,
        "courts_played": list(player.courts_played),
        "checked_in_at": _ts(player.checked_in_at),
    }


def player_from_dict(data: Dict[str, Any]) -> Player:
    return Player(
        id=data["id"],
        name=data["name"],
        skill=data.get("skill"),
        status=PlayerStatus(data.get("status", PlayerStatus.NOT_HERE.value)),
        games_played=data.get("games_played", 0),
        wins=data.get("wins", 0),
        losses=data.get("losses", 0),
        last_partner=data.get("last_partner"),
        locked_partner_id=data.get("locked_partner_id"),
        courts_played=tuple(data.get("courts_played") or ()),
        checked_in_at=_parse_ts(data.get("checked_in_at")),
    )


def match_to_dict(match: Match) -> Dict[str, Any]:
    return {
        "id": match.id,
        "court": match.court,
        "team1": list(match.team1),
        "team2": list(match.team2),
        "winner": match.winner,
        "start_time": _ts(match.start_time),
        "end_time": _ts(match.end_time),
    }


def match_from_dict(data: Dict[str, Any]) -> Match:
    return Match(
        id=data["id"],
        court=data["court"],
        team1=tuple(data["team1"]),
        team2=tuple(data["team2"]),
        winner=data.get("winner"),
        start_time=_parse_ts(data["start_time"]),
        end_time=_parse_ts(data.get("end_time")),
    )


def session_to_dict(session: Session) -> Dict[str, Any]:
    return {
        "id": session.id,
        "location": session.location,
        "courts": session.courts,
        "game_mode": session.game_mode.value,
        "players": [player_to_dict(p) for p in session.players],
        "matches": [match_to_dict(m) for m in session.matches],
        "active_matches": [match_to_dict(m) for m in session.active_matches],
        "start_time": _ts(session.start_time),
        "end_time": _ts(session.end_time),
    }


def session_from_dict(data: Dict[str, Any]) -> Session:
    """Inverse of session_to_dict. Documents saved before singles existed load as doubles."""
    return Session(
        id=data["id"],
        location=data.get("location", ""),
        courts=clamp_courts(data.get("courts", DEFAULT_COURTS)),
        game_mode=GameMode(data.get("game_mode", GameMode.DOUBLES.value)),
        players=tuple(player_from_dict(p) for p in data.get("players", [])),
        matches=tuple(match_from_dict(m) for m in data.get("matches", [])),
        active_matches=tuple(match_from_dict(m) for m in data.get("active_matches", [])),
        start_time=_parse_ts(data.get("start_time")),
        end_time=_parse_ts(data.get("end_time")),
    )
