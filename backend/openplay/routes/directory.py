"""Read-only views of the venue's location history and player directory,
plus the host-level announcer and cloud sync controls."""
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from openplay.database import get_session
from openplay.routes.session import get_host
from openplay.services import announcer, location_history, player_directory
from openplay.services.session_host import SessionHost

router = APIRouter()


class LocationResponse(BaseModel):
    name: str
    courts: int
    last_used_at: datetime

    class Config:
        from_attributes = True


class DirectoryPlayerResponse(BaseModel):
    name: str
    skill: Optional[int] = None
    lifetime_wins: int
    lifetime_losses: int
    lifetime_games: int
    last_played_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AnnouncerSettings(BaseModel):
    muted: bool


@router.get("/locations", response_model=List[LocationResponse])
def list_locations(session: Session = Depends(get_session)) -> List[LocationResponse]:
    """Most recently used venues first (max 10)."""
    return [LocationResponse.model_validate(e) for e in location_history.list_locations(session)]


@router.get("/directory/players", response_model=List[DirectoryPlayerResponse])
def list_directory_players(session: Session = Depends(get_session)) -> List[DirectoryPlayerResponse]:
    return [DirectoryPlayerResponse.model_validate(p) for p in player_directory.list_players(session)]


@router.get("/announcer", response_model=AnnouncerSettings)
def get_announcer(session: Session = Depends(get_session)) -> AnnouncerSettings:
    return AnnouncerSettings(muted=announcer.is_muted(session))


@router.put("/announcer", response_model=AnnouncerSettings)
def update_announcer(payload: AnnouncerSettings, host: SessionHost = Depends(get_host)) -> AnnouncerSettings:
    host.set_muted(payload.muted)
    return AnnouncerSettings(muted=payload.muted)


@router.post("/sync/retry", response_model=Dict[str, int])
def retry_sync(host: SessionHost = Depends(get_host)) -> Dict[str, int]:
    """Push any queued session summaries now instead of waiting for the next startup."""
    return host.retry_sync_queue()
