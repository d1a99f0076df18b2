"""Recently used venues, most recent first, capped at MAX_LOCATIONS."""

from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session, select

from openplay.models.location_history import LocationHistoryEntry

MAX_LOCATIONS = 10


def list_locations(db: Session) -> List[LocationHistoryEntry]:
    return list(
        db.exec(
            select(LocationHistoryEntry)
            .order_by(LocationHistoryEntry.last_used_at.desc(), LocationHistoryEntry.id.desc())
            .limit(MAX_LOCATIONS)
        ).all()
    )


def most_recent_location(db: Session) -> Optional[LocationHistoryEntry]:
    entries = list_locations(db)
    return entries[0] if entries else None


def record_location(db: Session, name: str, courts: int, used_at: Optional[datetime] = None) -> None:
    """
    Move `name` to the front of the history with its latest court count.

    Entries beyond MAX_LOCATIONS are dropped.
    """
    name = name.strip()
    if not name:
        return

    entry = db.exec(select(LocationHistoryEntry).where(LocationHistoryEntry.name == name)).first()
    if entry is None:
        entry = LocationHistoryEntry(name=name, courts=courts)
    entry.courts = courts
    entry.last_used_at = used_at or datetime.now(timezone.utc)
    db.add(entry)
    db.commit()

    stale = db.exec(
        select(LocationHistoryEntry)
        .order_by(LocationHistoryEntry.last_used_at.desc(), LocationHistoryEntry.id.desc())
        .offset(MAX_LOCATIONS)
    ).all()
    for old in stale:
        db.delete(old)
    if stale:
        db.commit()
