"""
Player directory: lifetime stats across sessions.

Players are matched by name, case-insensitively and ignoring surrounding
whitespace. Updated once per player who actually played when a session ends.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session, select

from openplay.models.directory_player import DirectoryPlayer

logger = logging.getLogger(__name__)


def name_key(name: str) -> str:
    return name.strip().casefold()


def get_player(db: Session, name: str) -> Optional[DirectoryPlayer]:
    return db.exec(select(DirectoryPlayer).where(DirectoryPlayer.name_key == name_key(name))).first()


def list_players(db: Session) -> List[DirectoryPlayer]:
    return list(db.exec(select(DirectoryPlayer).order_by(DirectoryPlayer.name_key)).all())


def update_stats(
    db: Session,
    name: str,
    skill: Optional[int],
    session_wins: int,
    session_losses: int,
    played_at: Optional[datetime] = None,
) -> DirectoryPlayer:
    """
    Add one session's results to a player's lifetime record, creating it if needed.

    A rated skill replaces the stored one; an unrated session leaves it alone.
    """
    record = get_player(db, name)
    if record is None:
        record = DirectoryPlayer(name_key=name_key(name), name=name.strip())
        logger.info(f"New directory player '{record.name}'")

    record.name = name.strip()
    if skill is not None:
        record.skill = skill
    record.lifetime_wins += session_wins
    record.lifetime_losses += session_losses
    record.lifetime_games += session_wins + session_losses
    record.last_played_at = played_at or datetime.now(timezone.utc)

    db.add(record)
    db.commit()
    db.refresh(record)
    return record
