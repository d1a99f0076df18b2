"""
Persistence store for the live session document.

One row, slot "current". Saved after every committed transition and read
once at startup.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Session

from openplay.models.session_snapshot import SessionSnapshot
from openplay.services.open_play import domain
from openplay.services.open_play.snapshot import session_from_dict, session_to_dict
from openplay.utils.ids import generate_id

logger = logging.getLogger(__name__)

CURRENT_SLOT = "current"

__all__ = ["save_session", "load_session", "clear_session", "generate_id"]


def save_session(db: Session, session: domain.Session) -> None:
    row = db.get(SessionSnapshot, CURRENT_SLOT)
    document = session_to_dict(session)
    if row is None:
        row = SessionSnapshot(slot=CURRENT_SLOT, session_id=session.id, document=document)
    else:
        row.session_id = session.id
        row.document = document
        row.updated_at = datetime.now(timezone.utc)
    db.add(row)
    db.commit()


def load_session(db: Session) -> Optional[domain.Session]:
    """Saved session, or None when nothing is stored or the document is unreadable."""
    row = db.get(SessionSnapshot, CURRENT_SLOT)
    if row is None:
        return None
    try:
        return session_from_dict(row.document)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Discarding unreadable session snapshot {row.session_id}: {e}")
        return None


def clear_session(db: Session) -> None:
    row = db.get(SessionSnapshot, CURRENT_SLOT)
    if row is not None:
        db.delete(row)
        db.commit()
