from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class SessionSnapshot(SQLModel, table=True):
    """The current session document. The store keeps exactly one row per slot."""

    __tablename__ = "sessionsnapshot"

    slot: str = Field(default="current", primary_key=True)
    session_id: str = Field(index=True)
    document: Dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
