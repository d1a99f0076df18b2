"""Cloud sync payloads waiting for a retry."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class SyncQueueItem(SQLModel, table=True):
    __tablename__ = "syncqueueitem"

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: str = Field(index=True)  # local session id the summary came from
    payload: Dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    attempts: int = Field(default=0)
    last_error: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
