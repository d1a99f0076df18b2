from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class LocationHistoryEntry(SQLModel, table=True):
    __tablename__ = "locationhistory"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True)
    courts: int
    last_used_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
