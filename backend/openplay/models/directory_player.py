from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class DirectoryPlayer(SQLModel, table=True):
    """Lifetime record for a player, matched across sessions by name (case-insensitive)."""

    __tablename__ = "directoryplayer"

    id: Optional[int] = Field(default=None, primary_key=True)
    name_key: str = Field(unique=True, index=True)  # casefolded, trimmed name
    name: str  # display name as last entered
    skill: Optional[int] = Field(default=None)  # 1..3
    lifetime_wins: int = Field(default=0)
    lifetime_losses: int = Field(default=0)
    lifetime_games: int = Field(default=0)
    last_played_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
