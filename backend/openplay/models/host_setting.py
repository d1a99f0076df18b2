from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class HostSetting(SQLModel, table=True):
    """Small key/value settings owned by the host (e.g. announcer mute)."""

    __tablename__ = "hostsetting"

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
