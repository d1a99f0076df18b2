"""Spoken announcements for the courtside display.

Fire-and-forget: the host hands over "match formed", "winner recorded" and
"session ended" events; the announcer turns them into sentences and passes
them to a speak() callable unless muted. The mute flag is persisted so it
survives restarts.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from sqlmodel import Session

from openplay.models.host_setting import HostSetting
from openplay.services.open_play.leaderboard import LeaderboardRow

logger = logging.getLogger(__name__)

MUTE_KEY = "announcer_muted"
PLACES = ("First place", "Second place", "Third place")


def is_muted(db: Session) -> bool:
    setting = db.get(HostSetting, MUTE_KEY)
    return setting is not None and setting.value == "true"


def set_muted(db: Session, muted: bool) -> None:
    setting = db.get(HostSetting, MUTE_KEY) or HostSetting(key=MUTE_KEY, value="false")
    setting.value = "true" if muted else "false"
    setting.updated_at = datetime.now(timezone.utc)
    db.add(setting)
    db.commit()


def next_match_message(court: int, team1_names: Sequence[str], team2_names: Sequence[str]) -> str:
    return f"Next match. Court {court}: {' and '.join(team1_names)} versus {' and '.join(team2_names)}"


def winner_message(court: int, winner_names: Sequence[str]) -> str:
    return f"Court {court}. Match completed. {' and '.join(winner_names)} win!"


def leaderboard_messages(rows: Sequence[LeaderboardRow]) -> List[str]:
    if not rows:
        return ["Session complete. No games were played."]
    messages = ["Session complete! Here are today's top players."]
    for place, row in zip(PLACES, rows):
        messages.append(f"{place}: {row.name}, with {row.win_percentage} percent wins.")
    messages.append("Great games everyone!")
    return messages


def _log_speaker(text: str) -> None:
    logger.info(f"[ANNOUNCE] {text}")


class Announcer:
    """Routes announcement text to `speak` while unmuted."""

    def __init__(self, speak: Optional[Callable[[str], None]] = None):
        self.speak = speak or _log_speaker
        self.muted = False

    def announce(self, text: str) -> bool:
        """Returns True when the text was handed to the speaker."""
        if self.muted:
            return False
        self.speak(text)
        return True

    def match_formed(self, court: int, team1_names: Sequence[str], team2_names: Sequence[str]) -> bool:
        return self.announce(next_match_message(court, team1_names, team2_names))

    def winner_recorded(self, court: int, winner_names: Sequence[str]) -> bool:
        return self.announce(winner_message(court, winner_names))

    def session_ended(self, rows: Sequence[LeaderboardRow]) -> int:
        return sum(1 for message in leaderboard_messages(rows) if self.announce(message))
