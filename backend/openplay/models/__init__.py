from openplay.models.directory_player import DirectoryPlayer
from openplay.models.host_setting import HostSetting
from openplay.models.location_history import LocationHistoryEntry
from openplay.models.session_snapshot import SessionSnapshot
from openplay.models.sync_queue_item import SyncQueueItem

__all__ = [
    "DirectoryPlayer",
    "HostSetting",
    "LocationHistoryEntry",
    "SessionSnapshot",
    "SyncQueueItem",
]
