# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from openplay.models.directory_player import DirectoryPlayer  # noqa: F401
from openplay.models.host_setting import HostSetting  # noqa: F401
from openplay.models.location_history import LocationHistoryEntry  # noqa: F401
from openplay.models.session_snapshot import SessionSnapshot  # noqa: F401
from openplay.models.sync_queue_item import SyncQueueItem  # noqa: F401
