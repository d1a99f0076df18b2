"""Cloud sync for ended sessions.

Best effort: pushes an ended session's summary to the shared leaderboard
service and returns the shareable session id. Anything that fails (or is
attempted while sync is not configured) lands in the retry queue, which is
drained at the next startup or on demand.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
from sqlmodel import Session, select

from openplay.models.sync_queue_item import SyncQueueItem
from openplay.services.open_play.domain import SessionSummary

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class CloudSyncError(Exception):
    """The remote service could not accept a session summary."""


class CloudSyncClient:
    """
    HTTP client for the remote leaderboard service.

    Reads configuration from environment variables:
      - CLOUD_SYNC_URL
      - CLOUD_SYNC_API_KEY
      - CLOUD_SYNC_TIMEOUT (seconds, default 10)

    Without a URL the client runs in dry-run mode: nothing is sent and every
    summary stays queued.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url if base_url is not None else os.getenv("CLOUD_SYNC_URL", "")).rstrip("/")
        self.api_key = api_key if api_key is not None else os.getenv("CLOUD_SYNC_API_KEY", "")
        self.timeout = timeout or float(os.getenv("CLOUD_SYNC_TIMEOUT", DEFAULT_TIMEOUT_SECONDS))
        self.http = http or requests.Session()
        self.dry_run = not self.base_url

        if self.dry_run:
            logger.warning("Cloud sync not configured. Running in dry-run mode. Set CLOUD_SYNC_URL.")

    def push(self, payload: Dict[str, Any]) -> str:
        """POST one summary; returns the remote session id. Raises CloudSyncError."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = self.http.post(
                f"{self.base_url}/sessions",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise CloudSyncError(f"request failed: {e}") from e

        if response.status_code >= 300:
            raise CloudSyncError(f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            body = response.json()
        except ValueError as e:
            raise CloudSyncError(f"invalid JSON response: {e}") from e
        if not isinstance(body, dict):
            raise CloudSyncError(f"unexpected response body: {str(body)[:200]}")
        remote_id = body.get("id")
        if not remote_id:
            raise CloudSyncError("response did not include a session id")
        return str(remote_id)


def enqueue(db: Session, session_id: str, payload: Dict[str, Any], error: Optional[str] = None) -> SyncQueueItem:
    item = SyncQueueItem(session_id=session_id, payload=payload, last_error=error)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def sync_ended_session(
    db: Session, client: CloudSyncClient, session_id: str, summary: SessionSummary
) -> Optional[str]:
    """Push one ended session. Returns the shareable id, or None if it was queued instead."""
    payload = summary.to_dict()
    payload["local_session_id"] = session_id

    if client.dry_run:
        logger.info(f"[DRY RUN] Queued sync for session {session_id} ({len(summary.players)} players)")
        enqueue(db, session_id, payload)
        return None

    try:
        remote_id = client.push(payload)
    except CloudSyncError as e:
        logger.warning(f"Cloud sync failed for session {session_id}, queued for retry: {e}")
        enqueue(db, session_id, payload, error=str(e))
        return None

    logger.info(f"Session {session_id} synced as {remote_id}")
    return remote_id


def process_queue(db: Session, client: CloudSyncClient) -> Dict[str, int]:
    """
    Retry every queued summary, oldest first.

    Synced items are deleted; failures stay queued with attempts + 1.
    """
    items = db.exec(select(SyncQueueItem).order_by(SyncQueueItem.id)).all()
    if not items or client.dry_run:
        return {"processed": 0, "synced": 0, "remaining": len(items)}

    synced = 0
    for item in items:
        try:
            remote_id = client.push(item.payload)
        except CloudSyncError as e:
            item.attempts += 1
            item.last_error = str(e)
            item.updated_at = datetime.now(timezone.utc)
            db.add(item)
            logger.warning(f"Retry {item.attempts} failed for session {item.session_id}: {e}")
            continue
        logger.info(f"Queued session {item.session_id} synced as {remote_id}")
        db.delete(item)
        synced += 1

    db.commit()
    return {"processed": len(items), "synced": synced, "remaining": len(items) - synced}
