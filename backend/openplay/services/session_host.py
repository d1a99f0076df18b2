"""
Session host: the single writer for one live open-play session.

Owns everything around the pure reducer:
  - the current SessionState, restored from the persistence store at startup
  - serialization of commands (one lock, commands applied in dispatch order)
  - saving the snapshot after every committed transition
  - running effects afterwards (location history, player directory, cloud
    sync, announcements); an effect failure is logged and never undoes the
    transition
  - the undo expiry timer: a new undo cancels the pending timer, and expiry
    is the same as an explicit ClearUndo

Lifecycle: create with SessionHost(engine), call startup() once, close() on
shutdown. NewSession tears down the undo timer along with the old state.
"""

import logging
import os
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session

from openplay.services import announcer as announcer_store
from openplay.services import cloud_sync, location_history, persistence_store, player_directory
from openplay.services.announcer import Announcer
from openplay.services.cloud_sync import CloudSyncClient
from openplay.services.open_play import commands as cmd
from openplay.services.open_play.domain import DEFAULT_COURTS, SessionState, SessionSummary, UndoAction
from openplay.services.open_play.effects import (
    Effect,
    FlushPlayerStats,
    LocationUsed,
    MatchFormed,
    SessionCleared,
    SyncEndedSession,
    TransitionContext,
    WinnerRecorded,
)
from openplay.services.open_play.leaderboard import leaderboard_rows
from openplay.services.open_play.state_machine import initial_state, reduce

logger = logging.getLogger(__name__)

DEFAULT_UNDO_EXPIRY_SECONDS = 10.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _undo_expiry_from_env() -> float:
    return float(os.getenv("UNDO_EXPIRY_SECONDS", DEFAULT_UNDO_EXPIRY_SECONDS))


class SessionHost:
    def __init__(
        self,
        engine: Engine,
        cloud_sync_client: Optional[CloudSyncClient] = None,
        announcer: Optional[Announcer] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        undo_expiry_seconds: Optional[float] = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
        run_in_background: Optional[Callable[[Callable[[], None]], None]] = None,
    ):
        self.engine = engine
        self.cloud_sync = cloud_sync_client or CloudSyncClient()
        self.announcer = announcer or Announcer()
        self.rng = rng or random.Random()
        self.clock = clock or _utcnow
        self.id_factory = id_factory or persistence_store.generate_id
        self.undo_expiry_seconds = (
            undo_expiry_seconds if undo_expiry_seconds is not None else _undo_expiry_from_env()
        )
        self._timer_factory = timer_factory
        self._undo_timer: Optional[threading.Timer] = None
        self._lock = threading.RLock()

        self._executor: Optional[ThreadPoolExecutor] = None
        if run_in_background is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="openplay-sync")
            run_in_background = self._submit
        self._run_in_background = run_in_background

        self.state: SessionState = self._restore()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _db(self) -> Session:
        return Session(self.engine)

    def _context(self) -> TransitionContext:
        return TransitionContext(now=self.clock(), new_id=self.id_factory, rng=self.rng)

    def _restore(self) -> SessionState:
        with self._db() as db:
            self.announcer.muted = announcer_store.is_muted(db)
            saved = persistence_store.load_session(db)
            if saved is not None:
                logger.info(f"Restored session {saved.id} ({saved.phase})")
                return SessionState(session=saved)

            recent = location_history.most_recent_location(db)
            state = initial_state(
                self._context(),
                location=recent.name if recent else "",
                courts=recent.courts if recent else DEFAULT_COURTS,
            )
            persistence_store.save_session(db, state.session)
            logger.info(f"Created session {state.session.id}")
            return state

    def startup(self) -> None:
        """Retry cloud syncs left over from earlier runs."""
        self._run_in_background(self._retry_sync_queue)

    def close(self) -> None:
        with self._lock:
            self._cancel_undo_timer()
        if self._executor is not None:
            self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def dispatch(self, command: cmd.Command) -> SessionState:
        """Apply one command, persist the result and run its effects."""
        with self._lock:
            transition = reduce(self.state, command, self._context())
            if transition.state is self.state:
                return self.state

            previous = self.state
            self.state = transition.state

            cleared = any(isinstance(e, SessionCleared) for e in transition.effects)
            with self._db() as db:
                if cleared:
                    persistence_store.clear_session(db)
                persistence_store.save_session(db, self.state.session)

            self._track_undo(previous.undo, self.state.undo)
            for effect in transition.effects:
                self._run_effect(effect)
            return self.state

    def new_session(self) -> SessionState:
        """NewSession seeded with the most recently used venue."""
        with self._db() as db:
            recent = location_history.most_recent_location(db)
        if recent is None:
            return self.dispatch(cmd.NewSession())
        return self.dispatch(cmd.NewSession(location=recent.name, courts=recent.courts))

    def clear_undo(self) -> SessionState:
        return self.dispatch(cmd.ClearUndo())

    def set_muted(self, muted: bool) -> None:
        with self._db() as db:
            announcer_store.set_muted(db, muted)
        self.announcer.muted = muted

    # ------------------------------------------------------------------
    # Undo expiry
    # ------------------------------------------------------------------

    def _track_undo(self, old: Optional[UndoAction], new: Optional[UndoAction]) -> None:
        if new is old:
            return
        self._cancel_undo_timer()
        if new is None:
            return
        timer = self._timer_factory(self.undo_expiry_seconds, self._expire_undo, args=(new,))
        timer.daemon = True
        self._undo_timer = timer
        timer.start()

    def _cancel_undo_timer(self) -> None:
        if self._undo_timer is not None:
            self._undo_timer.cancel()
            self._undo_timer = None

    def _expire_undo(self, undo: UndoAction) -> None:
        with self._lock:
            if self.state.undo is not undo:
                return
            logger.debug(f"Undo for match {undo.match_id} expired")
            self.dispatch(cmd.ClearUndo())

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    def _run_effect(self, effect: Effect) -> None:
        try:
            if isinstance(effect, LocationUsed):
                with self._db() as db:
                    location_history.record_location(db, effect.name, effect.courts, used_at=self.clock())
            elif isinstance(effect, FlushPlayerStats):
                with self._db() as db:
                    for p in effect.players:
                        player_directory.update_stats(
                            db, p.name, p.skill, p.wins, p.losses, played_at=self.clock()
                        )
                logger.info(f"Flushed stats for {len(effect.players)} players")
            elif isinstance(effect, SyncEndedSession):
                session_id = self.state.session.id
                self.announcer.session_ended(leaderboard_rows(self.state.session.players))
                self._run_in_background(lambda: self._sync_session(session_id, effect.summary))
            elif isinstance(effect, MatchFormed):
                self.announcer.match_formed(effect.court, effect.team1_names, effect.team2_names)
            elif isinstance(effect, WinnerRecorded):
                self.announcer.winner_recorded(effect.court, effect.winner_names)
            elif isinstance(effect, SessionCleared):
                logger.info(f"Discarded session {effect.previous_session_id}")
        except Exception:
            logger.exception(f"Effect {type(effect).__name__} failed")

    def _sync_session(self, session_id: str, summary: SessionSummary) -> None:
        try:
            with self._db() as db:
                remote_id = cloud_sync.sync_ended_session(db, self.cloud_sync, session_id, summary)
        except Exception:
            logger.exception(f"Cloud sync for session {session_id} failed")
            return
        if remote_id is None:
            return
        with self._lock:
            # A NewSession may have replaced the ended session meanwhile.
            if self.state.session.id == session_id:
                self.dispatch(cmd.SetSyncedSessionId(session_id=remote_id))

    def _retry_sync_queue(self) -> None:
        try:
            with self._db() as db:
                result = cloud_sync.process_queue(db, self.cloud_sync)
        except Exception:
            logger.exception("Processing the cloud sync queue failed")
            return
        if result["processed"]:
            logger.info(f"Sync queue: {result['synced']} synced, {result['remaining']} remaining")

    def retry_sync_queue(self) -> dict:
        with self._db() as db:
            return cloud_sync.process_queue(db, self.cloud_sync)

    def _submit(self, fn: Callable[[], None]) -> None:
        self._executor.submit(fn)
