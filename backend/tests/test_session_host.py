"""
Tests for SessionHost: restore on startup, persistence after every command,
effects, undo expiry and cloud sync hand-off.
"""

from sqlmodel import Session, select

from openplay.models.session_snapshot import SessionSnapshot
from openplay.models.sync_queue_item import SyncQueueItem
from openplay.services import announcer, cloud_sync, location_history, persistence_store, player_directory
from openplay.services.announcer import Announcer
from openplay.services.cloud_sync import CloudSyncClient
from openplay.services.open_play import commands as cmd


class StubCloud(CloudSyncClient):
    """Configured client whose pushes always succeed."""

    def __init__(self, remote_id="remote-1"):
        super().__init__(base_url="https://sync.example.test")
        self.remote_id = remote_id
        self.pushed = []

    def push(self, payload):
        self.pushed.append(payload)
        return self.remote_id


def _start(host, players=4, courts=1):
    host.dispatch(cmd.SetLocation(location="Gym"))
    host.dispatch(cmd.SetCourts(courts=courts))
    for i in range(players):
        host.dispatch(cmd.AddPlayer(name=f"Player {i + 1}"))
    for p in host.state.session.players:
        host.dispatch(cmd.CheckInPlayer(player_id=p.id))
    return host.dispatch(cmd.StartSession())


def _finish_first_match(host, winner=1):
    match = host.state.session.active_matches[0]
    return host.dispatch(cmd.RecordWinner(match_id=match.id, winner=winner))


class TestRestore:
    def test_fresh_host_creates_and_saves_session(self, host, open_db):
        assert host.state.session.phase == "setup"
        with open_db() as db:
            assert persistence_store.load_session(db) == host.state.session

    def test_system_clock_saves_and_restores(self, make_host, open_db):
        host = make_host(clock=None)
        _start(host)
        _finish_first_match(host)

        with open_db() as db:
            saved = persistence_store.load_session(db)
            assert db.exec(select(SessionSnapshot)).one().session_id == host.state.session.id
        assert saved == host.state.session
        assert saved.start_time.tzinfo is not None

    def test_new_session_uses_last_location(self, session: Session, make_host):
        location_history.record_location(session, "Annex", 3)
        host = make_host()
        assert host.state.session.location == "Annex"
        assert host.state.session.courts == 3

    def test_restart_restores_live_session(self, make_host):
        first = make_host()
        _start(first)
        _finish_first_match(first)

        second = make_host()
        assert second.state.session == first.state.session
        assert second.state.undo is None

    def test_unreadable_snapshot_is_replaced(self, session: Session, make_host, open_db):
        session.add(SessionSnapshot(slot="current", session_id="broken", document={"players": "nope"}))
        session.commit()

        host = make_host()
        with open_db() as db:
            row = db.exec(select(SessionSnapshot)).one()
            assert row.session_id == host.state.session.id

    def test_mute_flag_restored(self, make_host, open_db):
        make_host().set_muted(True)
        with open_db() as db:
            assert announcer.is_muted(db)
        assert make_host().announcer.muted


class TestDispatch:
    def test_every_change_is_saved(self, host, open_db):
        host.dispatch(cmd.AddPlayer(name="Ann"))
        with open_db() as db:
            (ann,) = persistence_store.load_session(db).players
        assert ann.name == "Ann"

    def test_noop_returns_current_state(self, host):
        before = host.state
        assert host.dispatch(cmd.EndSession()) is before

    def test_start_records_location_and_announces(self, host, spoken, open_db):
        state = _start(host, courts=2)
        assert state.session.phase == "active"
        with open_db() as db:
            recent = location_history.most_recent_location(db)
        assert (recent.name, recent.courts) == ("Gym", 2)
        assert spoken[-1].startswith("Next match. Court 1: ")

    def test_muted_host_stays_quiet(self, host, spoken):
        host.set_muted(True)
        _start(host)
        _finish_first_match(host)
        assert spoken == []

    def test_failing_effect_does_not_undo_transition(self, make_host, open_db):
        def broken_speaker(text):
            raise RuntimeError("speaker unplugged")

        host = make_host(announcer=Announcer(speak=broken_speaker))
        _start(host)
        assert host.state.session.phase == "active"
        with open_db() as db:
            assert persistence_store.load_session(db).phase == "active"
            assert location_history.most_recent_location(db).name == "Gym"


class TestUndoExpiry:
    def test_result_arms_timer(self, host, spoken, timers):
        _start(host)
        _finish_first_match(host)
        timer = timers[-1]
        assert timer.interval == 10
        assert timer.started and timer.daemon
        assert spoken[-1].endswith("win!")

        timer.fire()
        assert host.state.undo is None

    def test_undo_cancels_timer(self, host, timers):
        _start(host)
        match = host.state.session.active_matches[0]
        host.dispatch(cmd.RecordWinner(match_id=match.id, winner=2))
        timer = timers[-1]

        host.dispatch(cmd.UndoWinner(match_id=match.id))
        assert timer.cancelled
        assert host.state.session.active_matches[0].id == match.id

    def test_stale_timer_is_ignored(self, host, timers):
        _start(host, players=8, courts=2)
        first, second = host.state.session.active_matches
        host.dispatch(cmd.RecordWinner(match_id=first.id, winner=1))
        stale = timers[-1]
        host.dispatch(cmd.RecordWinner(match_id=second.id, winner=1))
        assert stale.cancelled

        stale.function(*stale.args)
        assert host.state.undo.match_id == second.id

    def test_new_session_tears_down_timer(self, host, open_db, timers):
        _start(host)
        old_id = host.state.session.id
        _finish_first_match(host)
        timer = timers[-1]

        state = host.new_session()
        assert timer.cancelled
        assert state.session.id != old_id
        assert (state.session.location, state.session.courts, state.session.players) == ("Gym", 1, ())
        with open_db() as db:
            assert persistence_store.load_session(db).id == state.session.id


class TestEndSession:
    def test_flushes_directory_and_queues_sync_in_dry_run(self, host, spoken, open_db):
        _start(host, players=5)
        _finish_first_match(host)
        state = host.dispatch(cmd.EndSession())
        assert state.session.phase == "ended"
        assert state.synced_session_id is None

        with open_db() as db:
            records = player_directory.list_players(db)
            (queued,) = db.exec(select(SyncQueueItem)).all()
        assert len(records) == 4
        assert all(r.lifetime_games == 1 for r in records)
        assert queued.payload["total_games"] == 1
        assert "Session complete! Here are today's top players." in spoken

    def test_end_cancels_undo_timer(self, host, timers):
        _start(host)
        match = host.state.session.active_matches[0]
        host.dispatch(cmd.RecordWinner(match_id=match.id, winner=1))
        timer = timers[-1]

        state = host.dispatch(cmd.EndSession())
        assert timer.cancelled
        assert state.undo is None
        assert host.dispatch(cmd.UndoWinner(match_id=match.id)) is state

    def test_successful_sync_sets_shareable_id(self, make_host, open_db):
        cloud = StubCloud()
        host = make_host(cloud_sync_client=cloud)
        _start(host)
        _finish_first_match(host)
        state = host.dispatch(cmd.EndSession())

        assert state.synced_session_id == "remote-1"
        assert cloud.pushed[0]["local_session_id"] == state.session.id
        with open_db() as db:
            assert db.exec(select(SyncQueueItem)).all() == []

    def test_late_sync_result_ignored_after_new_session(self, make_host):
        jobs = []
        host = make_host(cloud_sync_client=StubCloud(), run_in_background=jobs.append)
        _start(host)
        host.dispatch(cmd.EndSession())
        host.new_session()

        for job in jobs:
            job()
        assert host.state.synced_session_id is None


class TestSyncQueue:
    def test_startup_drains_queue(self, make_host, open_db):
        with open_db() as db:
            cloud_sync.enqueue(db, "earlier", {"n": 1})

        cloud = StubCloud()
        host = make_host(cloud_sync_client=cloud)
        host.startup()
        assert cloud.pushed == [{"n": 1}]
        assert host.retry_sync_queue() == {"processed": 0, "synced": 0, "remaining": 0}

    def test_dry_run_keeps_queue(self, host, open_db):
        with open_db() as db:
            cloud_sync.enqueue(db, "earlier", {"n": 1})
        assert host.retry_sync_queue() == {"processed": 0, "synced": 0, "remaining": 1}
