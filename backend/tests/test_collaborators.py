"""
Tests for the stores around the reducer: session snapshot, location
history, player directory, cloud sync queue and announcer.
"""

from datetime import datetime, timedelta, timezone

import pytest
import requests
from sqlmodel import Session, select

from openplay.models.session_snapshot import SessionSnapshot
from openplay.models.sync_queue_item import SyncQueueItem
from openplay.services import announcer, cloud_sync, location_history, persistence_store, player_directory
from openplay.services.announcer import Announcer
from openplay.services.cloud_sync import CloudSyncClient, CloudSyncError
from openplay.services.open_play.domain import Player, PlayerStatus, PlayerSummary, SessionSummary
from openplay.services.open_play.domain import Session as LiveSession
from openplay.services.open_play.leaderboard import LeaderboardRow

T0 = datetime(2026, 6, 6, 9, 0, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, status_code=201, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no JSON")
        return self._body


class FakeHttp:
    """Records POSTs and replays queued responses (or raises queued exceptions)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _summary(location="Gym") -> SessionSummary:
    return SessionSummary(
        location=location,
        courts=2,
        total_games=3,
        started_at=T0,
        ended_at=T0 + timedelta(hours=2),
        players=(PlayerSummary(name="Ann", skill=2, wins=2, losses=1, games_played=3),),
    )


# ============================================================================
# Session snapshot
# ============================================================================


class TestPersistenceStore:
    def test_empty_store(self, session: Session):
        assert persistence_store.load_session(session) is None

    def test_save_overwrites_single_slot(self, session: Session):
        first = LiveSession(id="s1", location="Gym")
        second = LiveSession(
            id="s2",
            location="Annex",
            players=(Player(id="a", name="Ann", status=PlayerStatus.CHECKED_IN),),
        )
        persistence_store.save_session(session, first)
        persistence_store.save_session(session, second)

        assert persistence_store.load_session(session) == second
        assert len(session.exec(select(SessionSnapshot)).all()) == 1

    def test_clear(self, session: Session):
        persistence_store.save_session(session, LiveSession(id="s1"))
        persistence_store.clear_session(session)
        assert persistence_store.load_session(session) is None
        persistence_store.clear_session(session)

    def test_unreadable_document_is_discarded(self, session: Session):
        session.add(SessionSnapshot(slot=persistence_store.CURRENT_SLOT, session_id="bad", document={"players": []}))
        session.commit()
        assert persistence_store.load_session(session) is None


# ============================================================================
# Location history
# ============================================================================


class TestLocationHistory:
    def test_most_recent_first(self, session: Session):
        location_history.record_location(session, "Gym", 4, used_at=T0)
        location_history.record_location(session, "Annex", 2, used_at=T0 + timedelta(minutes=1))
        assert [e.name for e in location_history.list_locations(session)] == ["Annex", "Gym"]
        assert location_history.most_recent_location(session).courts == 2

    def test_reuse_moves_to_front_and_updates_courts(self, session: Session):
        location_history.record_location(session, "Gym", 4, used_at=T0)
        location_history.record_location(session, "Annex", 2, used_at=T0 + timedelta(minutes=1))
        location_history.record_location(session, " Gym ", 6, used_at=T0 + timedelta(minutes=2))

        entries = location_history.list_locations(session)
        assert [(e.name, e.courts) for e in entries] == [("Gym", 6), ("Annex", 2)]

    def test_capped_at_ten(self, session: Session):
        for i in range(12):
            location_history.record_location(session, f"Venue {i}", 1, used_at=T0 + timedelta(minutes=i))
        names = [e.name for e in location_history.list_locations(session)]
        assert len(names) == location_history.MAX_LOCATIONS
        assert names[0] == "Venue 11"
        assert "Venue 0" not in names and "Venue 1" not in names

    def test_blank_name_ignored(self, session: Session):
        location_history.record_location(session, "   ", 3)
        assert location_history.most_recent_location(session) is None


# ============================================================================
# Player directory
# ============================================================================


class TestPlayerDirectory:
    def test_creates_then_accumulates(self, session: Session):
        player_directory.update_stats(session, "Ann", 2, 3, 1, played_at=T0)
        record = player_directory.update_stats(session, "  ann ", None, 1, 2, played_at=T0 + timedelta(days=1))

        assert record.name == "ann"
        assert record.skill == 2
        assert (record.lifetime_wins, record.lifetime_losses, record.lifetime_games) == (4, 3, 7)
        # SQLite hands timestamps back without an offset
        assert record.last_played_at.replace(tzinfo=None) == datetime(2026, 6, 7, 9, 0, 0)
        assert len(player_directory.list_players(session)) == 1

    def test_rated_session_updates_skill(self, session: Session):
        player_directory.update_stats(session, "Ben", 1, 0, 1)
        player_directory.update_stats(session, "Ben", 3, 1, 0)
        assert player_directory.get_player(session, "BEN").skill == 3


# ============================================================================
# Cloud sync
# ============================================================================


class TestCloudSyncClient:
    def test_dry_run_without_url(self):
        assert CloudSyncClient(base_url="").dry_run

    def test_push_returns_remote_id(self):
        http = FakeHttp(FakeResponse(201, {"id": "remote-7"}))
        client = CloudSyncClient(base_url="https://example.test/api/", api_key="k", timeout=3, http=http)

        assert client.push({"a": 1}) == "remote-7"
        call = http.calls[0]
        assert call["url"] == "https://example.test/api/sessions"
        assert call["headers"]["Authorization"] == "Bearer k"
        assert call["timeout"] == 3

    @pytest.mark.parametrize(
        "outcome",
        [
            FakeResponse(500, text="boom"),
            FakeResponse(200, {"ok": True}),
            FakeResponse(200, None),
            FakeResponse(200, ["remote-7"]),
            requests.ConnectionError("down"),
        ],
    )
    def test_push_failures_raise(self, outcome):
        client = CloudSyncClient(base_url="https://example.test", http=FakeHttp(outcome))
        with pytest.raises(CloudSyncError):
            client.push({})


class TestCloudSyncQueue:
    def test_dry_run_queues(self, session: Session):
        client = CloudSyncClient(base_url="")
        assert cloud_sync.sync_ended_session(session, client, "s1", _summary()) is None

        (item,) = session.exec(select(SyncQueueItem)).all()
        assert item.session_id == "s1"
        assert item.payload["local_session_id"] == "s1"
        assert item.payload["players"][0]["name"] == "Ann"

    def test_success_is_not_queued(self, session: Session):
        client = CloudSyncClient(base_url="https://example.test", http=FakeHttp(FakeResponse(201, {"id": "r1"})))
        assert cloud_sync.sync_ended_session(session, client, "s1", _summary()) == "r1"
        assert session.exec(select(SyncQueueItem)).all() == []

    def test_failure_is_queued_with_error(self, session: Session):
        client = CloudSyncClient(base_url="https://example.test", http=FakeHttp(FakeResponse(503, text="later")))
        assert cloud_sync.sync_ended_session(session, client, "s1", _summary()) is None
        (item,) = session.exec(select(SyncQueueItem)).all()
        assert "503" in item.last_error

    def test_non_object_body_is_queued(self, session: Session):
        client = CloudSyncClient(base_url="https://example.test", http=FakeHttp(FakeResponse(201, ["r1"])))
        assert cloud_sync.sync_ended_session(session, client, "s1", _summary()) is None
        (item,) = session.exec(select(SyncQueueItem)).all()
        assert "unexpected response body" in item.last_error

    def test_process_queue(self, session: Session):
        cloud_sync.enqueue(session, "s1", {"n": 1})
        cloud_sync.enqueue(session, "s2", {"n": 2})
        http = FakeHttp(FakeResponse(201, {"id": "r1"}), FakeResponse(500, text="no"))
        client = CloudSyncClient(base_url="https://example.test", http=http)

        result = cloud_sync.process_queue(session, client)
        assert result == {"processed": 2, "synced": 1, "remaining": 1}
        (left,) = session.exec(select(SyncQueueItem)).all()
        assert left.session_id == "s2"
        assert left.attempts == 1

    def test_process_queue_in_dry_run_keeps_items(self, session: Session):
        cloud_sync.enqueue(session, "s1", {"n": 1})
        result = cloud_sync.process_queue(session, CloudSyncClient(base_url=""))
        assert result == {"processed": 0, "synced": 0, "remaining": 1}


# ============================================================================
# Announcer
# ============================================================================


class TestAnnouncer:
    def test_messages(self):
        assert announcer.next_match_message(2, ["Ann", "Ben"], ["Cy", "Di"]) == (
            "Next match. Court 2: Ann and Ben versus Cy and Di"
        )
        assert announcer.winner_message(1, ["Ann"]) == "Court 1. Match completed. Ann win!"

    def test_leaderboard_messages(self):
        rows = [LeaderboardRow(rank=1, player_id="a", name="Ann", wins=3, losses=1, games_played=4, win_percentage=75)]
        messages = announcer.leaderboard_messages(rows)
        assert messages[1] == "First place: Ann, with 75 percent wins."
        assert len(messages) == 3
        assert announcer.leaderboard_messages([]) == ["Session complete. No games were played."]

    def test_muted_announcer_is_silent(self):
        spoken = []
        a = Announcer(speak=spoken.append)
        assert a.winner_recorded(1, ["Ann"])
        a.muted = True
        assert not a.match_formed(1, ["Ann"], ["Ben"])
        assert spoken == ["Court 1. Match completed. Ann win!"]

    def test_mute_flag_persists(self, session: Session):
        assert not announcer.is_muted(session)
        announcer.set_muted(session, True)
        assert announcer.is_muted(session)
        announcer.set_muted(session, False)
        assert not announcer.is_muted(session)
