"""
Tests for the event store implementations.

Covers: per-user filtering (trials via their session), chronological
snapshot order regardless of write order, session and summary upserts, the
on-disk document layout, and storage failures surfacing as EventStoreError.
"""

import json
from dataclasses import replace
from datetime import date

import pytest

from factories import USER, event, game_session, snapshot, summary
from mindboost.models import Snapshot
from mindboost.pipeline import CognitiveEngine
from mindboost.store import (
    STORAGE_KEYS,
    EventStoreError,
    InMemoryEventStore,
    JsonFileEventStore,
)


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryEventStore()
    return JsonFileEventStore(tmp_path / "store.json")


# ─── Behaviour shared by both stores ──────────────────────────


class TestEventStore:

    def test_empty_store_gives_empty_snapshot(self, store):
        assert store.get_snapshot(USER) == Snapshot()

    def test_filters_by_user(self, store):
        mine = game_session("n-back", [(True, 400)] * 2, user_id=USER)
        theirs = game_session("n-back", [(False, 900)] * 3, user_id="someone-else")
        store.seed(snapshot(
            [mine, theirs],
            summaries=[summary(date(2026, 3, 1)), summary(date(2026, 3, 1), user_id="someone-else")],
            events=[event("app_open"), event("app_open", user_id="someone-else")],
        ))

        snap = store.get_snapshot(USER)
        assert [s.id for s in snap.sessions] == [mine[0].id]
        assert {t.session_id for t in snap.trials} == {mine[0].id}
        assert len(snap.trials) == 2
        assert len(snap.daily_summaries) == 1
        assert [e.user_id for e in snap.events] == [USER]

    def test_snapshot_is_chronological(self, store):
        late = game_session("stroop", [(True, 400)] * 2, day=date(2026, 3, 5))
        early = game_session("stroop", [(True, 400)] * 2, day=date(2026, 3, 1))
        store.append_session(late[0])
        store.append_session(early[0])
        store.append_trials(late[1])
        store.append_trials(early[1])
        store.append_events([
            event("session_end", ts="2026-03-05T10:05:00+00:00"),
            event("session_start", ts="2026-03-01T10:00:00+00:00"),
        ])
        store.upsert_daily_summary(summary(date(2026, 3, 5)))
        store.upsert_daily_summary(summary(date(2026, 3, 1)))

        snap = store.get_snapshot(USER)
        assert [s.id for s in snap.sessions] == [early[0].id, late[0].id]
        assert [t.id for t in snap.trials] == [t.id for t in early[1] + late[1]]
        assert [e.type for e in snap.events] == ["session_start", "session_end"]
        assert [d.date for d in snap.daily_summaries] == ["2026-03-01", "2026-03-05"]

    def test_session_with_same_id_is_replaced(self, store):
        session, _ = game_session("n-back", [], session_id="s-fixed")
        store.append_session(session)
        closed = replace(session, ended_at="2026-03-01T10:30:00+00:00")
        store.append_session(closed)
        (stored,) = store.get_snapshot(USER).sessions
        assert stored.ended_at == "2026-03-01T10:30:00+00:00"

    def test_seed_replaces_existing_session_and_day(self, store):
        session, _ = game_session("n-back", [], session_id="s-seeded")
        store.append_session(session)
        store.upsert_daily_summary(summary(date(2026, 3, 1), composite=40))

        closed = replace(session, ended_at="2026-03-01T10:30:00+00:00")
        store.seed(Snapshot(sessions=(closed,), daily_summaries=(summary(date(2026, 3, 1), composite=70),)))

        snap = store.get_snapshot(USER)
        (stored,) = snap.sessions
        assert stored.ended_at == "2026-03-01T10:30:00+00:00"
        (day,) = snap.daily_summaries
        assert day.composite_score == 70

    def test_summary_upsert_by_day(self, store):
        store.upsert_daily_summary(summary(date(2026, 3, 1), composite=40, games=1))
        store.upsert_daily_summary(summary(date(2026, 3, 1), composite=55, games=2))
        (stored,) = store.get_snapshot(USER).daily_summaries
        assert stored.composite_score == 55
        assert stored.games_played == 2

    def test_commit_batch_writes_everything(self, store):
        session, trials = game_session("task-switch", [(True, 450), (False, 700)])
        store.commit_batch(trials=trials, events=[event("game_end")], session=session)
        snap = store.get_snapshot(USER)
        assert len(snap.trials) == 2
        assert len(snap.events) == 1
        assert len(snap.sessions) == 1


def test_stores_agree(tmp_path):
    data = snapshot(
        [game_session("n-back", [(True, 400), (False, 1600)], day=date(2026, 3, d)) for d in (3, 1, 2)],
        summaries=[summary(date(2026, 3, d), composite=50 + d) for d in (3, 1, 2)],
        events=[event("session_end"), event("rage_quit")],
    )
    memory = InMemoryEventStore()
    disk = JsonFileEventStore(tmp_path / "store.json")
    memory.seed(data)
    disk.seed(data)
    assert disk.get_snapshot(USER) == memory.get_snapshot(USER)


# ─── JSON file store specifics ────────────────────────────────


class TestJsonFileEventStore:

    def test_document_layout(self, tmp_path):
        path = tmp_path / "store.json"
        store = JsonFileEventStore(path)
        session, trials = game_session("n-back", [(True, 400)])
        store.commit_batch(trials=trials, session=session)

        doc = json.loads(path.read_text(encoding="utf-8"))
        assert set(doc) == set(STORAGE_KEYS.values())
        (row,) = doc["mb_trials"]
        assert row["sessionId"] == session.id
        assert row["rtMs"] == 400

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileEventStore(tmp_path / "store.json")
        store.upsert_daily_summary(summary(date(2026, 3, 1)))
        store.append_events([event("app_open")])
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]

    def test_creates_parent_directory(self, tmp_path):
        store = JsonFileEventStore(tmp_path / "nested" / "dir" / "store.json")
        store.append_events([event("app_open")])
        assert len(store.get_snapshot(USER).events) == 1

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(EventStoreError):
            JsonFileEventStore(path).get_snapshot(USER)

    def test_non_object_document_raises(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(EventStoreError):
            JsonFileEventStore(path).get_snapshot(USER)

    def test_malformed_record_raises(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({
            "mb_sessions": [{"id": "s1", "userId": USER, "startedAt": "2026-03-01T10:00:00+00:00"}],
            "mb_trials": [{"id": "t1", "sessionId": "s1", "gameId": "n-back",
                           "startedAt": "2026-03-01T10:00:00+00:00", "correct": True}],
        }), encoding="utf-8")
        with pytest.raises(EventStoreError, match="Malformed record"):
            JsonFileEventStore(path).get_snapshot(USER)

    def test_bad_summary_date_raises_before_analysis(self, tmp_path, today):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({
            "mb_daily_summaries": [{"userId": USER, "date": "not-a-date", "gamesPlayed": 1,
                                    "adherence": 0.3, "compositeScore": 50}],
        }), encoding="utf-8")
        engine = CognitiveEngine(JsonFileEventStore(path), USER, today=today)
        with pytest.raises(EventStoreError, match="Malformed record"):
            engine.get_overview_kpis()

    def test_bad_trial_timestamp_raises(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({
            "mb_sessions": [{"id": "s1", "userId": USER, "startedAt": "2026-03-01T10:00:00+00:00"}],
            "mb_trials": [{"id": "t1", "sessionId": "s1", "gameId": "n-back",
                           "startedAt": "yesterday", "correct": True, "rtMs": 420}],
        }), encoding="utf-8")
        with pytest.raises(EventStoreError, match="Malformed record"):
            JsonFileEventStore(path).get_snapshot(USER)

    def test_mixed_timestamp_styles_are_accepted(self, tmp_path, today):
        path = tmp_path / "store.json"
        stamps = ["2026-03-01T10:00:00", "2026-03-01T10:00:03+00:00", "2026-03-01T10:00:06.250Z"]
        path.write_text(json.dumps({
            "mb_sessions": [{"id": "s1", "userId": USER, "startedAt": "2026-03-01T10:00:00Z"}],
            "mb_trials": [{"id": f"t{i}", "sessionId": "s1", "gameId": "n-back",
                           "startedAt": ts, "correct": True, "rtMs": 400}
                          for i, ts in enumerate(stamps)],
            "mb_events": [{"id": "e1", "userId": USER, "ts": "2026-03-01T10:05:00Z",
                           "type": "session_end"}],
        }), encoding="utf-8")
        engine = CognitiveEngine(JsonFileEventStore(path), USER, today=today)
        (wm,) = engine.compute_domain_metrics("working_memory")
        assert wm.trial_count == 3

    def test_unknown_event_type_raises(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({
            "mb_events": [{"id": "e1", "userId": USER, "ts": "2026-03-01T10:00:00+00:00",
                           "type": "teleport"}],
        }), encoding="utf-8")
        with pytest.raises(EventStoreError):
            JsonFileEventStore(path).get_snapshot(USER)

    def test_write_to_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(EventStoreError):
            JsonFileEventStore(path).append_events([event("app_open")])
        assert path.read_text(encoding="utf-8") == "{not json"

    def test_engine_does_not_mask_failures(self, tmp_path, today):
        path = tmp_path / "store.json"
        path.write_text("garbage", encoding="utf-8")
        engine = CognitiveEngine(JsonFileEventStore(path), USER, today=today)
        with pytest.raises(EventStoreError):
            engine.get_overview_kpis()
        with pytest.raises(EventStoreError):
            engine.generate_training_plan()
