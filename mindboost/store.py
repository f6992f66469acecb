"""
Event Store: append-only logs of trials, events, sessions, and daily summaries.

The analytics core only ever sees ``Snapshot`` objects returned by
``get_snapshot``. Two implementations ship here:

    InMemoryEventStore  — process-local, for tests and embedding
    JsonFileEventStore  — one JSON document on disk, one list per record
                          kind under the mb_* keys

Trials carry no user id; they belong to a user through their session.
Snapshots come back sorted ascending (trials / events by timestamp,
sessions by start, summaries by date) so "first N" / "last N" slicing
downstream is chronological.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from mindboost.models import AppEvent, DailySummary, Session, Snapshot, Trial

log = logging.getLogger(__name__)


class EventStoreError(Exception):
    """Read or write failure at the storage boundary (never an empty-data state)."""


# Keys of the persisted document, one list per record kind
STORAGE_KEYS = {
    "sessions": "mb_sessions",
    "trials": "mb_trials",
    "events": "mb_events",
    "daily_summaries": "mb_daily_summaries",
}


def build_snapshot(
    user_id: str,
    trials: Iterable[Trial],
    events: Iterable[AppEvent],
    sessions: Iterable[Session],
    summaries: Iterable[DailySummary],
) -> Snapshot:
    """Filter full logs down to one user and sort every log chronologically."""
    user_sessions = sorted(
        (s for s in sessions if s.user_id == user_id),
        key=lambda s: s.started_at,
    )
    session_ids = {s.id for s in user_sessions}
    return Snapshot(
        trials=tuple(sorted(
            (t for t in trials if t.session_id in session_ids),
            key=lambda t: t.started_at,
        )),
        events=tuple(sorted(
            (e for e in events if e.user_id == user_id),
            key=lambda e: e.ts,
        )),
        sessions=tuple(user_sessions),
        daily_summaries=tuple(sorted(
            (d for d in summaries if d.user_id == user_id),
            key=lambda d: d.date,
        )),
    )


class EventStore(ABC):
    """Storage boundary required by the analytics engine."""

    @abstractmethod
    def get_snapshot(self, user_id: str) -> Snapshot:
        """Consistent full read of one user's logs."""

    @abstractmethod
    def commit_batch(
        self,
        trials: Sequence[Trial] = (),
        events: Sequence[AppEvent] = (),
        session: Optional[Session] = None,
    ) -> None:
        """Write trials, events, and a session upsert as one atomic unit."""

    @abstractmethod
    def upsert_daily_summary(self, summary: DailySummary) -> None:
        """Insert or replace the summary keyed by (user_id, date)."""

    def append_trials(self, trials: Sequence[Trial]) -> None:
        self.commit_batch(trials=trials)

    def append_events(self, events: Sequence[AppEvent]) -> None:
        self.commit_batch(events=events)

    def append_session(self, session: Session) -> None:
        """Append a session; a session with the same id is replaced."""
        self.commit_batch(session=session)

    def seed(self, snapshot: Snapshot) -> None:
        """Bulk-write a whole snapshot (used to seed demo installs)."""
        self.commit_batch(trials=snapshot.trials, events=snapshot.events)
        for session in snapshot.sessions:
            self.append_session(session)
        for summary in snapshot.daily_summaries:
            self.upsert_daily_summary(summary)


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class InMemoryEventStore(EventStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._trials: List[Trial] = []
        self._events: List[AppEvent] = []
        self._sessions: Dict[str, Session] = {}
        self._summaries: Dict[tuple, DailySummary] = {}

    def get_snapshot(self, user_id: str) -> Snapshot:
        with self._lock:
            return build_snapshot(
                user_id,
                list(self._trials),
                list(self._events),
                list(self._sessions.values()),
                list(self._summaries.values()),
            )

    def commit_batch(self, trials=(), events=(), session=None) -> None:
        with self._lock:
            self._trials.extend(trials)
            self._events.extend(events)
            if session is not None:
                self._sessions[session.id] = session
        log.debug("Committed %d trials, %d events", len(trials), len(events))

    def upsert_daily_summary(self, summary: DailySummary) -> None:
        with self._lock:
            self._summaries[(summary.user_id, summary.date)] = summary


# ---------------------------------------------------------------------------
# JSON file store
# ---------------------------------------------------------------------------

class JsonFileEventStore(EventStore):
    """
    Whole-document JSON store.

    Every write rewrites the document to a temporary file in the same
    directory and swaps it in with ``os.replace``, so readers never see a
    half-written batch. A missing file reads as an empty store.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    # -- raw document I/O ----------------------------------------------------

    def _read(self) -> Dict[str, list]:
        if not self.path.exists():
            return {key: [] for key in STORAGE_KEYS.values()}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                doc = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise EventStoreError(f"Cannot read event store {self.path}: {e}") from e
        if not isinstance(doc, dict):
            raise EventStoreError(f"Event store {self.path} is not a JSON object")
        return {key: list(doc.get(key) or []) for key in STORAGE_KEYS.values()}

    def _write(self, doc: Dict[str, list]) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=directory, prefix=".mb_", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(doc, f)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise EventStoreError(f"Cannot write event store {self.path}: {e}") from e

    # -- EventStore ----------------------------------------------------------

    def get_snapshot(self, user_id: str) -> Snapshot:
        with self._lock:
            doc = self._read()
        try:
            return build_snapshot(
                user_id,
                (Trial.from_dict(r) for r in doc[STORAGE_KEYS["trials"]]),
                (AppEvent.from_dict(r) for r in doc[STORAGE_KEYS["events"]]),
                (Session.from_dict(r) for r in doc[STORAGE_KEYS["sessions"]]),
                (DailySummary.from_dict(r) for r in doc[STORAGE_KEYS["daily_summaries"]]),
            )
        except (ValueError, TypeError) as e:
            raise EventStoreError(f"Malformed record in {self.path}: {e}") from e

    def commit_batch(self, trials=(), events=(), session=None) -> None:
        with self._lock:
            doc = self._read()
            doc[STORAGE_KEYS["trials"]].extend(t.to_dict() for t in trials)
            doc[STORAGE_KEYS["events"]].extend(e.to_dict() for e in events)
            if session is not None:
                rows = [r for r in doc[STORAGE_KEYS["sessions"]] if r.get("id") != session.id]
                rows.append(session.to_dict())
                doc[STORAGE_KEYS["sessions"]] = rows
            self._write(doc)
        log.debug("Committed %d trials, %d events to %s", len(trials), len(events), self.path)

    def upsert_daily_summary(self, summary: DailySummary) -> None:
        with self._lock:
            doc = self._read()
            rows = doc[STORAGE_KEYS["daily_summaries"]]
            for i, row in enumerate(rows):
                if row.get("date") == summary.date and row.get("userId") == summary.user_id:
                    rows[i] = summary.to_dict()
                    break
            else:
                rows.append(summary.to_dict())
            self._write(doc)

    def seed(self, snapshot: Snapshot) -> None:
        with self._lock:
            doc = self._read()
            doc[STORAGE_KEYS["trials"]].extend(t.to_dict() for t in snapshot.trials)
            doc[STORAGE_KEYS["events"]].extend(e.to_dict() for e in snapshot.events)
            seeded = {s.id for s in snapshot.sessions}
            sessions = [r for r in doc[STORAGE_KEYS["sessions"]] if r.get("id") not in seeded]
            sessions.extend(s.to_dict() for s in snapshot.sessions)
            doc[STORAGE_KEYS["sessions"]] = sessions
            days = {(d.user_id, d.date) for d in snapshot.daily_summaries}
            summaries = [
                r for r in doc[STORAGE_KEYS["daily_summaries"]]
                if (r.get("userId"), r.get("date")) not in days
            ]
            summaries.extend(d.to_dict() for d in snapshot.daily_summaries)
            doc[STORAGE_KEYS["daily_summaries"]] = summaries
            self._write(doc)
        log.info(
            "Seeded %s with %d trials across %d days",
            self.path, len(snapshot.trials), len(snapshot.daily_summaries),
        )
