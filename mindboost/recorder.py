"""
Game-session recording: the write side that feeds the event log.

A mini-game calls ``start`` when play begins, ``log_trial`` per response and
``finish`` at the end. ``finish`` commits all trials plus the closing events
and session in one store batch, then folds the game into the day's summary:

    domain score = accuracy × 60 + (1 − min(median RT, 1200) / 1200) × 40
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from mindboost.config import EngineConfig
from mindboost.models import AppEvent, DailySummary, Session, Trial
from mindboost.stats import median, round_half_up
from mindboost.store import EventStore

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class TrialRecord:
    """A response as reported by a game, before it becomes a Trial."""

    correct: bool
    rt_ms: float
    stimulus: str = ""
    response: str = ""
    difficulty: int = 1
    hints_used: int = 0


@dataclass
class GameSessionContext:
    session: Session
    game_id: str
    trials: List[TrialRecord] = field(default_factory=list)

    @property
    def session_id(self) -> str:
        return self.session.id


def game_domain_score(records: List[TrialRecord], cfg: EngineConfig) -> int:
    """0–100 score for one finished game from its accuracy and median RT."""
    r = cfg.recorder
    accuracy = sum(1 for t in records if t.correct) / len(records)
    rt = min(median(t.rt_ms for t in records), r.rt_ceiling_ms)
    return int(round_half_up(accuracy * r.accuracy_weight + (1 - rt / r.rt_ceiling_ms) * r.speed_weight))


def fold_into_summary(
    existing: Optional[DailySummary],
    user_id: str,
    day: str,
    domain: str,
    score: int,
    trial_count: int,
    cfg: EngineConfig,
) -> DailySummary:
    """Return the day's summary with one more finished game folded in."""
    r = cfg.recorder
    minutes = int(round_half_up(trial_count * r.seconds_per_trial / 60))

    if existing is None:
        scores = {key: r.default_domain_score for key in cfg.domain_keys}
        scores[domain] = score
        games = 1
        total_minutes = minutes
    else:
        scores = dict(existing.domain_scores)
        previous = scores.get(domain, r.default_domain_score)
        scores[domain] = int(round_half_up((previous + score) / 2))
        games = existing.games_played + 1
        total_minutes = existing.minutes_trained + minutes

    composite = int(round_half_up(sum(scores.values()) / len(scores)))
    return DailySummary(
        user_id=user_id,
        date=day,
        minutes_trained=total_minutes,
        games_played=games,
        adherence=min(1.0, games / r.target_games_per_day),
        composite_score=composite,
        domain_scores=scores,
    )


class GameSessionRecorder:
    """Records one user's game sessions into an EventStore."""

    # Serializes the read-modify-write of daily summaries within this process
    _summary_lock = threading.Lock()

    def __init__(
        self,
        store: EventStore,
        user_id: str,
        cfg: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.user_id = user_id
        self.cfg = cfg or EngineConfig()
        self.clock = clock

    def start(self, game_id: str, device_type: str = "desktop") -> GameSessionContext:
        self.cfg.game(game_id)  # validates the id
        now = self.clock().isoformat()
        session = Session(
            id=_new_id(),
            user_id=self.user_id,
            started_at=now,
            ended_at=None,
            device_type=device_type,
        )
        events = [
            AppEvent(id=_new_id(), user_id=self.user_id, ts=now, type="session_start",
                     session_id=session.id),
            AppEvent(id=_new_id(), user_id=self.user_id, ts=now, type="game_start",
                     session_id=session.id, game_id=game_id),
        ]
        self.store.commit_batch(events=events, session=session)
        log.debug("Started %s session %s for %s", game_id, session.id, self.user_id)
        return GameSessionContext(session=session, game_id=game_id)

    def log_trial(self, ctx: GameSessionContext, record: TrialRecord) -> None:
        ctx.trials.append(record)

    def rage_quit(self, ctx: GameSessionContext) -> None:
        """Mark the session as abandoned in frustration; trials are still kept on finish."""
        self.store.append_events([
            AppEvent(id=_new_id(), user_id=self.user_id, ts=self.clock().isoformat(),
                     type="rage_quit", session_id=ctx.session_id,
                     payload={"game": ctx.game_id}),
        ])

    def finish(self, ctx: GameSessionContext) -> Optional[DailySummary]:
        """
        Commit the game and update today's summary.

        Returns the updated summary, or None when the game logged no trials.
        In that case no trials, summary or end events are written; the
        session opened by ``start`` stays open with no ``session_end``.
        """
        records = ctx.trials
        if not records:
            log.debug("Session %s ended without trials; nothing recorded", ctx.session_id)
            return None

        r = self.cfg.recorder
        now = self.clock()
        n = len(records)
        step = timedelta(seconds=r.seconds_per_trial)

        trials = []
        for i, rec in enumerate(records):
            started = now - step * (n - i)
            trials.append(Trial(
                id=_new_id(),
                session_id=ctx.session_id,
                game_id=ctx.game_id,
                started_at=started.isoformat(),
                ended_at=(started + timedelta(milliseconds=rec.rt_ms)).isoformat(),
                stimulus=rec.stimulus,
                response=rec.response,
                correct=rec.correct,
                rt_ms=float(round_half_up(rec.rt_ms)),
                difficulty=rec.difficulty,
                hints_used=rec.hints_used,
            ))

        accuracy = sum(1 for t in records if t.correct) / n
        median_rt = median(t.rt_ms for t in records)
        started_at = datetime.fromisoformat(ctx.session.started_at)
        events = [
            AppEvent(id=_new_id(), user_id=self.user_id, ts=now.isoformat(), type="game_end",
                     session_id=ctx.session_id, game_id=ctx.game_id,
                     payload={"accuracy": accuracy, "medianRt": median_rt, "trials": n,
                              "difficulty": records[0].difficulty}),
            AppEvent(id=_new_id(), user_id=self.user_id, ts=now.isoformat(), type="session_end",
                     session_id=ctx.session_id,
                     payload={"duration": (now - started_at).total_seconds() / 60}),
        ]
        closed = replace(ctx.session, ended_at=now.isoformat())
        self.store.commit_batch(trials=trials, events=events, session=closed)

        domain = self.cfg.game(ctx.game_id).domain
        score = game_domain_score(records, self.cfg)
        day = now.date().isoformat()
        with self._summary_lock:
            existing = next(
                (d for d in self.store.get_snapshot(self.user_id).daily_summaries if d.date == day),
                None,
            )
            summary = fold_into_summary(existing, self.user_id, day, domain, score, n, self.cfg)
            self.store.upsert_daily_summary(summary)

        log.info(
            "Recorded %d %s trials for %s (score %d, %d games today)",
            n, ctx.game_id, self.user_id, score, summary.games_played,
        )
        return summary
