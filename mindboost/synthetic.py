"""
Synthetic training history for demos and test fixtures.

Not part of the analytics path. Produces a plausible, seeded history: per-domain
learning curves, a small late-game fatigue dip, ~15% skipped days, and the
occasional rage quit. Daily summaries are rolled up the same way the recorder
rolls up live games.
"""

import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional

import numpy as np

from mindboost.config import EngineConfig
from mindboost.models import AppEvent, DailySummary, Session, Snapshot, Trial
from mindboost.stats import median, round_half_up

DEMO_USER_ID = "demo-user"

# (starting accuracy, starting median RT ms, accuracy gain per day)
DOMAIN_PROFILES: Dict[str, tuple] = {
    "working_memory": (0.55, 850.0, 0.004),
    "inhibitory_control": (0.60, 700.0, 0.003),
    "cognitive_flexibility": (0.50, 900.0, 0.005),
    "attention": (0.65, 600.0, 0.002),
    "processing_speed": (0.70, 500.0, 0.006),
}


def generate_history(
    user_id: str = DEMO_USER_ID,
    days: int = 60,
    today: Optional[date] = None,
    seed: int = 7,
    cfg: Optional[EngineConfig] = None,
) -> Snapshot:
    """Build ``days`` days of history ending yesterday, deterministic for a given seed."""
    if cfg is None:
        cfg = EngineConfig()
    if today is None:
        today = date.today()

    rng = np.random.default_rng(seed)
    r = cfg.recorder

    def new_id() -> str:
        return str(uuid.UUID(bytes=rng.bytes(16), version=4))

    sessions: List[Session] = []
    trials: List[Trial] = []
    events: List[AppEvent] = []
    summaries: List[DailySummary] = []

    first_day = today - timedelta(days=days)
    for d in range(days):
        day = first_day + timedelta(days=d)
        if d > 5 and rng.random() < 0.15:
            continue

        day_scores: Dict[str, List[int]] = {key: [] for key in cfg.domain_keys}
        day_minutes = 0.0
        day_games = 0

        for _ in range(2 if rng.random() < 0.3 else 1):
            session_start = datetime.combine(
                day, time(int(rng.integers(8, 20)), int(rng.integers(0, 60))), tzinfo=timezone.utc,
            )
            games_in_session = int(rng.integers(2, 5))
            duration_min = games_in_session * float(rng.uniform(3, 7))
            session_end = session_start + timedelta(minutes=duration_min)
            session_id = new_id()

            sessions.append(Session(
                id=session_id,
                user_id=user_id,
                started_at=session_start.isoformat(),
                ended_at=session_end.isoformat(),
                device_type="desktop" if rng.random() < 0.6 else "mobile",
                mood_pre=int(rng.integers(1, 6)),
                sleep=float(np.clip(rng.normal(7, 1.5), 3, 10)),
                stress=int(rng.integers(1, 6)),
            ))
            events.append(AppEvent(id=new_id(), user_id=user_id, ts=session_start.isoformat(),
                                   type="session_start", session_id=session_id))

            picked = rng.permutation(len(cfg.games))[:games_in_session]
            cursor = session_start
            for idx in picked:
                game = cfg.games[int(idx)]
                acc0, rt0, gain = DOMAIN_PROFILES.get(game.domain, (0.6, 700.0, 0.003))
                acc_base = float(np.clip(acc0 + d * gain, 0.3, 0.95))
                rt_base = float(np.clip(rt0 - d * 3, 300, 1200))
                difficulty = int(np.clip(1 + d // 10, 1, 8))
                n_trials = int(rng.integers(15, 40))

                events.append(AppEvent(id=new_id(), user_id=user_id, ts=cursor.isoformat(),
                                       type="game_start", session_id=session_id,
                                       game_id=game.id, payload={"difficulty": difficulty}))

                correct_count = 0
                rts = []
                for t in range(n_trials):
                    late = t > n_trials * 0.7
                    p_correct = acc_base + (-0.05 if late else 0.0) + rng.normal(0, 0.08)
                    correct = bool(rng.random() < p_correct)
                    rt = float(np.clip(rt_base + rng.normal(0, 80) + (50 if late else 0), 150, 2000))
                    started = cursor + timedelta(seconds=t * r.seconds_per_trial)
                    correct_count += correct
                    rts.append(rt)
                    trials.append(Trial(
                        id=new_id(),
                        session_id=session_id,
                        game_id=game.id,
                        started_at=started.isoformat(),
                        ended_at=(started + timedelta(milliseconds=rt)).isoformat(),
                        stimulus=f"stim_{t}",
                        response="correct" if correct else "incorrect",
                        correct=correct,
                        rt_ms=float(round_half_up(rt)),
                        difficulty=difficulty,
                        hints_used=1 if (not correct and rng.random() < 0.1) else 0,
                    ))

                cursor = cursor + timedelta(seconds=n_trials * r.seconds_per_trial)
                accuracy = correct_count / n_trials
                events.append(AppEvent(id=new_id(), user_id=user_id, ts=cursor.isoformat(),
                                       type="game_end", session_id=session_id, game_id=game.id,
                                       payload={"accuracy": accuracy, "medianRt": median(rts),
                                                "trials": n_trials, "difficulty": difficulty}))

                score = accuracy * r.accuracy_weight + (1 - median(rts) / r.rt_ceiling_ms) * r.speed_weight
                day_scores[game.domain].append(int(np.clip(round_half_up(score), 0, 100)))
                day_games += 1
                day_minutes += n_trials * r.seconds_per_trial / 60

            if rng.random() < 0.05:
                events.append(AppEvent(id=new_id(), user_id=user_id, ts=session_end.isoformat(),
                                       type="rage_quit", session_id=session_id,
                                       payload={"game": cfg.games[int(picked[0])].id}))
            events.append(AppEvent(id=new_id(), user_id=user_id, ts=session_end.isoformat(),
                                   type="session_end", session_id=session_id,
                                   payload={"duration": duration_min}))

        domain_scores = {
            key: (float(np.mean(scores)) if scores else r.default_domain_score)
            for key, scores in day_scores.items()
        }
        summaries.append(DailySummary(
            user_id=user_id,
            date=day.isoformat(),
            minutes_trained=int(round_half_up(day_minutes)),
            games_played=day_games,
            adherence=min(1.0, day_games / r.target_games_per_day),
            composite_score=int(round_half_up(sum(domain_scores.values()) / len(domain_scores))),
            domain_scores=domain_scores,
        ))

    return Snapshot(
        trials=tuple(sorted(trials, key=lambda t: t.started_at)),
        events=tuple(sorted(events, key=lambda e: e.ts)),
        sessions=tuple(sessions),
        daily_summaries=tuple(summaries),
    )
