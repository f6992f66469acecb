"""
Overview KPIs: rollups over the daily-summary log and the event log.

Composite score, adherence, strongest / weakest domain, meaningful change,
streak, rage-quit rate, average session length, plus weekly and daily
trend series for charts.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional

import numpy as np
import pandas as pd

from mindboost.config import EngineConfig
from mindboost.frames import events_frame, summaries_frame
from mindboost.models import DailySummary, DomainScore, KPIBundle, Snapshot, WeeklyTrend
from mindboost.stats import mean_or, round_half_up, std

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------

def domain_averages(window: pd.DataFrame, cfg: EngineConfig) -> List[tuple]:
    """(domain, mean score) in catalog order; domains with no scores get the default."""
    out = []
    for key in cfg.domain_keys:
        scores = window[key].dropna().tolist() if key in window else []
        out.append((key, mean_or(scores, cfg.kpis.default_domain_score)))
    return out


def rank_domains(averages: List[tuple]) -> List[tuple]:
    """Descending by score; the stable sort keeps catalog order among ties."""
    return sorted(averages, key=lambda pair: pair[1], reverse=True)


def compute_streak(dates, today: date) -> int:
    """
    Consecutive calendar days with a summary, counting back from today.

    If today has no entry yet the count starts from yesterday, so an
    unfinished day does not break the streak.
    """
    days = set(dates)
    anchor = today if today in days else today - timedelta(days=1)
    streak = 0
    while anchor - timedelta(days=streak) in days:
        streak += 1
    return streak


def meaningful_change(summaries: pd.DataFrame, cfg: EngineConfig) -> tuple:
    """
    (is_meaningful, delta) of the recent composite mean vs the first days.

    Effect-size gate, not a hypothesis test: |delta| must exceed
    multiplier × std of the baseline composites.
    """
    k = cfg.kpis
    if summaries.empty:
        return False, 0.0
    recent = summaries["composite_score"].tail(k.recent_days).tolist()
    baseline = summaries["composite_score"].head(k.baseline_days).tolist()
    delta = mean_or(recent, 0.0) - mean_or(baseline, k.default_domain_score)
    threshold = std(baseline) * k.meaningful_change_multiplier
    return abs(delta) > threshold, delta


def rage_quit_rate(events: pd.DataFrame) -> float:
    if events.empty:
        return 0.0
    rage_quits = int((events["type"] == "rage_quit").sum())
    sessions = int((events["type"] == "session_end").sum())
    if sessions == 0:
        return 0.0
    return rage_quits / sessions


def avg_session_length(summaries: pd.DataFrame, cfg: EngineConfig) -> int:
    """Mean of minutes / max(1, games) × games over the session-length window."""
    window = summaries.tail(cfg.kpis.session_length_days)
    if window.empty:
        return 0
    minutes = window["minutes_trained"].to_numpy(dtype=np.float64)
    games = window["games_played"].to_numpy(dtype=np.float64)
    lengths = minutes / np.maximum(1.0, games) * games
    return int(round_half_up(float(lengths.mean())))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def get_overview_kpis(
    snapshot: Snapshot,
    today: Optional[date] = None,
    cfg: Optional[EngineConfig] = None,
) -> KPIBundle:
    """Headline numbers for the overview dashboard."""
    if cfg is None:
        cfg = EngineConfig()
    if today is None:
        today = date.today()
    k = cfg.kpis

    summaries = summaries_frame(snapshot, cfg)
    events = events_frame(snapshot)
    last_week = summaries.tail(k.recent_days)

    composite = round_half_up(mean_or(last_week["composite_score"].tolist(), 0.0))
    adherence = round_half_up(mean_or(last_week["adherence"].tolist(), 0.0) * 100)

    ranked = rank_domains(domain_averages(last_week, cfg))
    strongest, weakest = ranked[0], ranked[-1]

    is_meaningful, delta = meaningful_change(summaries, cfg)

    streak = compute_streak((d.date() for d in summaries["date"]), today)

    bundle = KPIBundle(
        composite_score=int(composite),
        adherence_7d=int(adherence),
        streak=streak,
        strongest=DomainScore(strongest[0], int(round_half_up(strongest[1]))),
        weakest=DomainScore(weakest[0], int(round_half_up(weakest[1]))),
        meaningful_change=bool(is_meaningful),
        delta=int(round_half_up(delta)),
        total_minutes=float(summaries["minutes_trained"].sum()) if not summaries.empty else 0.0,
        total_games=int(summaries["games_played"].sum()) if not summaries.empty else 0,
        total_trials=len(snapshot.trials),
        rage_quit_rate=round_half_up(rage_quit_rate(events), 2),
        avg_session_length=avg_session_length(summaries, cfg),
    )
    log.debug("KPIs: composite=%d adherence=%d streak=%d", bundle.composite_score,
              bundle.adherence_7d, bundle.streak)
    return bundle


def get_weekly_trends(
    snapshot: Snapshot,
    today: Optional[date] = None,
    weeks: int = 8,
    cfg: Optional[EngineConfig] = None,
) -> List[WeeklyTrend]:
    """
    One row per trailing 7-day window, oldest first, the last ending today.

    Empty weeks are reported as zeros so charts keep a fixed x-axis.
    """
    if cfg is None:
        cfg = EngineConfig()
    if today is None:
        today = date.today()

    summaries = summaries_frame(snapshot, cfg)
    trends = []
    for w in range(weeks - 1, -1, -1):
        week_end = today - timedelta(days=7 * w)
        week_start = week_end - timedelta(days=6)
        if summaries.empty:
            week = summaries
        else:
            days = summaries["date"].dt.date
            week = summaries[(days >= week_start) & (days <= week_end)]

        if week.empty:
            trends.append(WeeklyTrend(
                week_start=week_start.isoformat(),
                composite_score=0,
                adherence=0,
                minutes_trained=0,
                games_played=0,
                domain_scores={key: 0 for key in cfg.domain_keys},
            ))
            continue

        trends.append(WeeklyTrend(
            week_start=week_start.isoformat(),
            composite_score=int(round_half_up(week["composite_score"].mean())),
            adherence=int(round_half_up(week["adherence"].mean() * 100)),
            minutes_trained=float(week["minutes_trained"].sum()),
            games_played=int(week["games_played"].sum()),
            domain_scores={
                key: int(round_half_up(mean_or(week[key].dropna().tolist(), 0.0)))
                for key in cfg.domain_keys
            },
        ))
    return trends


def get_daily_trends(snapshot: Snapshot, days: int = 30) -> List[DailySummary]:
    """The most recent ``days`` summaries, oldest first."""
    ordered = sorted(snapshot.daily_summaries, key=lambda d: d.date)
    return ordered[-days:] if days > 0 else []
