"""
Domain metrics: per-domain trial statistics and daily-score standing.

Trial-level figures (accuracy, reaction time, omissions, learning rate,
fatigue) come from the trial log; standing figures (consistency, z-score,
confidence interval) come from the daily-summary history. Nothing here is
persisted; every call recomputes from the snapshot.
"""

import logging
import math
from typing import List, Optional

import numpy as np
import pandas as pd

from mindboost.config import EngineConfig
from mindboost.frames import summaries_frame, trials_frame
from mindboost.models import DomainMetrics, LearningCurve, SessionPoint, Snapshot
from mindboost.stats import iqr, linear_slope, mean_or, median, round_half_up, std

log = logging.getLogger(__name__)


def empty_domain_metrics(domain: str) -> DomainMetrics:
    """Neutral record for a domain with no trials."""
    return DomainMetrics(
        domain=domain,
        accuracy_rate=0.0,
        median_rt=0.0,
        rt_variability=0.0,
        omission_rate=0.0,
        speed_accuracy_tradeoff=0.0,
        learning_rate=0.0,
        fatigue_index=0.0,
        consistency=0.0,
        z_score=0.0,
        confidence_lower=-1.0,
        confidence_upper=1.0,
        trial_count=0,
    )


# ---------------------------------------------------------------------------
# Trial-level components
# ---------------------------------------------------------------------------

def session_accuracies(domain_trials: pd.DataFrame) -> List[float]:
    """Accuracy per session, sessions ordered by their first trial."""
    if domain_trials.empty:
        return []
    grouped = domain_trials.groupby("session_id", sort=False)["correct"]
    return [float(v) for v in grouped.mean().tolist()]


def fatigue_index(correct: np.ndarray) -> float:
    """
    Accuracy of the first third of trials minus accuracy of the last third.

    Positive means performance fell off. Fewer than 3 trials → 0.
    """
    third = len(correct) // 3
    if third == 0:
        return 0.0
    early = float(np.mean(correct[:third]))
    late = float(np.mean(correct[-third:]))
    return early - late


def consistency_score(daily_scores: List[float], cfg: EngineConfig) -> float:
    """1 - min(1, std(recent daily scores) / scale); neutral default on short history."""
    m = cfg.metrics
    if len(daily_scores) < m.consistency_min_points:
        return m.consistency_default
    spread = std(daily_scores[-m.consistency_window:])
    return 1.0 - min(1.0, spread / m.consistency_scale)


def baseline_zscore(daily_scores: List[float], cfg: EngineConfig) -> tuple:
    """
    Standardized recent-vs-baseline difference.

    Returns (z, recent_count). Baseline is the first N daily scores, recent
    the last N. A baseline too short or too flat to measure spread uses the
    default std.
    """
    m = cfg.metrics
    baseline = daily_scores[:m.zscore_window]
    recent = daily_scores[-m.zscore_window:] if daily_scores else []

    baseline_mean = mean_or(baseline, m.baseline_mean_default)
    recent_mean = mean_or(recent, m.baseline_mean_default)

    baseline_std = std(baseline) if len(baseline) > 1 else m.baseline_std_default
    if baseline_std == 0.0:
        baseline_std = m.baseline_std_default
    return (recent_mean - baseline_mean) / baseline_std, len(recent)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def compute_domain_metrics(
    snapshot: Snapshot,
    domain: Optional[str] = None,
    cfg: Optional[EngineConfig] = None,
) -> List[DomainMetrics]:
    """One DomainMetrics per requested domain (all domains, in catalog order, by default)."""
    if cfg is None:
        cfg = EngineConfig()

    if domain is not None and domain not in cfg.domain_keys:
        raise ValueError(f"Unknown domain: {domain!r}")

    keys = [k for k in cfg.domain_keys if domain is None or k == domain]
    trials = trials_frame(snapshot, cfg)
    summaries = summaries_frame(snapshot, cfg)

    return [_metrics_for_domain(key, trials, summaries, cfg) for key in keys]


def _metrics_for_domain(
    key: str,
    trials: pd.DataFrame,
    summaries: pd.DataFrame,
    cfg: EngineConfig,
) -> DomainMetrics:
    m = cfg.metrics
    domain_trials = trials[trials["domain"] == key]
    n = len(domain_trials)

    if n == 0:
        return empty_domain_metrics(key)

    correct = domain_trials["correct"].to_numpy(dtype=bool)
    rts = domain_trials["rt_ms"].to_numpy(dtype=np.float64)

    accuracy = float(correct.mean())
    median_rt = median(rts)
    rt_variability = iqr(rts)
    omission_rate = float(np.mean(rts > m.rt_timeout_ms))
    # Negative when the median RT exceeds the timeout: slow-but-correct is penalized
    tradeoff = accuracy * (1.0 - median_rt / m.rt_timeout_ms)

    learning_rate = linear_slope(session_accuracies(domain_trials))
    fatigue = fatigue_index(correct)

    daily_scores = summaries[key].dropna().tolist() if key in summaries else []
    consistency = consistency_score(daily_scores, cfg)
    z, recent_count = baseline_zscore(daily_scores, cfg)
    half_width = m.ci_multiplier / math.sqrt(max(1, recent_count))

    log.debug(
        "domain=%s trials=%d acc=%.3f z=%.3f days=%d",
        key, n, accuracy, z, len(daily_scores),
    )

    d = m.decimals
    return DomainMetrics(
        domain=key,
        accuracy_rate=round_half_up(accuracy, d),
        median_rt=round_half_up(median_rt, d),
        rt_variability=round_half_up(rt_variability, d),
        omission_rate=round_half_up(omission_rate, d),
        speed_accuracy_tradeoff=round_half_up(tradeoff, d),
        learning_rate=round_half_up(learning_rate, d),
        fatigue_index=round_half_up(fatigue, d),
        consistency=round_half_up(consistency, d),
        z_score=round_half_up(z, d),
        confidence_lower=round_half_up(z - half_width, d),
        confidence_upper=round_half_up(z + half_width, d),
        trial_count=n,
    )


def get_learning_curves(
    snapshot: Snapshot,
    game_id: Optional[str] = None,
    cfg: Optional[EngineConfig] = None,
) -> List[LearningCurve]:
    """Per-session accuracy / median RT for each game, oldest session first."""
    if cfg is None:
        cfg = EngineConfig()

    games = [cfg.game(game_id)] if game_id is not None else list(cfg.games)
    trials = trials_frame(snapshot, cfg)

    curves = []
    for game in games:
        game_trials = trials[trials["game_id"] == game.id]
        points = []
        for session_id, group in game_trials.groupby("session_id", sort=False):
            points.append(SessionPoint(
                session_id=str(session_id),
                date=group["started_at"].iloc[0].strftime("%Y-%m-%d"),
                accuracy=round_half_up(float(group["correct"].mean()), 2),
                median_rt=round_half_up(median(group["rt_ms"]), 2),
                trial_count=len(group),
            ))
        points.sort(key=lambda p: p.date)
        curves.append(LearningCurve(
            game_id=game.id,
            game_name=game.name,
            domain=game.domain,
            sessions=tuple(points),
        ))
    return curves
