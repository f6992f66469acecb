"""
Snapshot → DataFrame conversion.

Every frame is sorted chronologically with a fresh RangeIndex, so positional
slicing (``head`` / ``tail``) downstream means "earliest" / "latest"
regardless of the order records were written in.
"""

import logging

import pandas as pd

from mindboost.config import EngineConfig
from mindboost.models import Snapshot

log = logging.getLogger(__name__)


TRIAL_COLUMNS = (
    "id", "session_id", "game_id", "domain", "started_at",
    "correct", "rt_ms", "difficulty", "hints_used",
)

SUMMARY_COLUMNS = (
    "date", "minutes_trained", "games_played", "adherence", "composite_score",
)

EVENT_COLUMNS = ("id", "ts", "type", "session_id", "game_id")


def _parse_ts(values) -> pd.Series:
    return pd.to_datetime(pd.Series(values, dtype="object"), utc=True, format="ISO8601")


def trials_frame(snapshot: Snapshot, cfg: EngineConfig) -> pd.DataFrame:
    """One row per trial with its domain resolved from the game catalog."""
    if not snapshot.trials:
        return pd.DataFrame(columns=list(TRIAL_COLUMNS))

    game_domain = {g.id: g.domain for g in cfg.games}
    df = pd.DataFrame([
        {
            "id": t.id,
            "session_id": t.session_id,
            "game_id": t.game_id,
            "domain": game_domain.get(t.game_id),
            "started_at": t.started_at,
            "correct": bool(t.correct),
            "rt_ms": float(t.rt_ms),
            "difficulty": int(t.difficulty),
            "hints_used": int(t.hints_used),
        }
        for t in snapshot.trials
    ])

    unknown = df["domain"].isna()
    if unknown.any():
        log.warning(
            "Ignoring %d trials from unknown games: %s",
            int(unknown.sum()), sorted(df.loc[unknown, "game_id"].unique()),
        )

    df["started_at"] = _parse_ts(df["started_at"])
    df.sort_values("started_at", kind="mergesort", inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df


def summaries_frame(snapshot: Snapshot, cfg: EngineConfig) -> pd.DataFrame:
    """
    One row per calendar day, one column per domain score.

    Missing or zero domain scores become NaN so that means skip them. If a
    day appears twice the later record wins.
    """
    columns = list(SUMMARY_COLUMNS) + list(cfg.domain_keys)
    if not snapshot.daily_summaries:
        return pd.DataFrame(columns=columns)

    rows = []
    for d in snapshot.daily_summaries:
        row = {
            "date": d.date,
            "minutes_trained": float(d.minutes_trained),
            "games_played": int(d.games_played),
            "adherence": float(d.adherence),
            "composite_score": float(d.composite_score),
        }
        for key in cfg.domain_keys:
            score = d.domain_scores.get(key)
            row[key] = float(score) if score else float("nan")
        rows.append(row)

    df = pd.DataFrame(rows, columns=columns)
    df["date"] = pd.to_datetime(df["date"], format="ISO8601").dt.normalize()
    df.sort_values("date", kind="mergesort", inplace=True)
    df.drop_duplicates("date", keep="last", inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df


def events_frame(snapshot: Snapshot) -> pd.DataFrame:
    if not snapshot.events:
        return pd.DataFrame(columns=list(EVENT_COLUMNS))

    df = pd.DataFrame([
        {
            "id": e.id,
            "ts": e.ts,
            "type": e.type,
            "session_id": e.session_id,
            "game_id": e.game_id,
        }
        for e in snapshot.events
    ])
    df["ts"] = _parse_ts(df["ts"])
    df.sort_values("ts", kind="mergesort", inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df
