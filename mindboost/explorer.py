"""Filtered raw-record listings and reaction-time histograms for a data-explorer view."""

import math
from datetime import date
from typing import Dict, List, Optional

import numpy as np

from mindboost.config import EngineConfig
from mindboost.models import AppEvent, Snapshot, Trial


def _on_or_before(ts: str, day: date) -> bool:
    return ts[:10] <= day.isoformat()


def filter_trials(
    snapshot: Snapshot,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    game_id: Optional[str] = None,
    difficulty: Optional[int] = None,
    correct_only: bool = False,
) -> List[Trial]:
    """Trials matching every given filter, newest first. ``date_to`` is inclusive."""
    out = []
    for t in snapshot.trials:
        if date_from is not None and t.started_at[:10] < date_from.isoformat():
            continue
        if date_to is not None and not _on_or_before(t.started_at, date_to):
            continue
        if game_id is not None and t.game_id != game_id:
            continue
        if difficulty is not None and t.difficulty != difficulty:
            continue
        if correct_only and not t.correct:
            continue
        out.append(t)
    out.sort(key=lambda t: t.started_at, reverse=True)
    return out


def filter_events(
    snapshot: Snapshot,
    event_type: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 500,
) -> List[AppEvent]:
    """Events matching the filters, newest first, capped at ``limit``."""
    out = []
    for e in snapshot.events:
        if event_type is not None and e.type != event_type:
            continue
        if date_from is not None and e.ts[:10] < date_from.isoformat():
            continue
        if date_to is not None and not _on_or_before(e.ts, date_to):
            continue
        out.append(e)
    out.sort(key=lambda e: e.ts, reverse=True)
    return out[:limit]


def rt_distribution(
    snapshot: Snapshot,
    domain: str,
    bucket_ms: int = 50,
    cfg: Optional[EngineConfig] = None,
) -> List[Dict[str, object]]:
    """
    Histogram of reaction times for one domain.

    Buckets are ``bucket_ms`` wide, aligned to multiples of ``bucket_ms`` and
    cover every observed value, each bucket half-open [start, end). No trials → empty list.
    """
    if cfg is None:
        cfg = EngineConfig()
    if domain not in cfg.domain_keys:
        raise ValueError(f"Unknown domain: {domain!r}")

    game_ids = {g.id for g in cfg.games if g.domain == domain}
    rts = np.asarray([t.rt_ms for t in snapshot.trials if t.game_id in game_ids], dtype=np.float64)
    if len(rts) == 0:
        return []

    lo = int(math.floor(rts.min() / bucket_ms)) * bucket_ms
    hi = int(math.floor(rts.max() / bucket_ms)) * bucket_ms + bucket_ms

    edges = np.arange(lo, hi + bucket_ms, bucket_ms, dtype=np.float64)
    counts, _ = np.histogram(rts, bins=edges)

    return [
        {
            "range": f"{int(edges[i])}-{int(edges[i + 1])}",
            "center": float(edges[i] + bucket_ms / 2),
            "count": int(counts[i]),
        }
        for i in range(len(counts))
    ]
