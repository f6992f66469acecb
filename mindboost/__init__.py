"""
MINDBOOST — Cognitive Analytics & Personalization Engine

Deterministic, rule-based analytics over a user's training event log:
per-domain metrics, overview KPIs, narrative insights, and an explainable
daily training plan. Metrics are never stored; every call recomputes from
the raw trials and daily summaries.

Architecture:
    config     — All thresholds, windows, and the domain/game catalog
    models     — Raw event-log records and derived result records
    store      — Event Store interface (in-memory and JSON-file backends)
    stats      — Median, std, IQR, OLS slope (total functions)
    frames     — Snapshot → chronologically sorted DataFrames
    metrics    — Per-domain metrics and learning curves
    kpis       — Overview KPIs, weekly / daily trends
    insights   — Narrative insight rule cascade
    planner    — Training-plan rule cascade and explanation
    recorder   — Game-session write path and daily rollup
    explorer   — Filtered listings and RT histograms
    pipeline   — Orchestration: snapshot → metrics → KPIs → insights → plan → report
    synthetic  — Seeded demo history (fixtures only)
"""

from mindboost.config import EngineConfig
from mindboost.pipeline import CognitiveEngine, analyze_snapshot, generate_report
from mindboost.recorder import GameSessionRecorder, TrialRecord
from mindboost.store import EventStoreError, InMemoryEventStore, JsonFileEventStore

__version__ = "1.0.0"

__all__ = [
    "CognitiveEngine",
    "EngineConfig",
    "EventStoreError",
    "GameSessionRecorder",
    "InMemoryEventStore",
    "JsonFileEventStore",
    "TrialRecord",
    "analyze_snapshot",
    "generate_report",
]
