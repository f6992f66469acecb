"""
Pipeline orchestration: snapshot → metrics → KPIs → insights → plan → report.

This is the only analytics module that reads the Event Store. All analytical
logic is delegated to metrics, kpis, insights, planner and explorer, which
operate on a frozen Snapshot; writes go through the recorder.

    CognitiveEngine     — store-backed facade; every call takes a fresh snapshot
    analyze_snapshot()  — pure, one pass over a snapshot
    generate_report()   — plain-text rendering of analyze_snapshot() output
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from mindboost.config import EngineConfig
from mindboost.explorer import filter_events, filter_trials, rt_distribution
from mindboost.insights import generate_narrative_insights
from mindboost.kpis import get_overview_kpis, get_weekly_trends
from mindboost.metrics import compute_domain_metrics, get_learning_curves
from mindboost.models import (
    AppEvent,
    DomainMetrics,
    Insight,
    KPIBundle,
    LearningCurve,
    Snapshot,
    TrainingPlanItem,
    Trial,
)
from mindboost.planner import generate_training_plan, get_personalization_explanation
from mindboost.recorder import GameSessionRecorder
from mindboost.store import EventStore

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Core analysis (PURE FUNCTION — NO STORE I/O)
# ---------------------------------------------------------------------------

def analyze_snapshot(
    snapshot: Snapshot,
    cfg: Optional[EngineConfig] = None,
    today: Optional[date] = None,
) -> Dict:
    """
    Full analysis of one snapshot.

    Stateless. Metrics and KPIs are computed once and shared by the insight
    and plan stages.
    """
    if cfg is None:
        cfg = EngineConfig()

    # Stage 1: Per-domain metrics
    domains = compute_domain_metrics(snapshot, cfg=cfg)

    # Stage 2: Overview rollup
    kpis = get_overview_kpis(snapshot, today=today, cfg=cfg)

    # Stage 3: Narrative + plan
    insights = generate_narrative_insights(kpis, domains, cfg)
    plan = generate_training_plan(domains, kpis, cfg)
    explanation = get_personalization_explanation(domains, kpis, cfg)

    return {
        "kpis": kpis,
        "domains": domains,
        "insights": insights,
        "plan": plan,
        "explanation": explanation,
        "weekly_trends": get_weekly_trends(snapshot, today=today, cfg=cfg),
    }


# ---------------------------------------------------------------------------
# Store-backed facade
# ---------------------------------------------------------------------------

class CognitiveEngine:
    """
    Analytics for one user over an EventStore.

    Each public method reads one snapshot; store failures propagate as
    ``EventStoreError`` rather than turning into empty results.
    """

    def __init__(
        self,
        store: EventStore,
        user_id: str,
        cfg: Optional[EngineConfig] = None,
        today: Optional[date] = None,
    ):
        self.store = store
        self.user_id = user_id
        self.cfg = cfg or EngineConfig()
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    def snapshot(self) -> Snapshot:
        return self.store.get_snapshot(self.user_id)

    def recorder(self) -> GameSessionRecorder:
        """Write path for this user's games, sharing the engine's store and config."""
        return GameSessionRecorder(self.store, self.user_id, cfg=self.cfg)

    def compute_domain_metrics(self, domain: Optional[str] = None) -> List[DomainMetrics]:
        return compute_domain_metrics(self.snapshot(), domain=domain, cfg=self.cfg)

    def get_overview_kpis(self) -> KPIBundle:
        return get_overview_kpis(self.snapshot(), today=self.today, cfg=self.cfg)

    def generate_narrative_insights(self) -> List[Insight]:
        snap = self.snapshot()
        return generate_narrative_insights(
            get_overview_kpis(snap, today=self.today, cfg=self.cfg),
            compute_domain_metrics(snap, cfg=self.cfg),
            self.cfg,
        )

    def generate_training_plan(self) -> List[TrainingPlanItem]:
        snap = self.snapshot()
        return generate_training_plan(
            compute_domain_metrics(snap, cfg=self.cfg),
            get_overview_kpis(snap, today=self.today, cfg=self.cfg),
            self.cfg,
        )

    def get_personalization_explanation(self) -> str:
        snap = self.snapshot()
        return get_personalization_explanation(
            compute_domain_metrics(snap, cfg=self.cfg),
            get_overview_kpis(snap, today=self.today, cfg=self.cfg),
            self.cfg,
        )

    def get_learning_curves(self, game_id: Optional[str] = None) -> List[LearningCurve]:
        return get_learning_curves(self.snapshot(), game_id=game_id, cfg=self.cfg)

    # -- data explorer ------------------------------------------------------

    def filter_trials(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        game_id: Optional[str] = None,
        difficulty: Optional[int] = None,
        correct_only: bool = False,
    ) -> List[Trial]:
        return filter_trials(
            self.snapshot(), date_from=date_from, date_to=date_to, game_id=game_id,
            difficulty=difficulty, correct_only=correct_only,
        )

    def filter_events(
        self,
        event_type: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 500,
    ) -> List[AppEvent]:
        return filter_events(
            self.snapshot(), event_type=event_type, date_from=date_from, date_to=date_to, limit=limit,
        )

    def rt_distribution(self, domain: str, bucket_ms: int = 50) -> List[Dict[str, object]]:
        return rt_distribution(self.snapshot(), domain, bucket_ms=bucket_ms, cfg=self.cfg)

    def analyze(self) -> Dict:
        log.info("Analyzing user %s", self.user_id)
        return analyze_snapshot(self.snapshot(), cfg=self.cfg, today=self.today)


# ---------------------------------------------------------------------------
# Report generation
# ---------------------------------------------------------------------------

def generate_report(result: Dict, cfg: Optional[EngineConfig] = None) -> str:
    """Format the analysis result as a human-readable text report."""
    if cfg is None:
        cfg = EngineConfig()
    k: KPIBundle = result["kpis"]

    lines = [
        "MINDBOOST TRAINING REPORT",
        "=" * 58,
        "",
        f"  Composite Score     : {k.composite_score}",
        f"  7-Day Adherence     : {k.adherence_7d}%",
        f"  Streak              : {k.streak} days",
        f"  Strongest Domain    : {cfg.domain_label(k.strongest.domain)} ({k.strongest.score})",
        f"  Weakest Domain      : {cfg.domain_label(k.weakest.domain)} ({k.weakest.score})",
        f"  Change vs Baseline  : {k.delta:+d} ({'meaningful' if k.meaningful_change else 'within noise'})",
        f"  Rage-Quit Rate      : {k.rage_quit_rate:.0%}",
        f"  Avg Session Length  : {k.avg_session_length} min",
        "",
        "  Domain Metrics (z-score, 95% CI, interpret with caution):",
    ]

    for m in result["domains"]:
        label = cfg.domain_label(m.domain)
        if not m.has_data:
            lines.append(f"    {label:22s} : insufficient data")
            continue
        lines.append(
            f"    {label:22s} : acc {m.accuracy_rate:.2f}  rt {m.median_rt:7.1f}ms  "
            f"z {m.z_score:+.2f} [{m.confidence_lower:+.2f}, {m.confidence_upper:+.2f}]  "
            f"fatigue {m.fatigue_index:+.2f}"
        )

    if result["insights"]:
        lines.append("")
        lines.append("  Insights:")
        for insight in result["insights"]:
            lines.append(f"    {insight.icon} {insight.title}")

    lines.append("")
    lines.append("  Today's Plan:")
    for item in result["plan"]:
        lines.append(
            f"    [{item.priority:6s}] {item.game_name:14s} {item.duration_minutes} min  "
            f"level {item.suggested_difficulty}"
        )
    lines.append("")
    lines.append(f"  {result['explanation']}")

    lines.append("")
    lines.append("=" * 58)
    return "\n".join(lines)
