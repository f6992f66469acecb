"""
Narrative insights: a fixed, ordered cascade of rules over KPIs and domain metrics.

Each rule is a pure function ``(InsightContext) -> Insight | None``. Rules are
evaluated in declaration order and the output keeps that order; it is then
truncated to ``max_insights``. Callers must not re-sort.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from mindboost.config import EngineConfig
from mindboost.models import DomainMetrics, Insight, KPIBundle


@dataclass(frozen=True)
class InsightContext:
    kpis: KPIBundle
    domains: Sequence[DomainMetrics]
    cfg: EngineConfig

    @property
    def strongest(self) -> DomainMetrics:
        # max() keeps the first of equal z-scores, i.e. catalog order
        return max(self.domains, key=lambda d: d.z_score)

    @property
    def weakest(self) -> DomainMetrics:
        return min(self.domains, key=lambda d: d.z_score)


# ---------------------------------------------------------------------------
# Rules (order matters)
# ---------------------------------------------------------------------------

def meaningful_change_rule(ctx: InsightContext) -> Optional[Insight]:
    k = ctx.kpis
    if not k.meaningful_change:
        return None
    up = k.delta > 0
    return Insight(
        type="improvement" if up else "decline",
        icon="📈" if up else "📉",
        title="Significant Improvement Detected" if up else "Performance Dip Noted",
        description=(
            f"Your composite score has {'increased' if up else 'decreased'} by "
            f"{abs(k.delta)} points beyond baseline variability. "
            "This change exceeds noise thresholds."
        ),
        metric="composite_score",
        delta=k.delta,
    )


def strongest_domain_rule(ctx: InsightContext) -> Optional[Insight]:
    if not ctx.domains:
        return None
    strong = ctx.strongest
    if strong.z_score <= ctx.cfg.insights.strong_zscore:
        return None
    label = ctx.cfg.domain_label(strong.domain)
    return Insight(
        type="improvement",
        icon="💪",
        title=f"{label} Is Your Strongest Area",
        description=(
            f"Z-score of {strong.z_score:.1f} vs baseline "
            f"({strong.confidence_lower:.1f} to {strong.confidence_upper:.1f} CI, "
            f"interpret with caution). Your consistency in this domain is "
            f"{round(strong.consistency * 100)}%."
        ),
        metric="z_score",
        delta=strong.z_score,
    )


def weakest_domain_rule(ctx: InsightContext) -> Optional[Insight]:
    if not ctx.domains:
        return None
    weak = ctx.weakest
    if not weak.z_score < ctx.strongest.z_score:
        return None
    label = ctx.cfg.domain_label(weak.domain)
    return Insight(
        type="recommendation",
        icon="🎯",
        title=f"Focus Area: {label}",
        description=(
            f"This domain shows the most room for growth (z={weak.z_score:.1f}). "
            f"Tomorrow's plan will prioritize exercises targeting {label.lower()}."
        ),
    )


def fatigue_rule(ctx: InsightContext) -> Optional[Insight]:
    threshold = ctx.cfg.insights.fatigue_index
    fatigued = next((d for d in ctx.domains if d.fatigue_index > threshold), None)
    if fatigued is None:
        return None
    return Insight(
        type="pattern",
        icon="😴",
        title="Late-Session Fatigue Detected",
        description=(
            f"Performance drops {round(fatigued.fatigue_index * 100)}% in later trials for "
            f"{ctx.cfg.domain_label(fatigued.domain)}. Consider shorter sessions or breaks."
        ),
        metric="fatigue_index",
        delta=fatigued.fatigue_index,
    )


def streak_rule(ctx: InsightContext) -> Optional[Insight]:
    streak = ctx.kpis.streak
    if streak < ctx.cfg.insights.streak_milestone:
        return None
    return Insight(
        type="milestone",
        icon="🔥",
        title=f"{streak}-Day Streak!",
        description=(
            f"You've trained consistently for {streak} days. "
            "Consistent practice is the strongest predictor of cognitive gains."
        ),
    )


def low_adherence_rule(ctx: InsightContext) -> Optional[Insight]:
    adherence = ctx.kpis.adherence_7d
    if adherence >= ctx.cfg.insights.low_adherence_pct:
        return None
    return Insight(
        type="recommendation",
        icon="📅",
        title="Adherence Below Target",
        description=(
            f"7-day adherence at {adherence}%. Even 5 minutes of daily training "
            "maintains neural adaptation benefits."
        ),
        metric="adherence_7d",
        delta=adherence,
    )


INSIGHT_RULES = (
    meaningful_change_rule,
    strongest_domain_rule,
    weakest_domain_rule,
    fatigue_rule,
    streak_rule,
    low_adherence_rule,
)


def generate_narrative_insights(
    kpis: KPIBundle,
    domains: Sequence[DomainMetrics],
    cfg: Optional[EngineConfig] = None,
) -> List[Insight]:
    """Run the rule cascade and keep at most ``max_insights`` results in rule order."""
    if cfg is None:
        cfg = EngineConfig()
    ctx = InsightContext(kpis=kpis, domains=tuple(domains), cfg=cfg)
    insights: List[Insight] = []
    for rule in INSIGHT_RULES:
        insight = rule(ctx)
        if insight is not None:
            insights.append(insight)
    return insights[:cfg.insights.max_insights]
