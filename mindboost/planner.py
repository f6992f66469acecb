"""
Training-plan generation: an ordered rule cascade over domain metrics and KPIs.

Slot rules run in order, each seeing the domains already used:

    primary    — weakest domain (lowest z-score), high priority
    secondary  — next-weakest unused domain, medium priority
    third slot — engagement booster when adherence is low, otherwise a
                 variety pick by ascending z-score, low priority

After the slots are filled a global fatigue adjustment lowers every item's
difficulty by one when any domain shows late-session fatigue.
"""

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple

from mindboost.config import EngineConfig
from mindboost.models import DomainMetrics, KPIBundle, TrainingPlanItem
from mindboost.stats import round_half_up

log = logging.getLogger(__name__)

FATIGUE_SUFFIX = " (Difficulty reduced due to detected fatigue.)"


@dataclass(frozen=True)
class PlanContext:
    ranked: Tuple[DomainMetrics, ...]  # ascending z-score, catalog order among ties
    kpis: KPIBundle
    cfg: EngineConfig

    @classmethod
    def build(cls, domains: Sequence[DomainMetrics], kpis: KPIBundle, cfg: EngineConfig):
        return cls(ranked=tuple(sorted(domains, key=lambda d: d.z_score)), kpis=kpis, cfg=cfg)

    def first_unused(self, used: FrozenSet[str]) -> Optional[DomainMetrics]:
        return next((d for d in self.ranked if d.domain not in used), None)


def accuracy_difficulty(metrics: DomainMetrics, cfg: EngineConfig) -> int:
    """round(accuracy × max_difficulty), clamped to the difficulty range."""
    p = cfg.plan
    level = int(round_half_up(metrics.accuracy_rate * p.max_difficulty))
    return max(p.min_difficulty, min(p.max_difficulty, level))


def _item(cfg: EngineConfig, domain: str, minutes: int, reason: str,
          priority: str, difficulty: int) -> TrainingPlanItem:
    game = cfg.game_for_domain(domain)
    return TrainingPlanItem(
        game_id=game.id,
        game_name=game.name,
        domain=domain,
        domain_label=cfg.domain_label(domain),
        duration_minutes=minutes,
        reason=reason,
        priority=priority,
        suggested_difficulty=difficulty,
    )


# ---------------------------------------------------------------------------
# Slot rules (order matters)
# ---------------------------------------------------------------------------

def primary_rule(ctx: PlanContext, used: FrozenSet[str]) -> Optional[TrainingPlanItem]:
    if not ctx.ranked:
        return None
    p = ctx.cfg.plan
    weakest = ctx.ranked[0]
    minutes = (
        p.primary_short_minutes
        if ctx.kpis.adherence_7d < p.short_session_adherence_pct
        else p.primary_minutes
    )
    return _item(
        ctx.cfg, weakest.domain, minutes,
        f"Weakest domain (z={weakest.z_score:.1f}). "
        "Targeted practice yields the highest marginal gain.",
        "high", accuracy_difficulty(weakest, ctx.cfg),
    )


def secondary_rule(ctx: PlanContext, used: FrozenSet[str]) -> Optional[TrainingPlanItem]:
    second = ctx.first_unused(used)
    if second is None:
        return None
    return _item(
        ctx.cfg, second.domain, ctx.cfg.plan.secondary_minutes,
        f"Secondary focus area (z={second.z_score:.1f}). Building balanced cognitive capacity.",
        "medium", accuracy_difficulty(second, ctx.cfg),
    )


def engagement_rule(ctx: PlanContext, used: FrozenSet[str]) -> Optional[TrainingPlanItem]:
    """Quick, rewarding game to rebuild the habit; prefers the configured domain."""
    p = ctx.cfg.plan
    if p.engagement_domain not in used:
        domain = p.engagement_domain
    else:
        domain = next((g.domain for g in ctx.cfg.games if g.domain not in used), None)
    if domain is None:
        return None
    return _item(
        ctx.cfg, domain, p.engagement_minutes,
        "Engagement booster. Quick, rewarding exercises improve session completion rates.",
        "low", p.engagement_difficulty,
    )


def variety_rule(ctx: PlanContext, used: FrozenSet[str]) -> Optional[TrainingPlanItem]:
    variety = ctx.first_unused(used)
    if variety is None:
        return None
    return _item(
        ctx.cfg, variety.domain, ctx.cfg.plan.variety_minutes,
        "Variety pick. Cross-domain training prevents cognitive adaptation plateaus.",
        "low", accuracy_difficulty(variety, ctx.cfg),
    )


def third_slot_rule(ctx: PlanContext, used: FrozenSet[str]) -> Optional[TrainingPlanItem]:
    if ctx.kpis.adherence_7d < ctx.cfg.plan.engagement_adherence_pct:
        return engagement_rule(ctx, used)
    return variety_rule(ctx, used)


PLAN_RULES: Tuple[Callable[[PlanContext, FrozenSet[str]], Optional[TrainingPlanItem]], ...] = (
    primary_rule,
    secondary_rule,
    third_slot_rule,
)


# ---------------------------------------------------------------------------
# Fatigue adjustment
# ---------------------------------------------------------------------------

def fatigued_domain(domains: Sequence[DomainMetrics], cfg: EngineConfig) -> Optional[DomainMetrics]:
    """First domain in catalog order whose fatigue index exceeds the plan threshold."""
    return next((d for d in domains if d.fatigue_index > cfg.plan.fatigue_index), None)


def apply_fatigue_adjustment(plan: List[TrainingPlanItem], cfg: EngineConfig) -> None:
    for item in plan:
        item.suggested_difficulty = max(cfg.plan.min_difficulty, item.suggested_difficulty - 1)
        if item.priority == "high":
            item.reason += FATIGUE_SUFFIX


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate_training_plan(
    domains: Sequence[DomainMetrics],
    kpis: KPIBundle,
    cfg: Optional[EngineConfig] = None,
) -> List[TrainingPlanItem]:
    """Ordered plan items, highest priority first."""
    if cfg is None:
        cfg = EngineConfig()

    ctx = PlanContext.build(domains, kpis, cfg)
    plan: List[TrainingPlanItem] = []
    used: FrozenSet[str] = frozenset()

    for rule in PLAN_RULES:
        item = rule(ctx, used)
        if item is None:
            continue
        plan.append(item)
        used = used | {item.domain}

    if fatigued_domain(domains, cfg) is not None:
        apply_fatigue_adjustment(plan, cfg)

    log.info(
        "Generated plan: %s",
        ", ".join(f"{i.game_id}/{i.priority}/L{i.suggested_difficulty}" for i in plan),
    )
    return plan


def get_personalization_explanation(
    domains: Sequence[DomainMetrics],
    kpis: KPIBundle,
    cfg: Optional[EngineConfig] = None,
) -> str:
    """User-facing account of why today's plan looks the way it does."""
    if cfg is None:
        cfg = EngineConfig()

    ctx = PlanContext.build(domains, kpis, cfg)
    parts = []

    if ctx.ranked:
        weakest = ctx.ranked[0]
        parts.append(
            f"**Today's plan prioritizes {cfg.domain_label(weakest.domain)}** "
            f"(z-score: {weakest.z_score:.1f} vs baseline)."
        )

    if kpis.adherence_7d < cfg.plan.engagement_adherence_pct:
        parts.append(
            f"Your 7-day adherence is {kpis.adherence_7d}%, so we've included a shorter, "
            "more engaging session to build consistency."
        )

    fatigued = fatigued_domain(domains, cfg)
    if fatigued is not None:
        parts.append(
            f"Late-session fatigue detected in {cfg.domain_label(fatigued.domain)}, "
            "so difficulty has been adjusted down."
        )

    parts.append(
        f"The plan ensures no more than {cfg.plan.max_items_per_domain} exercises from the "
        "same domain, promoting balanced neural engagement."
    )
    return " ".join(parts)
