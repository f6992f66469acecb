"""
Centralized configuration for all thresholds, windows, and the game catalog.

Every tunable constant lives here. Analytics functions take an EngineConfig
and never hard-code a threshold of their own.
"""

from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# Domain / game catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainDef:
    """One cognitive domain: machine key plus display label."""

    key: str
    label: str


@dataclass(frozen=True)
class GameDef:
    """A mini-game bound to exactly one domain."""

    id: str
    name: str
    domain: str
    description: str = ""
    version: str = "1.0"


DEFAULT_DOMAINS: tuple = (
    DomainDef("working_memory", "Working Memory"),
    DomainDef("inhibitory_control", "Inhibitory Control"),
    DomainDef("cognitive_flexibility", "Cognitive Flexibility"),
    DomainDef("attention", "Attention"),
    DomainDef("processing_speed", "Processing Speed"),
)

DEFAULT_GAMES: tuple = (
    GameDef("n-back", "N-Back", "working_memory",
            "Adaptive working memory task. Match current stimulus to n steps back."),
    GameDef("stroop", "Stroop Test", "inhibitory_control",
            "Name the ink color, not the word. Measures interference control."),
    GameDef("task-switch", "Task Switch", "cognitive_flexibility",
            "Alternate between rules. Measures cognitive switching cost."),
    GameDef("visual-search", "Visual Search", "attention",
            "Find the target among distractors. Measures attentional efficiency."),
    GameDef("symbol-digit", "Symbol Digit", "processing_speed",
            "Match symbols to digits as fast as possible."),
)


# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MetricsParams:
    """Parameters for per-domain trial and daily-score statistics."""

    # Trials slower than this count as omissions; also the speed scale
    rt_timeout_ms: float = 1500.0

    # Consistency = 1 - min(1, std(last N daily scores) / scale)
    consistency_window: int = 10
    consistency_scale: float = 20.0
    consistency_min_points: int = 3
    consistency_default: float = 0.5

    # Z-score: mean of last N daily scores vs mean of first N
    zscore_window: int = 5
    baseline_std_default: float = 10.0
    baseline_mean_default: float = 50.0

    # 95% normal-approximation multiplier for the z-score interval
    ci_multiplier: float = 1.96

    decimals: int = 2

    def __post_init__(self):
        if self.baseline_std_default <= 0:
            raise ValueError(f"baseline_std_default must be positive, got {self.baseline_std_default}")
        if self.consistency_scale <= 0:
            raise ValueError(f"consistency_scale must be positive, got {self.consistency_scale}")


# ---------------------------------------------------------------------------
# Overview KPIs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KPIParams:
    """Windows and gates for the overview rollup."""

    recent_days: int = 7
    baseline_days: int = 7
    session_length_days: int = 30
    default_domain_score: float = 50.0

    # |delta| must exceed this multiple of the baseline std to be "meaningful"
    meaningful_change_multiplier: float = 1.5


# ---------------------------------------------------------------------------
# Narrative insights
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InsightThresholds:
    """Thresholds for the narrative insight cascade."""

    strong_zscore: float = 0.5
    fatigue_index: float = 0.10
    streak_milestone: int = 7
    low_adherence_pct: float = 60.0
    max_insights: int = 5


# ---------------------------------------------------------------------------
# Training plan
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlanParams:
    """Durations, difficulty bounds and gates for plan generation."""

    short_session_adherence_pct: float = 50.0
    engagement_adherence_pct: float = 60.0
    fatigue_index: float = 0.15

    primary_minutes: int = 5
    primary_short_minutes: int = 3
    secondary_minutes: int = 4
    engagement_minutes: int = 3
    variety_minutes: int = 4

    min_difficulty: int = 1
    max_difficulty: int = 8
    engagement_difficulty: int = 3
    engagement_domain: str = "processing_speed"

    max_items_per_domain: int = 2


# ---------------------------------------------------------------------------
# Session recording / daily rollup
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RecorderParams:
    """How a finished game is folded into the day's summary."""

    accuracy_weight: float = 60.0
    speed_weight: float = 40.0
    rt_ceiling_ms: float = 1200.0
    seconds_per_trial: float = 2.5
    target_games_per_day: int = 3
    default_domain_score: float = 50.0

    def __post_init__(self):
        total = self.accuracy_weight + self.speed_weight
        if abs(total - 100.0) > 1e-9:
            raise ValueError(f"Score weights must sum to 100, got {total}")


# ---------------------------------------------------------------------------
# Top-level config aggregate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration. Pass to any entry point to override defaults."""

    metrics: MetricsParams = field(default_factory=MetricsParams)
    kpis: KPIParams = field(default_factory=KPIParams)
    insights: InsightThresholds = field(default_factory=InsightThresholds)
    plan: PlanParams = field(default_factory=PlanParams)
    recorder: RecorderParams = field(default_factory=RecorderParams)
    domains: tuple = DEFAULT_DOMAINS
    games: tuple = DEFAULT_GAMES

    def __post_init__(self):
        keys = {d.key for d in self.domains}
        for game in self.games:
            if game.domain not in keys:
                raise ValueError(f"Game {game.id!r} bound to unknown domain {game.domain!r}")

    @property
    def domain_keys(self) -> tuple:
        return tuple(d.key for d in self.domains)

    def domain_label(self, key: str) -> str:
        for d in self.domains:
            if d.key == key:
                return d.label
        return key.replace("_", " ").title()

    def game_for_domain(self, key: str) -> GameDef:
        for game in self.games:
            if game.domain == key:
                return game
        raise ValueError(f"No game bound to domain {key!r}")

    def game(self, game_id: str) -> GameDef:
        for game in self.games:
            if game.id == game_id:
                return game
        raise ValueError(f"Unknown game id: {game_id!r}")
