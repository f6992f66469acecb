"""
Record types: raw event-log records and the derived analytics outputs.

Raw records mirror the camelCase JSON rows of the key-value event log;
``from_dict`` / ``to_dict`` translate between the two. Derived records are
never persisted.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple


EVENT_TYPES = frozenset({
    "app_open", "session_start", "session_end",
    "game_start", "game_end", "trial_start", "trial_end",
    "hint_used", "difficulty_changed", "rage_quit",
    "notification_open", "share_click", "settings_change",
})

DEVICE_TYPES = frozenset({"mobile", "desktop", "tablet"})

PRIORITIES = ("high", "medium", "low")


def _require(row: Dict[str, Any], *keys: str) -> None:
    missing = [k for k in keys if k not in row]
    if missing:
        raise ValueError(f"Missing required fields: {missing}")


def _check_timestamp(owner: str, name: str, value: Any) -> None:
    """ISO-8601 timestamp check; a trailing Z is accepted as UTC."""
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError) as e:
        raise ValueError(f"{owner}: {name} is not an ISO-8601 timestamp: {value!r}") from e


def _check_day(owner: str, value: Any) -> None:
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{owner}: date is not YYYY-MM-DD: {value!r}") from e


# ---------------------------------------------------------------------------
# Raw records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Trial:
    """One stimulus-response measurement inside a game session."""

    id: str
    session_id: str
    game_id: str
    started_at: str
    ended_at: str
    stimulus: str
    response: str
    correct: bool
    rt_ms: float
    difficulty: int = 1
    hints_used: int = 0

    def __post_init__(self):
        if self.rt_ms < 0:
            raise ValueError(f"Trial {self.id}: rt_ms must be >= 0, got {self.rt_ms}")
        if self.difficulty < 1:
            raise ValueError(f"Trial {self.id}: difficulty must be positive, got {self.difficulty}")
        if self.hints_used < 0:
            raise ValueError(f"Trial {self.id}: hints_used must be >= 0, got {self.hints_used}")
        _check_timestamp(f"Trial {self.id}", "started_at", self.started_at)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "Trial":
        _require(row, "id", "sessionId", "gameId", "startedAt", "correct", "rtMs")
        return cls(
            id=row["id"],
            session_id=row["sessionId"],
            game_id=row["gameId"],
            started_at=row["startedAt"],
            ended_at=row.get("endedAt", row["startedAt"]),
            stimulus=row.get("stimulus", ""),
            response=row.get("response", ""),
            correct=bool(row["correct"]),
            rt_ms=float(row["rtMs"]),
            difficulty=int(row.get("difficulty", 1)),
            hints_used=int(row.get("hintsUsed", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "gameId": self.game_id,
            "startedAt": self.started_at,
            "endedAt": self.ended_at,
            "stimulus": self.stimulus,
            "response": self.response,
            "correct": self.correct,
            "rtMs": self.rt_ms,
            "difficulty": self.difficulty,
            "hintsUsed": self.hints_used,
        }


@dataclass(frozen=True)
class Session:
    """One continuous play period. ``ended_at`` is None while in progress."""

    id: str
    user_id: str
    started_at: str
    ended_at: Optional[str] = None
    device_type: str = "desktop"
    mood_pre: Optional[int] = None
    sleep: Optional[float] = None
    stress: Optional[int] = None

    def __post_init__(self):
        if self.device_type not in DEVICE_TYPES:
            raise ValueError(f"Session {self.id}: unknown device type {self.device_type!r}")
        _check_timestamp(f"Session {self.id}", "started_at", self.started_at)
        if self.ended_at is not None:
            _check_timestamp(f"Session {self.id}", "ended_at", self.ended_at)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "Session":
        _require(row, "id", "userId", "startedAt")
        return cls(
            id=row["id"],
            user_id=row["userId"],
            started_at=row["startedAt"],
            ended_at=row.get("endedAt"),
            device_type=row.get("deviceType", "desktop"),
            mood_pre=row.get("moodPre"),
            sleep=row.get("sleep"),
            stress=row.get("stress"),
        )

    def to_dict(self) -> Dict[str, Any]:
        row = {
            "id": self.id,
            "userId": self.user_id,
            "startedAt": self.started_at,
            "endedAt": self.ended_at,
            "deviceType": self.device_type,
        }
        for key, value in (("moodPre", self.mood_pre), ("sleep", self.sleep), ("stress", self.stress)):
            if value is not None:
                row[key] = value
        return row


@dataclass(frozen=True)
class AppEvent:
    """Lifecycle / telemetry marker with a free-form payload."""

    id: str
    user_id: str
    ts: str
    type: str
    session_id: Optional[str] = None
    game_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.type not in EVENT_TYPES:
            raise ValueError(f"Event {self.id}: unknown event type {self.type!r}")
        _check_timestamp(f"Event {self.id}", "ts", self.ts)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "AppEvent":
        _require(row, "id", "userId", "ts", "type")
        return cls(
            id=row["id"],
            user_id=row["userId"],
            ts=row["ts"],
            type=row["type"],
            session_id=row.get("sessionId"),
            game_id=row.get("gameId"),
            payload=dict(row.get("payload") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        row = {"id": self.id, "userId": self.user_id, "ts": self.ts, "type": self.type}
        if self.session_id is not None:
            row["sessionId"] = self.session_id
        if self.game_id is not None:
            row["gameId"] = self.game_id
        row["payload"] = dict(self.payload)
        return row


@dataclass(frozen=True)
class DailySummary:
    """Durable per-(user, day) rollup, updated as games complete."""

    user_id: str
    date: str
    minutes_trained: float
    games_played: int
    adherence: float
    composite_score: float
    domain_scores: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        _check_day(f"Summary {self.user_id}", self.date)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "DailySummary":
        _require(row, "userId", "date")
        return cls(
            user_id=row["userId"],
            date=row["date"],
            minutes_trained=row.get("minutesTrained", 0),
            games_played=int(row.get("gamesPlayed", 0)),
            adherence=float(row.get("adherence", 0.0)),
            composite_score=row.get("compositeScore", 0),
            domain_scores=dict(row.get("domainScores") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "date": self.date,
            "minutesTrained": self.minutes_trained,
            "gamesPlayed": self.games_played,
            "adherence": self.adherence,
            "compositeScore": self.composite_score,
            "domainScores": dict(self.domain_scores),
        }


@dataclass(frozen=True)
class Snapshot:
    """A consistent, read-only view of one user's event log."""

    trials: Tuple[Trial, ...] = ()
    events: Tuple[AppEvent, ...] = ()
    sessions: Tuple[Session, ...] = ()
    daily_summaries: Tuple[DailySummary, ...] = ()


# ---------------------------------------------------------------------------
# Derived records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainMetrics:
    domain: str
    accuracy_rate: float
    median_rt: float
    rt_variability: float
    omission_rate: float
    speed_accuracy_tradeoff: float
    learning_rate: float
    fatigue_index: float
    consistency: float
    z_score: float
    confidence_lower: float
    confidence_upper: float
    trial_count: int

    @property
    def has_data(self) -> bool:
        """False for the neutral zero-trial record, so callers can show "no data"."""
        return self.trial_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DomainScore:
    domain: str
    score: int


@dataclass(frozen=True)
class KPIBundle:
    composite_score: int
    adherence_7d: int
    streak: int
    strongest: DomainScore
    weakest: DomainScore
    meaningful_change: bool
    delta: int
    total_minutes: float
    total_games: int
    total_trials: int
    rage_quit_rate: float
    avg_session_length: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Insight:
    type: str
    icon: str
    title: str
    description: str
    metric: Optional[str] = None
    delta: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TrainingPlanItem:
    game_id: str
    game_name: str
    domain: str
    domain_label: str
    duration_minutes: int
    reason: str
    priority: str
    suggested_difficulty: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SessionPoint:
    """One point on a learning curve: a single session of a single game."""

    session_id: str
    date: str
    accuracy: float
    median_rt: float
    trial_count: int


@dataclass(frozen=True)
class LearningCurve:
    game_id: str
    game_name: str
    domain: str
    sessions: Tuple[SessionPoint, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WeeklyTrend:
    week_start: str
    composite_score: int
    adherence: int
    minutes_trained: float
    games_played: int
    domain_scores: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
