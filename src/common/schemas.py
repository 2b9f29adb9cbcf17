# ABOUTME: Defines canonical data structures shared by every diagnostic stage.
# ABOUTME: Centralizes problem, learner, outcome, metric, cluster, and output schemas.

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class BloomLevel(str, Enum):
    """Ordered cognitive-demand categories."""

    REMEMBER = "Remember"
    UNDERSTAND = "Understand"
    APPLY = "Apply"
    ANALYZE = "Analyze"
    EVALUATE = "Evaluate"
    CREATE = "Create"

    @property
    def difficulty(self) -> float:
        return BLOOM_DIFFICULTY[self]

    @classmethod
    def parse(cls, value: str) -> "BloomLevel":
        """Accept a level by value or name, case-insensitively."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for level in cls:
            if text.lower() in (level.value.lower(), level.name.lower()):
                return level
        raise ValueError(f"Unknown Bloom level '{value}'. Expected one of: {', '.join(l.value for l in cls)}.")


BLOOM_ORDER: Tuple[BloomLevel, ...] = tuple(BloomLevel)

BLOOM_DIFFICULTY: Mapping[BloomLevel, float] = {
    BloomLevel.REMEMBER: 0.10,
    BloomLevel.UNDERSTAND: 0.30,
    BloomLevel.APPLY: 0.50,
    BloomLevel.ANALYZE: 0.70,
    BloomLevel.EVALUATE: 0.85,
    BloomLevel.CREATE: 0.95,
}


class Overlay(str, Enum):
    """Behavioral and accessibility modifiers assigned to synthetic learners."""

    ATTENTION_DEFICIT = "attention_deficit"
    FATIGUE_SENSITIVE = "fatigue_sensitive"
    READING_DIFFICULTY = "reading_difficulty"
    ANXIETY_PRONE = "anxiety_prone"
    GIFTED = "gifted"
    LOW_CONFIDENCE = "low_confidence"
    DISENGAGED = "disengaged"
    PERFECTIONIST = "perfectionist"


class Level(str, Enum):
    """Three-level bucket used for confusion and engagement."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MismatchSeverity(str, Enum):
    NONE = "none"
    MILD = "mild"
    SEVERE = "severe"


class Trend(str, Enum):
    INCREASING = "increasing"
    STABLE = "stable"
    DECLINING = "declining"


class ClusterType(str, Enum):
    """Failure modes the detector can report."""

    CONFUSION = "confusion"
    FATIGUE = "fatigue"
    FAILURE = "failure"
    MISMATCH = "mismatch"
    TIME = "time"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FeedbackCategory(str, Enum):
    CLARITY = "clarity"
    ENGAGEMENT = "engagement"
    ALIGNMENT = "alignment"
    TIME = "time"


@dataclass(frozen=True)
class GenerationContext:
    """Assessment-level context supplied alongside the problem list."""

    subject: str = "general"
    grade_band: str = ""
    time_target_minutes: float = 0.0


@dataclass(frozen=True)
class Problem:
    """Assessment item produced by the upstream classifier; read-only here."""

    problem_id: str
    bloom_level: BloomLevel
    linguistic_complexity: float = 0.0
    estimated_minutes: float = 5.0
    reasoning_steps: int = 1
    complexity_level: int = 1
    section_id: Optional[str] = None

    @property
    def difficulty(self) -> float:
        return self.bloom_level.difficulty

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "Problem":
        return cls(
            problem_id=str(record["problem_id"]),
            bloom_level=BloomLevel.parse(record["bloom_level"]),
            linguistic_complexity=float(record.get("linguistic_complexity", 0.0)),
            estimated_minutes=float(record.get("estimated_minutes", 5.0) or 0.0),
            reasoning_steps=int(record.get("reasoning_steps", 1)),
            complexity_level=int(record.get("complexity_level", 1)),
            section_id=record.get("section_id"),
        )


@dataclass(frozen=True)
class SyntheticLearner:
    """Generated persona with bounded ability traits and overlays."""

    learner_id: str
    display_name: str
    reading_level: float
    reasoning_level: float
    numeric_fluency: float
    attention_span: float
    confidence: float
    overlays: Tuple[Overlay, ...] = ()

    @property
    def ability(self) -> float:
        return (self.reasoning_level + self.confidence) / 2

    @property
    def traits(self) -> Dict[str, float]:
        return {
            "reading_level": self.reading_level,
            "reasoning_level": self.reasoning_level,
            "numeric_fluency": self.numeric_fluency,
            "attention_span": self.attention_span,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class BloomMismatch:
    learner_capability: BloomLevel
    problem_demand: BloomLevel
    severity: MismatchSeverity


@dataclass(frozen=True)
class ProblemOutcome:
    """Simulated result of one learner attempting one problem."""

    learner_id: str
    problem_id: str
    time_seconds: int
    success_pct: int
    confusion_level: Level
    engagement_level: Level
    feedback: str
    bloom_mismatch: Optional[BloomMismatch] = None
    confusion_score: float = 0.0
    engagement_score: float = 0.0
    fatigue: float = 0.0
    suggestions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EngagementTrajectory:
    initial: float
    midpoint: float
    final: float
    trend: Trend


@dataclass(frozen=True)
class FatigueTrajectory:
    initial: float
    peak: float
    final: float


@dataclass(frozen=True)
class LearnerSummary:
    """Per-learner rollup of every simulated outcome."""

    learner_id: str
    display_name: str
    total_time_minutes: int
    estimated_score: int
    grade: str
    outcomes: Tuple[ProblemOutcome, ...]
    engagement: EngagementTrajectory
    fatigue: FatigueTrajectory
    confusion_points: Tuple[str, ...]
    at_risk: bool
    risk_factors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProblemMetrics:
    """Population-level aggregate for one problem."""

    problem_id: str
    success_rate: float
    avg_time: float
    confusion_index: float
    mismatch_rate: float
    fatigue_contribution: float


@dataclass(frozen=True)
class ThresholdDerivation:
    mean: float
    std: float
    elevated: float
    severe: float


@dataclass(frozen=True)
class Cluster:
    """Detected anomaly spanning one or more problems."""

    cluster_type: ClusterType
    problem_ids: Tuple[str, ...]
    start_index: int
    end_index: int
    severity: float
    affected_learners: int
    evidence: str


@dataclass(frozen=True)
class FeedbackItem:
    priority: Priority
    category: FeedbackCategory
    recommendation: str
    affected_problems: Tuple[int, ...]
    evidence: str
    action_items: Tuple[str, ...] = ()
    cluster_type: Optional[ClusterType] = None
    severity: float = 0.0


@dataclass(frozen=True)
class OutputMetadata:
    predicted_total_time: int
    time_target_delta: float
    overall_risk_level: str
    cluster_count: int


@dataclass(frozen=True)
class EngineOutput:
    """Result envelope returned to the calling layer."""

    ranked_feedback: Tuple[FeedbackItem, ...]
    visualizations: Mapping[str, Dict[str, Any]]
    metadata: OutputMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ranked_feedback": [asdict(item) for item in self.ranked_feedback],
            "visualizations": {name: artifact for name, artifact in self.visualizations.items()},
            "metadata": asdict(self.metadata),
        }


@dataclass(frozen=True)
class ClassSummary:
    """Cohort-wide completion summary across all learners."""

    avg_time_minutes: float
    avg_score: float
    completion_rate_pct: float
    at_risk_count: int
    top_confusion_points: Tuple[str, ...] = ()
