# ABOUTME: Simulates each synthetic learner working through the problem sequence.
# ABOUTME: Models success, time, confusion, engagement, and Bloom mismatch under fatigue.

from __future__ import annotations

from collections import Counter
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from src.common.schemas import (
    BLOOM_ORDER,
    BloomLevel,
    BloomMismatch,
    ClassSummary,
    EngagementTrajectory,
    FatigueTrajectory,
    LearnerSummary,
    Level,
    MismatchSeverity,
    Overlay,
    Problem,
    ProblemOutcome,
    SyntheticLearner,
    Trend,
)
from src.common.stats import clamp, mean

from .config import SimulationConfig

OVERLAY_MODIFIERS: Dict[Overlay, Callable[[float], float]] = {
    Overlay.ATTENTION_DEFICIT: lambda d: 0.9 + d * 0.1,
    Overlay.FATIGUE_SENSITIVE: lambda d: 0.95,
    Overlay.READING_DIFFICULTY: lambda d: 0.85,
    Overlay.ANXIETY_PRONE: lambda d: 0.9 - d * 0.1,
    Overlay.GIFTED: lambda d: 1.1,
    Overlay.LOW_CONFIDENCE: lambda d: 0.85,
    Overlay.DISENGAGED: lambda d: 0.8,
    Overlay.PERFECTIONIST: lambda d: 1.05 - d * 0.05,
}

GRADE_CUTOFFS: Tuple[Tuple[int, str], ...] = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))
AT_RISK_SCORE = 60
DEFAULT_MINUTES = 5.0
TREND_TOLERANCE = 0.05


def score_to_grade(score: float) -> str:
    for cutoff, grade in GRADE_CUTOFFS:
        if score >= cutoff:
            return grade
    return "F"


def bucket_level(value: float) -> Level:
    if value > 0.66:
        return Level.HIGH
    if value > 0.33:
        return Level.MEDIUM
    return Level.LOW


def mismatch_severity(ability: float, difficulty: float) -> MismatchSeverity:
    gap = abs(ability - difficulty)
    if gap > 0.3:
        return MismatchSeverity.SEVERE
    if gap > 0.15:
        return MismatchSeverity.MILD
    return MismatchSeverity.NONE


def capability_level(ability: float) -> BloomLevel:
    """Bloom level whose difficulty sits closest to the learner's ability."""
    return min(BLOOM_ORDER, key=lambda level: abs(level.difficulty - ability))


def overlay_modifier(overlay: Overlay, difficulty: float) -> float:
    return OVERLAY_MODIFIERS[overlay](difficulty)


def estimate_base_seconds(problem: Problem) -> float:
    minutes = problem.estimated_minutes or DEFAULT_MINUTES
    return (
        minutes * 60
        + problem.complexity_level * 30
        + problem.linguistic_complexity * 60
        + problem.reasoning_steps * 15
    )


def suggest_revisions(confusion: float, fatigue: float, level: BloomLevel) -> Tuple[str, ...]:
    suggestions: List[str] = []
    if confusion > 0.7:
        suggestions.append("Provide additional examples or step-by-step guidance")
    if fatigue > 0.6:
        suggestions.append("Add a checkpoint or break before this section")
    if level in (BloomLevel.EVALUATE, BloomLevel.CREATE):
        suggestions.append("Scaffold with intermediate steps")
    return tuple(suggestions)


def simulate_outcome(
    learner: SyntheticLearner,
    problem: Problem,
    fatigue: float,
    config: Optional[SimulationConfig] = None,
) -> ProblemOutcome:
    """Simulate one learner attempting one problem at the given fatigue level."""

    config = config or SimulationConfig()
    difficulty = problem.difficulty
    ability = learner.ability
    gap = abs(ability - difficulty)

    success = 1 - gap
    for overlay in learner.overlays:
        success *= overlay_modifier(overlay, difficulty)
    success *= 1 - fatigue * config.fatigue_penalty
    success_pct = clamp(success * 100, 0.0, 100.0)

    seconds = estimate_base_seconds(problem) * (1 + fatigue * 0.2) / (ability or 0.5)

    confusion = min(1.0, (gap + problem.linguistic_complexity * 0.3) * (1 + fatigue * 0.5))
    engagement = clamp(1 - confusion - fatigue)

    verb = "successfully completed" if success_pct > 70 else "struggled with"
    return ProblemOutcome(
        learner_id=learner.learner_id,
        problem_id=problem.problem_id,
        time_seconds=int(round(seconds)),
        success_pct=int(round(success_pct)),
        confusion_level=bucket_level(confusion),
        engagement_level=bucket_level(engagement),
        feedback=f"{learner.display_name} {verb} this {problem.bloom_level.value} level problem.",
        bloom_mismatch=BloomMismatch(
            learner_capability=capability_level(ability),
            problem_demand=problem.bloom_level,
            severity=mismatch_severity(ability, difficulty),
        ),
        confusion_score=round(confusion, 4),
        engagement_score=round(engagement, 4),
        fatigue=round(fatigue, 4),
        suggestions=suggest_revisions(confusion, fatigue, problem.bloom_level),
    )


def simulate_learner(
    learner: SyntheticLearner,
    problems: Sequence[Problem],
    config: Optional[SimulationConfig] = None,
) -> LearnerSummary:
    """Walk the problems in order, accumulating fatigue for this learner only."""

    config = config or SimulationConfig()
    fatigue = 0.0
    outcomes: List[ProblemOutcome] = []
    for problem in problems:
        fatigue = min(1.0, fatigue + config.fatigue_step)
        outcomes.append(simulate_outcome(learner, problem, fatigue, config))

    score = int(round(mean([o.success_pct for o in outcomes]))) if outcomes else 0
    fatigue_path = _fatigue_trajectory(outcomes)
    confusion_points = tuple(o.problem_id for o in outcomes if o.confusion_level == Level.HIGH)

    return LearnerSummary(
        learner_id=learner.learner_id,
        display_name=learner.display_name,
        total_time_minutes=int(round(sum(o.time_seconds for o in outcomes) / 60)),
        estimated_score=score,
        grade=score_to_grade(score),
        outcomes=tuple(outcomes),
        engagement=_engagement_trajectory(outcomes),
        fatigue=fatigue_path,
        confusion_points=confusion_points,
        at_risk=score < AT_RISK_SCORE,
        risk_factors=_risk_factors(score, fatigue_path, confusion_points),
    )


def simulate_performance(
    learners: Sequence[SyntheticLearner],
    problems: Sequence[Problem],
    config: Optional[SimulationConfig] = None,
) -> List[LearnerSummary]:
    return [simulate_learner(learner, problems, config) for learner in learners]


def summarize_class(summaries: Sequence[LearnerSummary]) -> ClassSummary:
    """Cohort completion summary: averages, pass rate, and top confusion points."""

    if not summaries:
        return ClassSummary(avg_time_minutes=0.0, avg_score=0.0, completion_rate_pct=0.0, at_risk_count=0)

    completed = sum(1 for s in summaries if s.estimated_score >= AT_RISK_SCORE)
    confusion_counts = Counter(pid for s in summaries for pid in s.confusion_points)
    return ClassSummary(
        avg_time_minutes=round(mean([s.total_time_minutes for s in summaries]), 1),
        avg_score=round(mean([s.estimated_score for s in summaries]), 1),
        completion_rate_pct=round(100.0 * completed / len(summaries), 1),
        at_risk_count=sum(1 for s in summaries if s.at_risk),
        top_confusion_points=tuple(pid for pid, _ in confusion_counts.most_common(3)),
    )


def _engagement_trajectory(outcomes: Sequence[ProblemOutcome]) -> EngagementTrajectory:
    if not outcomes:
        return EngagementTrajectory(initial=0.0, midpoint=0.0, final=0.0, trend=Trend.STABLE)

    initial = outcomes[0].engagement_score
    midpoint = outcomes[len(outcomes) // 2].engagement_score
    final = outcomes[-1].engagement_score
    change = final - initial
    if change > TREND_TOLERANCE:
        trend = Trend.INCREASING
    elif change < -TREND_TOLERANCE:
        trend = Trend.DECLINING
    else:
        trend = Trend.STABLE
    return EngagementTrajectory(initial=initial, midpoint=midpoint, final=final, trend=trend)


def _fatigue_trajectory(outcomes: Sequence[ProblemOutcome]) -> FatigueTrajectory:
    if not outcomes:
        return FatigueTrajectory(initial=0.0, peak=0.0, final=0.0)
    levels = [o.fatigue for o in outcomes]
    return FatigueTrajectory(initial=levels[0], peak=max(levels), final=levels[-1])


def _risk_factors(score: int, fatigue: FatigueTrajectory, confusion_points: Sequence[str]) -> Tuple[str, ...]:
    factors: List[str] = []
    if score < AT_RISK_SCORE:
        factors.append("Low success rate")
    if fatigue.peak > 0.6:
        factors.append("High fatigue accumulation")
    if len(confusion_points) >= 2:
        factors.append("Repeated high confusion")
    return tuple(factors)
