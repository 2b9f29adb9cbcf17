# ABOUTME: Tests per-learner performance simulation and cohort summaries.
# ABOUTME: Covers grade cutoffs, fatigue accumulation, overlays, and Bloom mismatch.

import pytest

from src.assessment_sim.config import SimulationConfig
from src.assessment_sim.simulation import (
    OVERLAY_MODIFIERS,
    bucket_level,
    capability_level,
    mismatch_severity,
    score_to_grade,
    simulate_learner,
    simulate_outcome,
    simulate_performance,
    summarize_class,
)
from src.common.schemas import (
    BLOOM_DIFFICULTY,
    BloomLevel,
    Level,
    MismatchSeverity,
    Overlay,
    Problem,
    SyntheticLearner,
    Trend,
)


def _learner(learner_id="l1", ability=0.5, overlays=()):
    return SyntheticLearner(
        learner_id=learner_id,
        display_name=f"{learner_id} (standard)",
        reading_level=ability,
        reasoning_level=ability,
        numeric_fluency=ability,
        attention_span=ability,
        confidence=ability,
        overlays=tuple(overlays),
    )


def _problem(problem_id="p1", level=BloomLevel.APPLY, lc=0.0, minutes=5.0):
    return Problem(problem_id=problem_id, bloom_level=level, linguistic_complexity=lc, estimated_minutes=minutes)


@pytest.mark.parametrize(
    "score,grade",
    [(100, "A"), (90, "A"), (89, "B"), (80, "B"), (79, "C"), (70, "C"), (69, "D"), (60, "D"), (59, "F"), (0, "F")],
)
def test_score_to_grade_boundaries(score, grade):
    assert score_to_grade(score) == grade


def test_lookup_tables_cover_every_enum_member():
    assert set(OVERLAY_MODIFIERS) == set(Overlay)
    assert set(BLOOM_DIFFICULTY) == set(BloomLevel)


def test_bucket_and_mismatch_cutoffs():
    assert bucket_level(0.67) == Level.HIGH
    assert bucket_level(0.66) == Level.MEDIUM
    assert bucket_level(0.34) == Level.MEDIUM
    assert bucket_level(0.33) == Level.LOW
    assert mismatch_severity(0.5, 0.9) == MismatchSeverity.SEVERE
    assert mismatch_severity(0.5, 0.7) == MismatchSeverity.MILD
    assert mismatch_severity(0.5, 0.55) == MismatchSeverity.NONE


def test_capability_level_picks_nearest_difficulty():
    assert capability_level(0.5) == BloomLevel.APPLY
    assert capability_level(0.05) == BloomLevel.REMEMBER
    assert capability_level(1.0) == BloomLevel.CREATE


def test_matched_learner_succeeds_without_confusion():
    summary = simulate_learner(_learner(ability=0.5), [_problem()])
    outcome = summary.outcomes[0]

    assert outcome.success_pct == 99
    assert outcome.confusion_level == Level.LOW
    assert outcome.engagement_level == Level.HIGH
    assert outcome.bloom_mismatch.severity == MismatchSeverity.NONE
    assert outcome.bloom_mismatch.learner_capability == BloomLevel.APPLY
    assert "successfully completed" in outcome.feedback
    assert summary.grade == "A"
    assert not summary.at_risk


def test_fatigue_accumulates_per_problem():
    problems = [_problem(f"p{i}") for i in range(3)]
    summary = simulate_learner(_learner(), problems)

    fatigue = [o.fatigue for o in summary.outcomes]
    assert fatigue == pytest.approx([0.02, 0.04, 0.06])
    assert summary.fatigue.initial == pytest.approx(0.02)
    assert summary.fatigue.peak == pytest.approx(0.06)
    assert summary.fatigue.final == pytest.approx(0.06)
    # Success only moves with fatigue here, so it must not increase.
    successes = [o.success_pct for o in summary.outcomes]
    assert successes == sorted(successes, reverse=True)


def test_fatigue_is_capped_at_one():
    config = SimulationConfig(fatigue_step=0.6)
    summary = simulate_learner(_learner(), [_problem("a"), _problem("b"), _problem("c")], config)
    assert [o.fatigue for o in summary.outcomes] == pytest.approx([0.6, 1.0, 1.0])


def test_fatigue_does_not_leak_between_learners():
    problems = [_problem(f"p{i}") for i in range(4)]
    first, second = simulate_performance([_learner("a"), _learner("b")], problems)
    assert [o.fatigue for o in first.outcomes] == [o.fatigue for o in second.outcomes]


def test_overlays_shift_success():
    problem = _problem(level=BloomLevel.ANALYZE)
    baseline = simulate_outcome(_learner(), problem, fatigue=0.0)
    gifted = simulate_outcome(_learner(overlays=[Overlay.GIFTED]), problem, fatigue=0.0)
    disengaged = simulate_outcome(_learner(overlays=[Overlay.DISENGAGED]), problem, fatigue=0.0)

    assert gifted.success_pct > baseline.success_pct > disengaged.success_pct


def test_success_is_clamped_to_percentage_range():
    outcome = simulate_outcome(_learner(ability=0.5, overlays=[Overlay.GIFTED]), _problem(), fatigue=0.0)
    assert 0 <= outcome.success_pct <= 100


def test_hard_wordy_problem_confuses_and_flags_mismatch():
    outcome = simulate_outcome(_learner(ability=0.4), _problem(level=BloomLevel.CREATE, lc=0.9), fatigue=0.2)

    assert outcome.confusion_level == Level.HIGH
    assert outcome.bloom_mismatch.severity == MismatchSeverity.SEVERE
    assert "struggled with" in outcome.feedback
    assert "Scaffold with intermediate steps" in outcome.suggestions


def test_time_scales_with_estimate_and_ability():
    quick = simulate_outcome(_learner(ability=0.8), _problem(minutes=2), fatigue=0.0)
    slow = simulate_outcome(_learner(ability=0.4), _problem(minutes=2), fatigue=0.0)
    longer = simulate_outcome(_learner(ability=0.8), _problem(minutes=10), fatigue=0.0)

    assert slow.time_seconds > quick.time_seconds
    assert longer.time_seconds > quick.time_seconds


def test_empty_problem_list_scores_zero():
    summary = simulate_learner(_learner(), [])

    assert summary.outcomes == ()
    assert summary.estimated_score == 0
    assert summary.grade == "F"
    assert summary.total_time_minutes == 0
    assert summary.engagement.trend == Trend.STABLE


def test_engagement_trajectory_declines_with_fatigue():
    problems = [_problem(f"p{i}") for i in range(10)]
    summary = simulate_learner(_learner(), problems, SimulationConfig(fatigue_step=0.05))

    assert summary.engagement.initial > summary.engagement.final
    assert summary.engagement.midpoint == summary.outcomes[5].engagement_score
    assert summary.engagement.trend == Trend.DECLINING


def test_summarize_class_counts_at_risk_and_confusion_points():
    problems = [_problem("easy", BloomLevel.APPLY), _problem("hard", BloomLevel.CREATE, lc=0.9)]
    summaries = simulate_performance([_learner("strong", 0.5), _learner("weak", 0.1)], problems)

    summary = summarize_class(summaries)
    assert summary.at_risk_count == sum(1 for s in summaries if s.at_risk)
    assert 0.0 <= summary.completion_rate_pct <= 100.0
    assert summary.top_confusion_points[0] == "hard"

    empty = summarize_class([])
    assert empty.avg_score == 0.0
    assert empty.top_confusion_points == ()
