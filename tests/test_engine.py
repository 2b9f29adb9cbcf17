# ABOUTME: End-to-end tests for the diagnostic pipeline and its fallback boundary.
# ABOUTME: Covers empty input, determinism, a confusion-run scenario, and failure handling.

import json
import unittest

import pytest

from src.assessment_sim import engine
from src.assessment_sim.charts import CHART_NAMES
from src.assessment_sim.config import DiagnosticsConfig, PopulationConfig, SeverityConfig
from src.assessment_sim.engine import (
    diagnose,
    fallback_output,
    overall_risk_level,
    run_diagnostics,
    run_pipeline,
)
from src.common.schemas import (
    BloomLevel,
    ClusterType,
    FeedbackCategory,
    GenerationContext,
    Priority,
    Problem,
    SyntheticLearner,
)


def _problem(pid, level, lc):
    return Problem(problem_id=pid, bloom_level=level, linguistic_complexity=lc, estimated_minutes=4)


def _alternating_problems():
    # Remember/Create alternation with a run of four wordy Create problems at P3..P6.
    levels = "RCRCCCCRCR"
    return [
        _problem(
            f"P{i}",
            BloomLevel.CREATE if code == "C" else BloomLevel.REMEMBER,
            0.9 if 3 <= i <= 6 else 0.1,
        )
        for i, code in enumerate(levels)
    ]


def _confusion_run_problems():
    easy = [_problem(f"E{i}", BloomLevel.APPLY, 0.1) for i in range(3)]
    hard = [_problem(f"H{i}", BloomLevel.CREATE, 0.9) for i in range(4)]
    tail = [_problem(f"T{i}", BloomLevel.APPLY, 0.1) for i in range(3)]
    return easy + hard + tail


class TestEmptyInput(unittest.TestCase):
    def test_empty_problem_list_returns_placeholders(self):
        output = run_diagnostics([], GenerationContext(time_target_minutes=30))

        self.assertEqual(output.ranked_feedback, ())
        self.assertEqual(list(output.visualizations), list(CHART_NAMES))
        for artifact in output.visualizations.values():
            self.assertTrue(artifact["metadata"]["placeholder"])
        self.assertEqual(output.metadata.predicted_total_time, 0)
        self.assertEqual(output.metadata.time_target_delta, -30)
        self.assertEqual(output.metadata.overall_risk_level, "low")
        self.assertEqual(output.metadata.cluster_count, 0)

    def test_diagnose_accepts_empty_input(self):
        output = diagnose([])
        self.assertEqual(output.ranked_feedback, ())


class TestDeterminism(unittest.TestCase):
    def test_same_seed_same_output(self):
        problems = _confusion_run_problems()
        context = GenerationContext(subject="math", grade_band="9-10", time_target_minutes=45)

        first = json.dumps(run_diagnostics(problems, context, seed=7).to_dict(), sort_keys=True)
        second = json.dumps(run_diagnostics(problems, context, seed=7).to_dict(), sort_keys=True)

        self.assertEqual(first, second)

    def test_config_seed_is_used_when_none_given(self):
        problems = _confusion_run_problems()
        config = DiagnosticsConfig(seed=11)
        first = run_pipeline(problems, config=config)
        second = run_pipeline(problems, config=config)
        self.assertEqual(first.learners, second.learners)


class TestConfusionRunScenario(unittest.TestCase):
    def setUp(self):
        self.problems = _confusion_run_problems()
        self.run = run_pipeline(
            self.problems,
            GenerationContext(subject="science", grade_band="6-8", time_target_minutes=40),
            seed=42,
        )

    def test_population_and_metrics_shape(self):
        self.assertEqual(len(self.run.learners), 20)
        self.assertEqual(len(self.run.summaries), 20)
        self.assertEqual([m.problem_id for m in self.run.metrics], [p.problem_id for p in self.problems])

    def test_hard_run_is_one_confusion_cluster(self):
        confusion = [c for c in self.run.clusters if c.cluster_type == ClusterType.CONFUSION]
        self.assertEqual(len(confusion), 1)
        self.assertEqual(confusion[0].problem_ids, ("H0", "H1", "H2", "H3"))

    def test_confusion_feedback_points_at_run(self):
        clarity = [i for i in self.run.output.ranked_feedback if i.category == FeedbackCategory.CLARITY]
        self.assertEqual(len(clarity), 1)
        self.assertEqual(clarity[0].affected_problems, (3, 4, 5, 6))

    def test_ranking_is_non_increasing_and_bounded(self):
        severities = [item.severity for item in self.run.output.ranked_feedback]
        self.assertEqual(severities, sorted(severities, reverse=True))
        for severity in severities:
            self.assertGreaterEqual(severity, 0.0)
            self.assertLessEqual(severity, 1.0)

    def test_metadata_matches_summaries(self):
        metadata = self.run.output.metadata
        self.assertEqual(metadata.cluster_count, len(self.run.clusters))
        self.assertEqual(metadata.time_target_delta, metadata.predicted_total_time - 40)
        self.assertIn(metadata.overall_risk_level, {"low", "medium", "high"})


class TestMatchedLearner(unittest.TestCase):
    def test_single_matched_learner_has_no_clusters(self):
        learner = SyntheticLearner("solo", "Solo (standard)", 0.5, 0.5, 0.5, 0.5, 0.5)
        problem = Problem(problem_id="A1", bloom_level=BloomLevel.APPLY, linguistic_complexity=0.0)

        run = run_pipeline([problem], learners=[learner])

        outcome = run.summaries[0].outcomes[0]
        self.assertGreaterEqual(outcome.success_pct, 95)
        self.assertEqual(outcome.confusion_level.value, "low")
        self.assertEqual(run.clusters, [])
        self.assertEqual(run.output.ranked_feedback, ())
        self.assertEqual(run.output.metadata.overall_risk_level, "low")


def test_population_size_comes_from_config():
    config = DiagnosticsConfig(population=PopulationConfig(size=7))
    run = run_pipeline(_confusion_run_problems(), config=config, seed=1)
    assert len(run.learners) == 7
    assert run.class_summary.at_risk_count <= 7


def test_diagnose_returns_fallback_when_a_stage_raises(monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("simulation exploded")

    monkeypatch.setattr(engine, "simulate_performance", boom)

    output = diagnose(_confusion_run_problems())

    assert len(output.ranked_feedback) == 1
    notice = output.ranked_feedback[0]
    assert notice.priority == Priority.LOW
    assert notice.recommendation.startswith("Analysis incomplete")
    assert list(output.visualizations) == list(CHART_NAMES)
    assert all(a["metadata"]["placeholder"] for a in output.visualizations.values())


def test_diagnose_returns_fallback_on_invalid_output(monkeypatch):
    monkeypatch.setattr(engine, "render_charts", lambda *args, **kwargs: {})

    output = diagnose(_confusion_run_problems())

    assert output == fallback_output()


def test_run_diagnostics_propagates_errors(monkeypatch):
    monkeypatch.setattr(engine, "aggregate_metrics", lambda *args: 1 / 0)
    with pytest.raises(ZeroDivisionError):
        run_diagnostics(_confusion_run_problems())


def test_overall_risk_level_thresholds():
    run = run_pipeline(_confusion_run_problems(), seed=3)
    summaries = run.summaries
    level = overall_risk_level(summaries)
    mean_score = sum(s.estimated_score for s in summaries) / len(summaries)
    expected = "high" if mean_score < 60 else "medium" if mean_score < 75 else "low"
    assert level.value == expected
    assert overall_risk_level([]).value == "low"


def test_output_envelope_is_json_serializable():
    payload = json.loads(json.dumps(run_diagnostics(_confusion_run_problems(), seed=5).to_dict()))
    assert set(payload) == {"ranked_feedback", "visualizations", "metadata"}
    assert set(payload["visualizations"]) == set(CHART_NAMES)


def test_empty_problem_list_flags_learners_but_reports_low_risk():
    run = run_pipeline([], seed=2)

    assert all(s.at_risk and s.estimated_score == 0 for s in run.summaries)
    assert run.output.metadata.overall_risk_level == "low"


@pytest.mark.parametrize("seed", range(5))
def test_alternating_create_run_is_one_low_priority_confusion_cluster(seed):
    run = run_pipeline(_alternating_problems(), GenerationContext(grade_band="6-8"), seed=seed)

    confusion = [c for c in run.clusters if c.cluster_type == ClusterType.CONFUSION]
    assert [c.problem_ids for c in confusion] == [("P3", "P4", "P5", "P6")]

    clarity = [i for i in run.output.ranked_feedback if i.category == FeedbackCategory.CLARITY]
    assert len(clarity) == 1
    assert clarity[0].affected_problems == (3, 4, 5, 6)
    assert clarity[0].severity == 0.0
    assert clarity[0].priority == Priority.LOW


@pytest.mark.parametrize("seed", range(5))
def test_alternating_create_run_never_ranks_high_against_population(seed):
    config = DiagnosticsConfig(severity=SeverityConfig(baseline="population"))
    run = run_pipeline(_alternating_problems(), GenerationContext(grade_band="6-8"), config, seed=seed)

    clarity = [i for i in run.output.ranked_feedback if i.category == FeedbackCategory.CLARITY]
    assert len(clarity) == 1
    assert 0.0 < clarity[0].severity < 0.75
    assert clarity[0].priority != Priority.HIGH


@pytest.mark.parametrize("grade_band", ["", "11-12"])
def test_alternating_create_run_is_not_confusing_for_stronger_cohorts(grade_band):
    run = run_pipeline(_alternating_problems(), GenerationContext(grade_band=grade_band), seed=0)

    assert [c for c in run.clusters if c.cluster_type == ClusterType.CONFUSION] == []
