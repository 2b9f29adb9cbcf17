# ABOUTME: Orchestrates population, simulation, aggregation, detection, ranking, and charts.
# ABOUTME: diagnose() is the single boundary that converts failures into a fallback envelope.

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from src.common.schemas import (
    Cluster,
    EngineOutput,
    FeedbackCategory,
    FeedbackItem,
    GenerationContext,
    LearnerSummary,
    Level,
    OutputMetadata,
    Priority,
    Problem,
    ProblemMetrics,
    SyntheticLearner,
)
from src.common.stats import mean

from .aggregation import aggregate_metrics
from .charts import placeholder_charts, render_charts
from .config import DiagnosticsConfig
from .contracts import validate_output
from .detection import detect_clusters
from .feedback import rank_feedback
from .population import generate_population, grade_band_center
from .simulation import simulate_performance, summarize_class

HIGH_RISK_SCORE = 60
MEDIUM_RISK_SCORE = 75

FALLBACK_RECOMMENDATION = (
    "Analysis incomplete. The diagnostic run could not finish; review the assessment manually or retry."
)


@dataclass(frozen=True)
class DiagnosticRun:
    """Every intermediate of one run, kept for exports and the CLI."""

    problems: Sequence[Problem]
    context: GenerationContext
    learners: Sequence[SyntheticLearner]
    summaries: Sequence[LearnerSummary]
    metrics: Sequence[ProblemMetrics]
    clusters: Sequence[Cluster]
    output: EngineOutput

    @property
    def class_summary(self):
        return summarize_class(self.summaries)


def overall_risk_level(summaries: Sequence[LearnerSummary]) -> Level:
    """
    Cohort risk from the mean estimated score: below 60 is high, below 75 is
    medium, anything else is low.

    Learners with no outcomes are left out. An empty problem list therefore
    reports "low" even though each of those learners scores 0 and is
    flagged at_risk on its own summary. The per-learner flag follows the
    score rule; the cohort level only describes simulated work.
    """

    scores = [s.estimated_score for s in summaries if s.outcomes]
    if not scores:
        return Level.LOW
    avg = mean(scores)
    if avg < HIGH_RISK_SCORE:
        return Level.HIGH
    if avg < MEDIUM_RISK_SCORE:
        return Level.MEDIUM
    return Level.LOW


def build_metadata(
    summaries: Sequence[LearnerSummary],
    context: GenerationContext,
    cluster_count: int,
) -> OutputMetadata:
    predicted = int(round(mean([s.total_time_minutes for s in summaries])))
    return OutputMetadata(
        predicted_total_time=predicted,
        time_target_delta=round(predicted - context.time_target_minutes, 2),
        overall_risk_level=overall_risk_level(summaries).value,
        cluster_count=cluster_count,
    )


def run_pipeline(
    problems: Sequence[Problem],
    context: Optional[GenerationContext] = None,
    config: Optional[DiagnosticsConfig] = None,
    seed: Optional[int] = None,
    learners: Optional[Sequence[SyntheticLearner]] = None,
) -> DiagnosticRun:
    """
    Run every stage and keep the intermediates.

    When `learners` is supplied the population stage is skipped. Otherwise a
    population is drawn from `np.random.default_rng(seed)`, falling back to
    config.seed, so identical inputs give identical output.
    """

    context = context or GenerationContext()
    config = config or DiagnosticsConfig()
    problems = list(problems)

    if learners is None:
        rng = np.random.default_rng(config.seed if seed is None else seed)
        center = grade_band_center(
            context.grade_band,
            bands=config.population.grade_bands,
            default=config.population.default_center,
        )
        print(f"[diagnostics] Generating {config.population.size} learners around ability {center:.2f}")
        learners = generate_population(config.population.size, center, rng)
    learners = list(learners)

    print(f"[diagnostics] Simulating {len(learners)} learners across {len(problems)} problems")
    summaries = simulate_performance(learners, problems, config.simulation)
    metrics = aggregate_metrics(summaries, problems)
    clusters = detect_clusters(metrics, problems, summaries, config.detection)
    print(f"[diagnostics] Detected {len(clusters)} cluster(s)")

    feedback = rank_feedback(clusters, metrics, problems, len(learners), config.severity.baseline)
    output = EngineOutput(
        ranked_feedback=tuple(feedback),
        visualizations=render_charts(metrics, summaries, config.charts),
        metadata=build_metadata(summaries, context, len(clusters)),
    )
    return DiagnosticRun(
        problems=problems,
        context=context,
        learners=learners,
        summaries=summaries,
        metrics=metrics,
        clusters=clusters,
        output=output,
    )


def run_diagnostics(
    problems: Sequence[Problem],
    context: Optional[GenerationContext] = None,
    config: Optional[DiagnosticsConfig] = None,
    seed: Optional[int] = None,
    learners: Optional[Sequence[SyntheticLearner]] = None,
) -> EngineOutput:
    return run_pipeline(problems, context, config, seed, learners).output


def fallback_output(config: Optional[DiagnosticsConfig] = None) -> EngineOutput:
    """Envelope returned when a run fails: one notice plus six placeholders."""

    config = config or DiagnosticsConfig()
    notice = FeedbackItem(
        priority=Priority.LOW,
        category=FeedbackCategory.CLARITY,
        recommendation=FALLBACK_RECOMMENDATION,
        affected_problems=(),
        evidence="Diagnostic engine error",
    )
    return EngineOutput(
        ranked_feedback=(notice,),
        visualizations=placeholder_charts(config.charts, message="Analysis unavailable"),
        metadata=OutputMetadata(
            predicted_total_time=0,
            time_target_delta=0.0,
            overall_risk_level=Level.LOW.value,
            cluster_count=0,
        ),
    )


def diagnose(
    problems: Sequence[Problem],
    context: Optional[GenerationContext] = None,
    config: Optional[DiagnosticsConfig] = None,
    seed: Optional[int] = None,
    learners: Optional[Sequence[SyntheticLearner]] = None,
) -> EngineOutput:
    """
    Run diagnostics, never raising.

    Any exception from a stage, or an envelope that fails validate_output,
    is replaced by fallback_output(). Callers never see a partial result.
    """

    try:
        output = run_diagnostics(problems, context, config, seed, learners)
    except Exception as exc:
        print(f"[diagnostics] Run failed, returning fallback output: {exc!r}")
        return fallback_output(config)

    violations = validate_output(output)
    if violations:
        print(f"[diagnostics] Output failed validation ({len(violations)} issue(s)), returning fallback output")
        return fallback_output(config)
    return output
