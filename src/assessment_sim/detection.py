# ABOUTME: Scans per-problem metrics for anomalous clusters using data-derived thresholds.
# ABOUTME: Implements confusion-run, fatigue-acceleration, failure, mismatch, and time detectors.

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from src.common.schemas import Cluster, ClusterType, LearnerSummary, Problem, ProblemMetrics
from src.common.stats import clamp, derive_thresholds, mean, normalized_excess

from .config import DetectionConfig
from .simulation import DEFAULT_MINUTES

STRUGGLE_PCT = 70
FAILURE_PCT = 50
FATIGUE_PEAK = 0.6
FAILURE_SIGMA = 1.0
TIME_OVERRUN_RATIO = 1.5


def detect_confusion_clusters(
    metrics: Sequence[ProblemMetrics],
    summaries: Sequence[LearnerSummary],
    min_run: int = 2,
) -> List[Cluster]:
    """Emit one cluster per contiguous run of elevated-confusion problems."""

    values = [m.confusion_index for m in metrics]
    thresholds = derive_thresholds(values)
    clusters: List[Cluster] = []

    run_start: Optional[int] = None
    for idx, value in enumerate(values + [None]):
        elevated = value is not None and value > thresholds.elevated
        if elevated:
            if run_start is None:
                run_start = idx
            continue
        if run_start is not None and idx - run_start >= min_run:
            run = metrics[run_start:idx]
            ids = tuple(m.problem_id for m in run)
            clusters.append(
                Cluster(
                    cluster_type=ClusterType.CONFUSION,
                    problem_ids=ids,
                    start_index=run_start,
                    end_index=idx - 1,
                    severity=normalized_excess(mean(values[run_start:idx]), thresholds.mean, thresholds.std),
                    affected_learners=_learners_scoring_below(summaries, ids, STRUGGLE_PCT),
                    evidence=f"{len(ids)} consecutive problems with elevated confusion",
                )
            )
        run_start = None
    return clusters


def detect_fatigue_clusters(metrics: Sequence[ProblemMetrics], summaries: Sequence[LearnerSummary]) -> List[Cluster]:
    """Flag sharp jumps in the share of disengaged learners between adjacent problems."""

    trend = [m.fatigue_contribution for m in metrics]
    slopes = [trend[i] - trend[i - 1] for i in range(1, len(trend))]
    if not slopes:
        return []

    thresholds = derive_thresholds(slopes)
    flagged = [i for i, slope in enumerate(slopes) if slope > thresholds.severe]
    if not flagged:
        return []

    start, end = min(flagged), max(flagged)
    severity = 0.0
    if thresholds.std > 0:
        severity = clamp(mean(slopes[start : end + 1]) / (2 * thresholds.std))
    return [
        Cluster(
            cluster_type=ClusterType.FATIGUE,
            problem_ids=tuple(m.problem_id for m in metrics[start : end + 1]),
            start_index=start,
            end_index=end,
            severity=severity,
            affected_learners=sum(1 for s in summaries if s.fatigue.peak > FATIGUE_PEAK),
            evidence="Sharp fatigue acceleration detected",
        )
    ]


def detect_failure_clusters(metrics: Sequence[ProblemMetrics], summaries: Sequence[LearnerSummary]) -> List[Cluster]:
    """Group every problem whose success rate sits more than 1σ below the mean."""

    rates = [m.success_rate for m in metrics]
    thresholds = derive_thresholds(rates)
    cutoff = thresholds.mean - FAILURE_SIGMA * thresholds.std
    flagged = [i for i, rate in enumerate(rates) if rate < cutoff]
    if not flagged:
        return []

    flagged_mean = mean([rates[i] for i in flagged])
    return [
        Cluster(
            cluster_type=ClusterType.FAILURE,
            problem_ids=tuple(metrics[i].problem_id for i in flagged),
            start_index=min(flagged),
            end_index=max(flagged),
            # Failure is an excess below the mean, so the sign flips.
            severity=normalized_excess(thresholds.mean, flagged_mean, thresholds.std),
            affected_learners=sum(
                1 for s in summaries if any(o.success_pct < FAILURE_PCT for o in s.outcomes)
            ),
            evidence="High failure rate",
        )
    ]


def detect_mismatch_clusters(metrics: Sequence[ProblemMetrics], summaries: Sequence[LearnerSummary]) -> List[Cluster]:
    rates = [m.mismatch_rate for m in metrics]
    thresholds = derive_thresholds(rates)
    flagged = [i for i, rate in enumerate(rates) if rate > thresholds.elevated]
    if not flagged:
        return []

    ids = tuple(metrics[i].problem_id for i in flagged)
    return [
        Cluster(
            cluster_type=ClusterType.MISMATCH,
            problem_ids=ids,
            start_index=min(flagged),
            end_index=max(flagged),
            severity=normalized_excess(mean([rates[i] for i in flagged]), thresholds.mean, thresholds.std),
            affected_learners=_learners_scoring_below(summaries, ids, STRUGGLE_PCT),
            evidence="Elevated Bloom level mismatch",
        )
    ]


def detect_time_clusters(
    metrics: Sequence[ProblemMetrics],
    problems: Sequence[Problem],
    summaries: Sequence[LearnerSummary],
) -> List[Cluster]:
    """
    Flag problems whose simulated time overruns the author's estimate.

    The series is avg_time / estimated seconds; anything above the severe
    threshold joins a single cluster.
    """

    estimates = {p.problem_id: (p.estimated_minutes or DEFAULT_MINUTES) * 60 for p in problems}
    ratios = [m.avg_time / estimates[m.problem_id] for m in metrics]
    thresholds = derive_thresholds(ratios)
    flagged = [i for i, ratio in enumerate(ratios) if ratio > thresholds.severe]
    if not flagged:
        return []

    ids = tuple(metrics[i].problem_id for i in flagged)
    affected = 0
    for summary in summaries:
        if any(
            o.problem_id in ids and o.time_seconds > TIME_OVERRUN_RATIO * estimates[o.problem_id]
            for o in summary.outcomes
        ):
            affected += 1
    return [
        Cluster(
            cluster_type=ClusterType.TIME,
            problem_ids=ids,
            start_index=min(flagged),
            end_index=max(flagged),
            severity=normalized_excess(mean([ratios[i] for i in flagged]), thresholds.mean, thresholds.std),
            affected_learners=affected,
            evidence="Simulated time far exceeds estimated time",
        )
    ]


def detect_clusters(
    metrics: Sequence[ProblemMetrics],
    problems: Sequence[Problem],
    summaries: Sequence[LearnerSummary],
    config: Optional[DetectionConfig] = None,
) -> List[Cluster]:
    """Run every enabled detector independently; clusters are never merged."""

    config = config or DetectionConfig()
    clusters: List[Cluster] = []
    clusters.extend(detect_confusion_clusters(metrics, summaries, min_run=config.min_confusion_run))
    clusters.extend(detect_fatigue_clusters(metrics, summaries))
    clusters.extend(detect_failure_clusters(metrics, summaries))
    clusters.extend(detect_mismatch_clusters(metrics, summaries))
    if config.detect_time_clusters:
        clusters.extend(detect_time_clusters(metrics, problems, summaries))
    return clusters


def _learners_scoring_below(summaries: Iterable[LearnerSummary], problem_ids: Sequence[str], cutoff: int) -> int:
    wanted = set(problem_ids)
    return sum(
        1
        for summary in summaries
        if any(o.problem_id in wanted and o.success_pct < cutoff for o in summary.outcomes)
    )
