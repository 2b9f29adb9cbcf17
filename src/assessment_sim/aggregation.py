# ABOUTME: Collapses per-learner outcomes into per-problem population metrics.
# ABOUTME: Uses pandas groupby so every problem yields one ProblemMetrics row in input order.

from __future__ import annotations

from dataclasses import asdict
from typing import List, Sequence

import pandas as pd

from src.common.schemas import LearnerSummary, Level, MismatchSeverity, Problem, ProblemMetrics

CONFUSION_WEIGHTS = {
    Level.LOW.value: 0.2,
    Level.MEDIUM.value: 0.5,
    Level.HIGH.value: 0.8,
}

OUTCOME_COLUMNS = [
    "learner_id",
    "problem_id",
    "position",
    "time_seconds",
    "success_pct",
    "confusion_level",
    "engagement_level",
    "mismatch_severity",
    "confusion_score",
    "engagement_score",
    "fatigue",
]

METRIC_COLUMNS = [
    "problem_id",
    "success_rate",
    "avg_time",
    "confusion_index",
    "mismatch_rate",
    "fatigue_contribution",
]


def outcomes_frame(summaries: Sequence[LearnerSummary]) -> pd.DataFrame:
    """Flatten every learner's outcomes into one row per (learner, problem)."""

    rows = []
    for summary in summaries:
        for position, outcome in enumerate(summary.outcomes):
            mismatch = outcome.bloom_mismatch.severity if outcome.bloom_mismatch else MismatchSeverity.NONE
            rows.append(
                {
                    "learner_id": outcome.learner_id,
                    "problem_id": outcome.problem_id,
                    "position": position,
                    "time_seconds": outcome.time_seconds,
                    "success_pct": outcome.success_pct,
                    "confusion_level": outcome.confusion_level.value,
                    "engagement_level": outcome.engagement_level.value,
                    "mismatch_severity": mismatch.value,
                    "confusion_score": outcome.confusion_score,
                    "engagement_score": outcome.engagement_score,
                    "fatigue": outcome.fatigue,
                }
            )
    return pd.DataFrame(rows, columns=OUTCOME_COLUMNS)


def aggregate_metrics(summaries: Sequence[LearnerSummary], problems: Sequence[Problem]) -> List[ProblemMetrics]:
    """
    Aggregate outcomes into one ProblemMetrics record per problem.

    Steps:
    - Flatten outcomes and map categorical confusion back to 0.2/0.5/0.8.
    - Flag severe Bloom mismatches and low engagement per outcome.
    - Mean every signal per problem id.
    - Emit records in input order, skipping problems nobody attempted.
    """

    frame = outcomes_frame(summaries)
    if frame.empty or not problems:
        return []

    frame["success"] = frame["success_pct"] / 100.0
    frame["confusion_value"] = frame["confusion_level"].map(CONFUSION_WEIGHTS).fillna(0.5)
    frame["severe_mismatch"] = (frame["mismatch_severity"] == MismatchSeverity.SEVERE.value).astype(float)
    frame["low_engagement"] = (frame["engagement_level"] == Level.LOW.value).astype(float)

    grouped = frame.groupby("problem_id", sort=False).agg(
        success_rate=("success", "mean"),
        avg_time=("time_seconds", "mean"),
        confusion_index=("confusion_value", "mean"),
        mismatch_rate=("severe_mismatch", "mean"),
        fatigue_contribution=("low_engagement", "mean"),
    )

    metrics: List[ProblemMetrics] = []
    for problem in problems:
        if problem.problem_id not in grouped.index:
            continue
        row = grouped.loc[problem.problem_id]
        metrics.append(
            ProblemMetrics(
                problem_id=problem.problem_id,
                success_rate=float(row["success_rate"]),
                avg_time=float(row["avg_time"]),
                confusion_index=float(row["confusion_index"]),
                mismatch_rate=float(row["mismatch_rate"]),
                fatigue_contribution=float(row["fatigue_contribution"]),
            )
        )
    return metrics


def metrics_frame(metrics: Sequence[ProblemMetrics]) -> pd.DataFrame:
    return pd.DataFrame([asdict(m) for m in metrics], columns=METRIC_COLUMNS)
