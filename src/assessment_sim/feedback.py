# ABOUTME: Turns detected clusters into ranked, actionable feedback items.
# ABOUTME: Maps each cluster type to a recommendation template and priority band.

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from src.common.schemas import (
    Cluster,
    ClusterType,
    FeedbackCategory,
    FeedbackItem,
    Priority,
    Problem,
    ProblemMetrics,
)

from .severity import compute_severity

HIGH_PRIORITY = 0.75
MEDIUM_PRIORITY = 0.45


@dataclass(frozen=True)
class FeedbackTemplate:
    category: FeedbackCategory
    recommendation: str
    action_items: Tuple[str, ...]


FEEDBACK_TEMPLATES: Dict[ClusterType, FeedbackTemplate] = {
    ClusterType.CONFUSION: FeedbackTemplate(
        category=FeedbackCategory.CLARITY,
        recommendation=(
            "Problems {problems} show elevated confusion. Students struggle to understand the "
            "question structure or content. Simplify language, add examples, or break into smaller parts."
        ),
        action_items=(
            "Add concrete examples to clarify intent",
            "Break multi-part questions into separate items",
            "Use simpler vocabulary",
        ),
    ),
    ClusterType.FATIGUE: FeedbackTemplate(
        category=FeedbackCategory.ENGAGEMENT,
        recommendation=(
            "Fatigue rapidly accelerates in this section. Consider adding checkpoints, "
            "inserting easier problems, or breaking into shorter segments."
        ),
        action_items=(
            "Add a checkpoint with feedback",
            "Insert 1-2 easier problems to rebuild confidence",
            "Break section into two shorter blocks",
        ),
    ),
    ClusterType.FAILURE: FeedbackTemplate(
        category=FeedbackCategory.ALIGNMENT,
        recommendation=(
            "Students fail at high rates on these problems. Review cognitive demand, clarity, "
            "and whether prerequisites are met."
        ),
        action_items=(
            "Verify BloomLevel matches student readiness",
            "Check computational complexity",
            "Ensure prerequisites are scaffolded",
        ),
    ),
    ClusterType.TIME: FeedbackTemplate(
        category=FeedbackCategory.TIME,
        recommendation=(
            "Time estimates significantly mismatch observed performance. "
            "Adjust estimated times or problem difficulty."
        ),
        action_items=(
            "Recalibrate time estimates",
            "Simplify if inflation detected",
            "Add scaffolding if compression",
        ),
    ),
    ClusterType.MISMATCH: FeedbackTemplate(
        category=FeedbackCategory.ALIGNMENT,
        recommendation=(
            "Severe Bloom level mismatches detected. Ensure problem demands match student "
            "capability or provide scaffolding."
        ),
        action_items=(
            "Add prerequisite problems",
            "Provide step-by-step guidance",
            "Adjust Bloom level",
        ),
    ),
}


def priority_for(severity: float) -> Priority:
    if severity >= HIGH_PRIORITY:
        return Priority.HIGH
    if severity >= MEDIUM_PRIORITY:
        return Priority.MEDIUM
    return Priority.LOW


def build_feedback_item(cluster: Cluster, severity: float, problems: Sequence[Problem]) -> FeedbackItem:
    template = FEEDBACK_TEMPLATES[cluster.cluster_type]
    positions = {p.problem_id: idx for idx, p in enumerate(problems)}
    return FeedbackItem(
        priority=priority_for(severity),
        category=template.category,
        recommendation=template.recommendation.format(problems=", ".join(cluster.problem_ids)),
        affected_problems=tuple(positions[pid] for pid in cluster.problem_ids if pid in positions),
        evidence=cluster.evidence,
        action_items=template.action_items,
        cluster_type=cluster.cluster_type,
        severity=round(severity, 4),
    )


def rank_feedback(
    clusters: Sequence[Cluster],
    metrics: Sequence[ProblemMetrics],
    problems: Sequence[Problem],
    population_size: int,
    baseline: str = "subset",
) -> List[FeedbackItem]:
    """
    Rank clusters by severity and render one feedback item per cluster.

    Severity is recomputed here rather than taken from the detector, and
    sorted() is stable, so equal scores keep detection order.
    """

    scored = [(compute_severity(c, metrics, population_size, baseline), c) for c in clusters]
    ranked = sorted(scored, key=lambda pair: pair[0], reverse=True)
    return [build_feedback_item(cluster, severity, problems) for severity, cluster in ranked]
