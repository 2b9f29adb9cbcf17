# ABOUTME: Scores detected clusters on a 0-1 severity scale for ranking.
# ABOUTME: Combines confusion magnitude, run length, and affected-population share.

from __future__ import annotations

from typing import Sequence

from src.common.schemas import Cluster, ProblemMetrics
from src.common.stats import clamp, derive_thresholds, mean, normalized_excess

from .config import SEVERITY_BASELINES

FULL_LENGTH = 4


def compute_severity(
    cluster: Cluster,
    metrics: Sequence[ProblemMetrics],
    population_size: int,
    baseline: str = "subset",
) -> float:
    """
    Severity for ranking a cluster.

    magnitude = clamp01((subset_mean - reference_mean) / 2σ) over the confusion
    index of the cluster's problems. With baseline="subset" the reference
    mean/σ come from those same problems; with baseline="population" they come
    from the full confusion series. The magnitude is then weighted by run
    length (saturating at 4 problems) and by the share of learners affected.
    """

    if baseline not in SEVERITY_BASELINES:
        raise ValueError(f"Unsupported severity baseline '{baseline}'. Expected one of: {', '.join(SEVERITY_BASELINES)}.")

    wanted = set(cluster.problem_ids)
    subset = [m.confusion_index for m in metrics if m.problem_id in wanted]
    if baseline == "population":
        reference = derive_thresholds([m.confusion_index for m in metrics])
    else:
        reference = derive_thresholds(subset)
    magnitude = normalized_excess(mean(subset), reference.mean, reference.std)

    length_weight = min(1.0, len(cluster.problem_ids) / FULL_LENGTH)
    impact_weight = clamp(cluster.affected_learners / population_size) if population_size > 0 else 0.0

    return clamp(magnitude * (0.5 + 0.5 * length_weight) * (0.5 + 0.5 * impact_weight))
