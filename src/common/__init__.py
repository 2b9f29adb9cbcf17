# ABOUTME: Makes the shared common package importable across the diagnostic stages.
# ABOUTME: Re-exports schema types and threshold helpers for convenience.

from .schemas import (
    BloomLevel,
    Cluster,
    ClusterType,
    EngineOutput,
    FeedbackItem,
    GenerationContext,
    LearnerSummary,
    Overlay,
    Problem,
    ProblemMetrics,
    ProblemOutcome,
    SyntheticLearner,
    ThresholdDerivation,
)
from .stats import derive_thresholds, normalized_excess

__all__ = [
    "BloomLevel",
    "Cluster",
    "ClusterType",
    "EngineOutput",
    "FeedbackItem",
    "GenerationContext",
    "LearnerSummary",
    "Overlay",
    "Problem",
    "ProblemMetrics",
    "ProblemOutcome",
    "SyntheticLearner",
    "ThresholdDerivation",
    "derive_thresholds",
    "normalized_excess",
]
