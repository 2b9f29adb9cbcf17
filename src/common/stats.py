# ABOUTME: Numeric helpers shared by the aggregation, detection, and severity stages.
# ABOUTME: Derives mean/std thresholds that stay finite on empty or constant series.

from __future__ import annotations

from typing import Sequence

import numpy as np

from .schemas import ThresholdDerivation

ELEVATED_SIGMA = 0.75
SEVERE_SIGMA = 1.25


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return float(max(low, min(high, value)))


def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def population_std(values: Sequence[float]) -> float:
    """Standard deviation with ddof=0; 0.0 for empty input."""
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=0))


def derive_thresholds(values: Sequence[float]) -> ThresholdDerivation:
    """
    Compute adaptive cutoffs for a metric series.

    elevated = mean + 0.75σ, severe = mean + 1.25σ. A constant series has
    σ = 0 and both cutoffs collapse onto the mean.
    """

    mu = mean(values)
    std = population_std(values)
    # Constant series: pin the mean to the exact value so no point sits above it.
    if std < 1e-12:
        std = 0.0
        mu = float(values[0]) if len(values) else 0.0
    return ThresholdDerivation(
        mean=mu,
        std=std,
        elevated=mu + ELEVATED_SIGMA * std,
        severe=mu + SEVERE_SIGMA * std,
    )


def normalized_excess(value: float, baseline: float, std: float) -> float:
    """clamp01((value - baseline) / 2σ), or 0.0 when σ is zero."""
    if std <= 0:
        return 0.0
    return clamp((value - baseline) / (2 * std))
