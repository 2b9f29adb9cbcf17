# ABOUTME: Declares configuration dataclasses for the diagnostic simulation engine.
# ABOUTME: Loads YAML configs section by section into frozen dataclasses.

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

DEFAULT_GRADE_BANDS: Mapping[str, float] = {
    "6-8": 0.5,
    "9-10": 0.65,
    "11-12": 0.75,
    "college": 0.8,
}


@dataclass(frozen=True)
class PopulationConfig:
    """Size and ability center of the synthetic population."""

    size: int = 20
    default_center: float = 0.7
    grade_bands: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_GRADE_BANDS))


@dataclass(frozen=True)
class SimulationConfig:
    fatigue_step: float = 0.02
    fatigue_penalty: float = 0.3


@dataclass(frozen=True)
class DetectionConfig:
    min_confusion_run: int = 2
    detect_time_clusters: bool = False


@dataclass(frozen=True)
class SeverityConfig:
    # "subset" re-derives thresholds on the cluster's own problems;
    # "population" normalizes against the whole confusion series.
    baseline: str = "subset"


@dataclass(frozen=True)
class ChartConfig:
    width: int = 800
    height: int = 300
    padding: int = 40
    sampled_learners: int = 5


@dataclass(frozen=True)
class DiagnosticsConfig:
    """Top-level configuration for one diagnostic run."""

    seed: Optional[int] = 42
    population: PopulationConfig = field(default_factory=PopulationConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    severity: SeverityConfig = field(default_factory=SeverityConfig)
    charts: ChartConfig = field(default_factory=ChartConfig)


_SECTIONS = {
    "population": PopulationConfig,
    "simulation": SimulationConfig,
    "detection": DetectionConfig,
    "severity": SeverityConfig,
    "charts": ChartConfig,
}

SEVERITY_BASELINES = ("subset", "population")


def config_from_dict(cfg: Optional[Mapping[str, Any]]) -> DiagnosticsConfig:
    """Build a DiagnosticsConfig, using defaults for any missing section."""

    cfg = dict(cfg or {})
    unknown = set(cfg) - set(_SECTIONS) - {"seed"}
    if unknown:
        raise ValueError(f"Unknown config sections: {', '.join(sorted(unknown))}")

    sections: Dict[str, Any] = {}
    for name, section_cls in _SECTIONS.items():
        values = cfg.get(name) or {}
        allowed = {f.name for f in fields(section_cls)}
        extra = set(values) - allowed
        if extra:
            raise ValueError(f"Unknown keys in '{name}' config: {', '.join(sorted(extra))}")
        sections[name] = section_cls(**values)

    if sections["severity"].baseline not in SEVERITY_BASELINES:
        raise ValueError(
            f"Unsupported severity baseline '{sections['severity'].baseline}'. "
            f"Expected one of: {', '.join(SEVERITY_BASELINES)}."
        )
    if sections["population"].size < 0:
        raise ValueError("population.size must be non-negative")

    seed = cfg.get("seed", DiagnosticsConfig.seed)
    return DiagnosticsConfig(seed=None if seed is None else int(seed), **sections)


def load_config(config_path: Optional[Path]) -> DiagnosticsConfig:
    """Load a YAML config file; None yields the defaults."""

    if config_path is None:
        return DiagnosticsConfig()
    with open(config_path) as f:
        cfg = yaml.safe_load(f)
    return config_from_dict(cfg)
