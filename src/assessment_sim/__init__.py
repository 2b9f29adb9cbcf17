# ABOUTME: Exposes the assessment diagnostic simulation entrypoints.
# ABOUTME: Groups population, simulation, detection, ranking, charts, and exporters.

from .config import DiagnosticsConfig, load_config
from .datasets import load_problems
from .engine import DiagnosticRun, diagnose, fallback_output, run_diagnostics, run_pipeline
from .export import export_diagnostics

__all__ = [
    "DiagnosticsConfig",
    "load_config",
    "load_problems",
    "DiagnosticRun",
    "diagnose",
    "fallback_output",
    "run_diagnostics",
    "run_pipeline",
    "export_diagnostics",
]
