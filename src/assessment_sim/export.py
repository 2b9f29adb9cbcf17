# ABOUTME: Writes diagnostic run artifacts to disk for reports and demos.
# ABOUTME: Produces parquet tables, the JSON output envelope, and one SVG per chart.

import json
from pathlib import Path
from typing import Dict

from .aggregation import metrics_frame, outcomes_frame
from .engine import DiagnosticRun
from .svg import render_svg


def export_diagnostics(run: DiagnosticRun, output_dir: Path) -> Dict[str, Path]:
    """
    Export a diagnostic run.

    Args:
        run: Result of run_pipeline()
        output_dir: Directory to write output artifacts

    Returns:
        Mapping of artifact name to the path it was written to
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written: Dict[str, Path] = {}

    outcomes_df = outcomes_frame(run.summaries)
    outcomes_path = output_dir / "learner_outcomes.parquet"
    outcomes_df.to_parquet(outcomes_path, index=False)
    written["learner_outcomes"] = outcomes_path
    print(f"✅ Exported {len(outcomes_df)} learner outcomes to {outcomes_path}")
    print(f"   Unique learners: {outcomes_df['learner_id'].nunique()}")

    metrics_df = metrics_frame(run.metrics)
    metrics_path = output_dir / "problem_metrics.parquet"
    metrics_df.to_parquet(metrics_path, index=False)
    written["problem_metrics"] = metrics_path
    print(f"✅ Exported {len(metrics_df)} problem metrics to {metrics_path}")

    envelope_path = output_dir / "diagnostics.json"
    with open(envelope_path, "w") as f:
        json.dump(run.output.to_dict(), f, indent=2)
    written["diagnostics"] = envelope_path
    print(f"✅ Exported {len(run.output.ranked_feedback)} feedback items to {envelope_path}")

    charts_dir = output_dir / "charts"
    charts_dir.mkdir(parents=True, exist_ok=True)
    for name, artifact in run.output.visualizations.items():
        chart_path = charts_dir / f"{name}.svg"
        chart_path.write_text(render_svg(artifact))
        written[name] = chart_path
    print(f"✅ Exported {len(run.output.visualizations)} charts to {charts_dir}")

    return written
