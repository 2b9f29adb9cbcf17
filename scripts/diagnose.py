# ABOUTME: Provides a CLI that runs the assessment diagnostic simulation on a problem file.
# ABOUTME: Prints ranked feedback and run metadata, and optionally exports all artifacts.

from dataclasses import replace
from pathlib import Path
from typing import Optional

import numpy as np
import typer
from rich.console import Console
from rich.table import Table

from src.assessment_sim.config import DiagnosticsConfig, load_config
from src.assessment_sim.contracts import ContractViolationError
from src.assessment_sim.datasets import load_problems
from src.assessment_sim.engine import run_pipeline
from src.assessment_sim.export import export_diagnostics
from src.assessment_sim.population import generate_population, grade_band_center
from src.common.schemas import GenerationContext

console = Console()
app = typer.Typer(help="Simulate a synthetic learner population against an assessment and rank its problem areas.")

PRIORITY_COLORS = {"high": "red", "medium": "yellow", "low": "green"}


def _load_config(config_path: Optional[Path], seed: Optional[int], population: Optional[int]) -> DiagnosticsConfig:
    if config_path is not None and not config_path.exists():
        raise typer.BadParameter(f"Config file not found at {config_path}", param_hint="--config")
    try:
        config = load_config(config_path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--config")
    if seed is not None:
        config = replace(config, seed=seed)
    if population is not None:
        if population < 0:
            raise typer.BadParameter("Population size must be non-negative", param_hint="--population")
        config = replace(config, population=replace(config.population, size=population))
    return config


@app.command()
def run(
    problems_path: Path = typer.Option(Path("configs/sample_problems.json"), "--problems", help="JSON or YAML list of problem records."),
    grade_band: str = typer.Option("", "--grade-band", help="Grade band such as 6-8, 9-10, 11-12, or college."),
    subject: str = typer.Option("general", "--subject", help="Subject of the assessment."),
    time_target: float = typer.Option(0.0, "--time-target", help="Target completion time in minutes."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the learner population (overrides config)."),
    population: Optional[int] = typer.Option(None, "--population", help="Number of synthetic learners (overrides config)."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Diagnostics config YAML path."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", help="Directory to export parquet, JSON, and SVG artifacts."),
) -> None:
    """
    Run the diagnostic simulation and print ranked feedback.
    """
    config = _load_config(config_path, seed, population)
    if not problems_path.exists():
        console.print(f"[red]Missing problem file at {problems_path}[/red]")
        raise typer.Exit(code=1)
    try:
        problems = load_problems(problems_path)
    except ContractViolationError as exc:
        console.print(f"[red]Invalid problem file {problems_path}[/red]")
        for violation in exc.violations:
            console.print(f"  {violation}")
        raise typer.Exit(code=1)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    context = GenerationContext(subject=subject, grade_band=grade_band, time_target_minutes=time_target)

    console.rule("[bold blue]Assessment Diagnostics[/bold blue]")
    console.print(f"[bold]Subject:[/] {context.subject}")
    console.print(f"[bold]Grade band:[/] {context.grade_band or 'default'}")
    console.print(f"[bold]Problems:[/] {len(problems)}")
    console.print()

    diagnostic_run = run_pipeline(problems, context, config)
    output = diagnostic_run.output
    metadata = output.metadata
    summary = diagnostic_run.class_summary

    console.print()
    console.print("[bold green]Run Summary[/bold green]")
    meta_table = Table(show_header=True, header_style="bold magenta")
    meta_table.add_column("Predicted Time (min)")
    meta_table.add_column("Target Delta")
    meta_table.add_column("Risk")
    meta_table.add_column("Clusters")
    meta_table.add_column("Avg Score")
    meta_table.add_column("At Risk")
    risk_color = PRIORITY_COLORS.get(metadata.overall_risk_level, "white")
    meta_table.add_row(
        str(metadata.predicted_total_time),
        f"{metadata.time_target_delta:+.1f}",
        f"[{risk_color}]{metadata.overall_risk_level}[/{risk_color}]",
        str(metadata.cluster_count),
        f"{summary.avg_score:.1f}",
        f"{summary.at_risk_count}/{len(diagnostic_run.summaries)}",
    )
    console.print(meta_table)

    console.print()
    console.print("[bold yellow]Ranked Feedback[/bold yellow]")
    if not output.ranked_feedback:
        console.print("[green]✅ No problem clusters detected[/green]")
    else:
        feedback_table = Table(show_header=True, header_style="bold magenta")
        feedback_table.add_column("#")
        feedback_table.add_column("Priority")
        feedback_table.add_column("Category")
        feedback_table.add_column("Severity")
        feedback_table.add_column("Problems")
        feedback_table.add_column("Recommendation")
        for rank, item in enumerate(output.ranked_feedback, start=1):
            color = PRIORITY_COLORS.get(item.priority.value, "white")
            problem_ids = ", ".join(diagnostic_run.problems[i].problem_id for i in item.affected_problems)
            feedback_table.add_row(
                str(rank),
                f"[{color}]{item.priority.value}[/{color}]",
                item.category.value,
                f"{item.severity:.2f}",
                problem_ids,
                item.recommendation,
            )
        console.print(feedback_table)

    if output_dir is not None:
        console.print()
        export_diagnostics(diagnostic_run, output_dir)


@app.command()
def population(
    grade_band: str = typer.Option("", "--grade-band", help="Grade band such as 6-8, 9-10, 11-12, or college."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the learner population (overrides config)."),
    size: Optional[int] = typer.Option(None, "--population", help="Number of synthetic learners (overrides config)."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Diagnostics config YAML path."),
) -> None:
    """
    Preview the synthetic learners a run would simulate.
    """
    config = _load_config(config_path, seed, size)
    center = grade_band_center(grade_band, bands=config.population.grade_bands, default=config.population.default_center)
    learners = generate_population(config.population.size, center, np.random.default_rng(config.seed))

    console.print(f"[bold]Ability center:[/] {center:.2f}")
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Learner")
    table.add_column("Name")
    table.add_column("Reading")
    table.add_column("Reasoning")
    table.add_column("Confidence")
    table.add_column("Overlays")
    for learner in learners:
        table.add_row(
            learner.learner_id,
            learner.display_name,
            f"{learner.reading_level:.2f}",
            f"{learner.reasoning_level:.2f}",
            f"{learner.confidence:.2f}",
            ", ".join(o.value for o in learner.overlays) or "-",
        )
    console.print(table)


if __name__ == "__main__":
    app()
