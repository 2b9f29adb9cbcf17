# ABOUTME: Builds JSON-ready chart artifacts from aggregated simulation results.
# ABOUTME: Six pure renderers plus a labeled placeholder for empty inputs.

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from src.common.schemas import LearnerSummary, ProblemMetrics
from src.common.stats import mean

from .config import ChartConfig

CHART_NAMES = (
    "pacing_chart",
    "confusion_heatmap",
    "engagement_trend",
    "bloom_mismatch_chart",
    "fatigue_curve",
    "success_distribution",
)

CHART_TITLES = {
    "pacing_chart": "Pacing vs Target",
    "confusion_heatmap": "Confusion Heatmap by Problem",
    "engagement_trend": "Engagement Trajectory",
    "bloom_mismatch_chart": "Bloom Level Mismatch",
    "fatigue_curve": "Fatigue Accumulation",
    "success_distribution": "Success Rate by Problem",
}

PACING_COLOR = "#2563eb"
RED = "#ef4444"
AMBER = "#f59e0b"
YELLOW = "#fbbf24"
GREEN = "#10b981"
FATIGUE_COLORS = ("#ef4444", "#8b5cf6", "#0ea5e9", "#f97316", "#14b8a6", "#64748b")

COHORT_COLORS = {"all": AMBER, "at-risk": RED, "on-track": GREEN}
TRAJECTORY_X = (0.25, 0.5, 0.75)


def _r(value: float) -> float:
    return round(float(value), 2)


def _artifact(
    name: str,
    kind: str,
    x_label: str,
    y_label: str,
    data: Dict[str, Any],
    config: ChartConfig,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "chart": name,
        "kind": kind,
        "title": CHART_TITLES[name],
        "x_label": x_label,
        "y_label": y_label,
        "width": config.width,
        "height": config.height,
        "padding": config.padding,
        "data": data,
        "metadata": {"placeholder": False, **(metadata or {})},
    }


def placeholder_chart(name: str, config: Optional[ChartConfig] = None, message: str = "No data available") -> Dict[str, Any]:
    """Labeled stand-in used whenever a chart has nothing to plot."""

    config = config or ChartConfig()
    return {
        "chart": name,
        "kind": "placeholder",
        "title": CHART_TITLES.get(name, name),
        "x_label": "",
        "y_label": "",
        "width": config.width,
        "height": config.height,
        "padding": config.padding,
        "data": {"message": message},
        "metadata": {"placeholder": True},
    }


def _plot_area(config: ChartConfig):
    return config.width - 2 * config.padding, config.height - 2 * config.padding


def _bar_rects(values: Sequence[float], labels: Sequence[str], colors: Sequence[str], scale: float, config: ChartConfig):
    chart_width, chart_height = _plot_area(config)
    bar_width = chart_width / len(values)
    rects = []
    for i, (value, label, color) in enumerate(zip(values, labels, colors)):
        bar_height = (value / scale) * chart_height
        rects.append(
            {
                "label": label,
                "value": _r(value),
                "x": _r(config.padding + i * bar_width),
                "y": _r(config.height - config.padding - bar_height),
                "width": _r(bar_width - 2),
                "height": _r(bar_height),
                "color": color,
            }
        )
    return rects


def pacing_chart(metrics: Sequence[ProblemMetrics], config: Optional[ChartConfig] = None) -> Dict[str, Any]:
    """Mean simulated time per problem, scaled to the slowest problem."""

    config = config or ChartConfig()
    if not metrics:
        return placeholder_chart("pacing_chart", config)

    chart_width, chart_height = _plot_area(config)
    max_time = max(m.avg_time for m in metrics) or 1.0
    points = [
        {
            "x": _r(config.padding + (i / len(metrics)) * chart_width),
            "y": _r(config.height - config.padding - (m.avg_time / max_time) * chart_height),
            "label": m.problem_id,
            "value": _r(m.avg_time),
        }
        for i, m in enumerate(metrics)
    ]
    data = {"series": [{"label": "avg_time", "color": PACING_COLOR, "markers": False, "points": points}]}
    return _artifact("pacing_chart", "line", "Problem Index", "Time (seconds)", data, config, {"max_time": _r(max_time)})


def confusion_heatmap(metrics: Sequence[ProblemMetrics], config: Optional[ChartConfig] = None) -> Dict[str, Any]:
    config = config or ChartConfig()
    if not metrics:
        return placeholder_chart("confusion_heatmap", config)

    chart_width, chart_height = _plot_area(config)
    cell_width = chart_width / len(metrics)
    cells = []
    for i, m in enumerate(metrics):
        # Green (120) at no confusion through red (0) at full confusion.
        hue = 120 - m.confusion_index * 120
        cells.append(
            {
                "label": m.problem_id,
                "value": _r(m.confusion_index),
                "x": _r(config.padding + i * cell_width),
                "y": _r(config.padding),
                "width": _r(cell_width),
                "height": _r(chart_height),
                "color": f"hsl({_r(hue)}, 100%, 50%)",
            }
        )
    return _artifact("confusion_heatmap", "heatmap", "Problem", "Confusion Index", {"rects": cells}, config)


def engagement_trend(summaries: Sequence[LearnerSummary], config: Optional[ChartConfig] = None) -> Dict[str, Any]:
    """
    Start/mid/end engagement averaged per cohort.

    Cohorts are all learners, at-risk learners and on-track learners; a
    cohort with no members is left out.
    """

    config = config or ChartConfig()
    summaries = [s for s in summaries if s.outcomes]
    if not summaries:
        return placeholder_chart("engagement_trend", config)

    chart_width, chart_height = _plot_area(config)
    cohorts = {
        "all": summaries,
        "at-risk": [s for s in summaries if s.at_risk],
        "on-track": [s for s in summaries if not s.at_risk],
    }
    series = []
    for label, members in cohorts.items():
        if not members:
            continue
        levels = (
            mean([s.engagement.initial for s in members]),
            mean([s.engagement.midpoint for s in members]),
            mean([s.engagement.final for s in members]),
        )
        points = [
            {
                "x": _r(config.padding + chart_width * fraction),
                "y": _r(config.height - config.padding - level * chart_height),
                "label": stage,
                "value": _r(level),
            }
            for fraction, level, stage in zip(TRAJECTORY_X, levels, ("Start", "Mid", "End"))
        ]
        series.append({"label": label, "color": COHORT_COLORS[label], "markers": True, "points": points, "count": len(members)})

    return _artifact("engagement_trend", "line", "Assessment Progress", "Engagement", {"series": series}, config)


def bloom_mismatch_chart(metrics: Sequence[ProblemMetrics], config: Optional[ChartConfig] = None) -> Dict[str, Any]:
    config = config or ChartConfig()
    if not metrics:
        return placeholder_chart("bloom_mismatch_chart", config)

    rates = [m.mismatch_rate for m in metrics]
    colors = [RED if rate > 0.3 else YELLOW for rate in rates]
    rects = _bar_rects(rates, [m.problem_id for m in metrics], colors, max(rates) or 1.0, config)
    return _artifact("bloom_mismatch_chart", "bar", "Problem", "Mismatch Rate", {"rects": rects}, config)


def fatigue_curve(summaries: Sequence[LearnerSummary], config: Optional[ChartConfig] = None) -> Dict[str, Any]:
    """Per-problem fatigue for the first few learners, one polyline each."""

    config = config or ChartConfig()
    sampled = [s for s in summaries if s.outcomes][: config.sampled_learners]
    if not sampled:
        return placeholder_chart("fatigue_curve", config)

    chart_width, chart_height = _plot_area(config)
    series: List[Dict[str, Any]] = []
    for idx, summary in enumerate(sampled):
        steps = max(len(summary.outcomes) - 1, 1)
        points = [
            {
                "x": _r(config.padding + (i / steps) * chart_width),
                "y": _r(config.height - config.padding - outcome.fatigue * chart_height),
                "label": outcome.problem_id,
                "value": _r(outcome.fatigue),
            }
            for i, outcome in enumerate(summary.outcomes)
        ]
        series.append(
            {
                "label": summary.display_name,
                "color": FATIGUE_COLORS[idx % len(FATIGUE_COLORS)],
                "markers": False,
                "points": points,
            }
        )
    return _artifact(
        "fatigue_curve",
        "line",
        "Problem Index",
        "Fatigue Level",
        {"series": series},
        config,
        {"sampled_learners": len(sampled)},
    )


def success_distribution(metrics: Sequence[ProblemMetrics], config: Optional[ChartConfig] = None) -> Dict[str, Any]:
    config = config or ChartConfig()
    if not metrics:
        return placeholder_chart("success_distribution", config)

    rates = [m.success_rate for m in metrics]
    colors = [GREEN if rate > 0.7 else AMBER if rate > 0.4 else RED for rate in rates]
    rects = _bar_rects(rates, [m.problem_id for m in metrics], colors, 1.0, config)
    return _artifact("success_distribution", "bar", "Problem", "Success Rate", {"rects": rects}, config)


def render_charts(
    metrics: Sequence[ProblemMetrics],
    summaries: Sequence[LearnerSummary],
    config: Optional[ChartConfig] = None,
) -> Dict[str, Dict[str, Any]]:
    """Render all six charts keyed by name, in a fixed order."""

    config = config or ChartConfig()
    return {
        "pacing_chart": pacing_chart(metrics, config),
        "confusion_heatmap": confusion_heatmap(metrics, config),
        "engagement_trend": engagement_trend(summaries, config),
        "bloom_mismatch_chart": bloom_mismatch_chart(metrics, config),
        "fatigue_curve": fatigue_curve(summaries, config),
        "success_distribution": success_distribution(metrics, config),
    }


def placeholder_charts(config: Optional[ChartConfig] = None, message: str = "No data available") -> Dict[str, Dict[str, Any]]:
    return {name: placeholder_chart(name, config, message) for name in CHART_NAMES}
