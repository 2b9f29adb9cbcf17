# ABOUTME: Validates problem records on the way in and output envelopes on the way out.
# ABOUTME: Collects every violation so callers see the whole list at once.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence, Union

from src.common.schemas import BloomLevel, EngineOutput, FeedbackCategory, Level, Priority, Problem

from .charts import CHART_NAMES

MIN_COMPLEXITY = 1
MAX_COMPLEXITY = 5


@dataclass(frozen=True)
class ContractViolation:
    location: str
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}.{self.field}: {self.message}"


class ContractViolationError(ValueError):
    """Raised when input records break the problem contract."""

    def __init__(self, violations: Sequence[ContractViolation]):
        self.violations = list(violations)
        summary = "; ".join(str(v) for v in self.violations[:5])
        more = len(self.violations) - 5
        if more > 0:
            summary += f"; ... and {more} more"
        super().__init__(f"{len(self.violations)} contract violation(s): {summary}")


def _as_mapping(problem: Union[Problem, Mapping[str, Any]]) -> Mapping[str, Any]:
    if isinstance(problem, Problem):
        return {
            "problem_id": problem.problem_id,
            "bloom_level": problem.bloom_level,
            "linguistic_complexity": problem.linguistic_complexity,
            "estimated_minutes": problem.estimated_minutes,
            "reasoning_steps": problem.reasoning_steps,
            "complexity_level": problem.complexity_level,
        }
    return problem


def validate_problems(problems: Sequence[Union[Problem, Mapping[str, Any]]]) -> List[ContractViolation]:
    """Check ids, Bloom levels, and numeric ranges for every record."""

    violations: List[ContractViolation] = []
    seen = set()
    for idx, raw in enumerate(problems):
        record = _as_mapping(raw)
        pid = record.get("problem_id")
        location = f"problems[{idx}]"

        if not pid:
            violations.append(ContractViolation(location, "problem_id", "missing"))
        elif pid in seen:
            violations.append(ContractViolation(location, "problem_id", f"duplicate id '{pid}'"))
        else:
            seen.add(pid)

        level = record.get("bloom_level")
        if isinstance(level, BloomLevel):
            pass
        elif level is None:
            violations.append(ContractViolation(location, "bloom_level", "missing"))
        else:
            try:
                BloomLevel.parse(str(level))
            except ValueError:
                violations.append(ContractViolation(location, "bloom_level", f"unknown level '{level}'"))

        violations.extend(_check_number(record, location, "linguistic_complexity", 0.0, 1.0))
        violations.extend(_check_number(record, location, "estimated_minutes", 0.0, None))
        violations.extend(_check_number(record, location, "reasoning_steps", 0, None))
        violations.extend(_check_number(record, location, "complexity_level", MIN_COMPLEXITY, MAX_COMPLEXITY))
    return violations


def _check_number(record: Mapping[str, Any], location: str, name: str, low, high) -> List[ContractViolation]:
    if record.get(name) is None:
        return []
    value = record[name]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return [ContractViolation(location, name, f"expected a number, got {value!r}")]
    if value < low or (high is not None and value > high):
        bound = f"[{low}, {high}]" if high is not None else f">= {low}"
        return [ContractViolation(location, name, f"{value} outside {bound}")]
    return []


def ensure_valid_problems(problems: Sequence[Union[Problem, Mapping[str, Any]]]) -> None:
    violations = validate_problems(problems)
    if violations:
        raise ContractViolationError(violations)


def validate_output(output: EngineOutput) -> List[ContractViolation]:
    """Structural checks on an output envelope before it leaves the engine."""

    violations: List[ContractViolation] = []
    for name in CHART_NAMES:
        artifact = output.visualizations.get(name)
        if not artifact:
            violations.append(ContractViolation("visualizations", name, "missing or empty"))

    for idx, item in enumerate(output.ranked_feedback):
        location = f"ranked_feedback[{idx}]"
        if item.priority not in set(Priority):
            violations.append(ContractViolation(location, "priority", f"unknown priority '{item.priority}'"))
        if item.category not in set(FeedbackCategory):
            violations.append(ContractViolation(location, "category", f"unknown category '{item.category}'"))
        if not item.recommendation:
            violations.append(ContractViolation(location, "recommendation", "empty"))

    metadata = output.metadata
    if metadata.overall_risk_level not in {level.value for level in Level}:
        violations.append(
            ContractViolation("metadata", "overall_risk_level", f"unknown level '{metadata.overall_risk_level}'")
        )
    if metadata.cluster_count < 0:
        violations.append(ContractViolation("metadata", "cluster_count", "must be non-negative"))
    return violations
