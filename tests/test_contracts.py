# ABOUTME: Tests problem-record contracts, output envelope checks, and problem file loading.
# ABOUTME: Uses the bundled sample problems plus deliberately broken records.

import json
from dataclasses import replace
from pathlib import Path

import pytest
import yaml

from src.assessment_sim.contracts import (
    ContractViolationError,
    ensure_valid_problems,
    validate_output,
    validate_problems,
)
from src.assessment_sim.datasets import load_problems
from src.assessment_sim.engine import fallback_output
from src.common.schemas import BloomLevel, OutputMetadata, Problem

SAMPLE_PROBLEMS = Path(__file__).resolve().parent.parent / "configs" / "sample_problems.json"


def _record(**overrides):
    record = {
        "problem_id": "P1",
        "bloom_level": "Apply",
        "linguistic_complexity": 0.4,
        "estimated_minutes": 5,
        "reasoning_steps": 2,
        "complexity_level": 3,
    }
    record.update(overrides)
    return record


def test_sample_problems_satisfy_contract():
    with open(SAMPLE_PROBLEMS) as f:
        records = json.load(f)
    assert validate_problems(records) == []


def test_validate_problems_reports_each_violation():
    records = [
        _record(),
        _record(),
        _record(problem_id="P2", bloom_level="Synthesize"),
        _record(problem_id="P3", linguistic_complexity=1.5),
        _record(problem_id="P4", complexity_level=0),
        _record(problem_id="P5", estimated_minutes=-1),
        _record(problem_id="P6", reasoning_steps="many"),
        {"bloom_level": "Remember"},
    ]

    violations = validate_problems(records)

    found = {(v.location, v.field) for v in violations}
    assert ("problems[1]", "problem_id") in found
    assert ("problems[2]", "bloom_level") in found
    assert ("problems[3]", "linguistic_complexity") in found
    assert ("problems[4]", "complexity_level") in found
    assert ("problems[5]", "estimated_minutes") in found
    assert ("problems[6]", "reasoning_steps") in found
    assert ("problems[7]", "problem_id") in found
    assert len(violations) == 7


def test_bloom_level_is_case_insensitive():
    assert validate_problems([_record(bloom_level="analyze"), _record(problem_id="P2", bloom_level="CREATE")]) == []


def test_problem_objects_are_validated_too():
    problems = [Problem(problem_id="A", bloom_level=BloomLevel.APPLY, complexity_level=9)]
    assert [v.field for v in validate_problems(problems)] == ["complexity_level"]


def test_ensure_valid_problems_raises_value_error():
    with pytest.raises(ContractViolationError) as exc_info:
        ensure_valid_problems([_record(bloom_level="Guess")])

    assert isinstance(exc_info.value, ValueError)
    assert len(exc_info.value.violations) == 1
    assert "bloom_level" in str(exc_info.value)


def test_validate_output_accepts_fallback():
    assert validate_output(fallback_output()) == []


def test_validate_output_flags_missing_charts_and_bad_metadata():
    output = fallback_output()
    charts = dict(output.visualizations)
    del charts["fatigue_curve"]
    broken = replace(
        output,
        visualizations=charts,
        metadata=OutputMetadata(predicted_total_time=0, time_target_delta=0.0, overall_risk_level="extreme", cluster_count=-1),
    )

    fields = {v.field for v in validate_output(broken)}

    assert fields == {"fatigue_curve", "overall_risk_level", "cluster_count"}


def test_load_problems_preserves_order():
    problems = load_problems(SAMPLE_PROBLEMS)

    assert [p.problem_id for p in problems][:3] == ["S1_P1", "S1_P2", "S1_P3"]
    assert problems[0].bloom_level == BloomLevel.REMEMBER
    assert problems[3].section_id == "S2"


def test_load_problems_from_yaml_mapping(tmp_path):
    path = tmp_path / "problems.yaml"
    path.write_text(yaml.safe_dump({"problems": [_record(), _record(problem_id="P2", bloom_level="Create")]}))

    problems = load_problems(path)

    assert [p.bloom_level for p in problems] == [BloomLevel.APPLY, BloomLevel.CREATE]


def test_load_problems_rejects_bad_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_problems(tmp_path / "missing.json")

    scalar = tmp_path / "scalar.json"
    scalar.write_text("42")
    with pytest.raises(ValueError):
        load_problems(scalar)

    invalid = tmp_path / "invalid.json"
    invalid.write_text(json.dumps([_record(linguistic_complexity=2.0)]))
    with pytest.raises(ContractViolationError):
        load_problems(invalid)
