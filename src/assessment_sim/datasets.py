# ABOUTME: Loads ordered problem records from JSON or YAML files.
# ABOUTME: Validates every record against the problem contract before building Problems.

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Mapping, Sequence

import yaml

from src.common.schemas import Problem

from .contracts import ensure_valid_problems


def problems_from_records(records: Sequence[Mapping[str, Any]]) -> List[Problem]:
    ensure_valid_problems(records)
    return [Problem.from_dict(record) for record in records]


def load_problems(path: Path) -> List[Problem]:
    """
    Read a problem list from disk, preserving file order.

    Accepts either a bare list of records or a mapping with a "problems" key.
    Files ending in .yaml/.yml are parsed with yaml.safe_load, everything
    else as JSON.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Problem file not found at {path}")

    with open(path) as f:
        if path.suffix.lower() in (".yaml", ".yml"):
            payload = yaml.safe_load(f)
        else:
            payload = json.load(f)

    if isinstance(payload, Mapping):
        payload = payload.get("problems", [])
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of problem records in {path}, got {type(payload).__name__}")
    return problems_from_records(payload)
