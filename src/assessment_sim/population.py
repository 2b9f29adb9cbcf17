# ABOUTME: Generates the synthetic learner population for a diagnostic run.
# ABOUTME: Samples bounded ability traits and overlay assignments from a seeded generator.

from __future__ import annotations

from typing import List, Mapping, Optional, Tuple

import numpy as np

from src.common.schemas import Overlay, SyntheticLearner
from src.common.stats import clamp

from .config import DEFAULT_GRADE_BANDS

OVERLAY_CATALOG: Tuple[Overlay, ...] = tuple(Overlay)
MAX_OVERLAYS = 3

# (trait, spread) in the order they are drawn; the order fixes the seeded stream.
TRAIT_SPREADS: Tuple[Tuple[str, float], ...] = (
    ("reading_level", 0.20),
    ("reasoning_level", 0.20),
    ("numeric_fluency", 0.20),
    ("attention_span", 0.15),
    ("confidence", 0.15),
)

PERSONA_NAMES: Tuple[str, ...] = (
    "Alex",
    "Jordan",
    "Morgan",
    "Casey",
    "Riley",
    "Quinn",
    "Avery",
    "Blake",
    "Dakota",
    "Emerson",
    "Finley",
    "Greyson",
    "Harper",
    "Isaiah",
    "Justice",
    "Keelan",
    "Lyric",
    "Mason",
    "Nova",
    "Oakley",
)


def grade_band_center(
    grade_band: Optional[str],
    bands: Optional[Mapping[str, float]] = None,
    default: float = 0.7,
) -> float:
    """Map a coarse grade band (e.g. "9-10") to a population ability center."""

    lookup = DEFAULT_GRADE_BANDS if bands is None else bands
    if not grade_band:
        return default
    return float(lookup.get(grade_band.strip(), default))


def generate_population(
    size: int = 20,
    center: float = 0.7,
    rng: Optional[np.random.Generator] = None,
) -> List[SyntheticLearner]:
    """
    Draw `size` learners whose traits scatter around `center`.

    Each trait is clamp(0, 1, center + N(0, 1) * spread). Every learner gets
    0-3 distinct overlays and a persona display name.
    """

    if size < 0:
        raise ValueError(f"Population size must be non-negative, got {size}")
    rng = rng if rng is not None else np.random.default_rng()

    learners: List[SyntheticLearner] = []
    for i in range(size):
        traits = {name: clamp(center + float(rng.normal()) * spread) for name, spread in TRAIT_SPREADS}
        overlays = _draw_overlays(rng)
        learners.append(
            SyntheticLearner(
                learner_id=f"learner_{i:03d}",
                display_name=_persona_name(rng, overlays),
                overlays=overlays,
                **traits,
            )
        )
    return learners


def _draw_overlays(rng: np.random.Generator) -> Tuple[Overlay, ...]:
    count = int(rng.integers(0, MAX_OVERLAYS + 1))
    if count == 0:
        return ()
    picks = rng.choice(len(OVERLAY_CATALOG), size=count, replace=False)
    return tuple(OVERLAY_CATALOG[int(idx)] for idx in picks)


def _persona_name(rng: np.random.Generator, overlays: Tuple[Overlay, ...]) -> str:
    name = PERSONA_NAMES[int(rng.integers(0, len(PERSONA_NAMES)))]
    tag = overlays[0].value if overlays else "standard"
    return f"{name} ({tag})"
