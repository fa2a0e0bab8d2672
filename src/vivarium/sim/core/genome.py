"""Heritable traits and the need thresholds and rates derived from them.

Everything here is pure: a :class:`Genome` never changes after an agent is
created, and :func:`derive` is evaluated exactly once per agent so the
resulting :class:`DerivedValues` can be cached on the entity.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple

from ..utils.math2d import _clamp_value

if TYPE_CHECKING:
    from .config import FounderConfig
    from .rng import DeterministicRng

Color = Tuple[float, float, float]


@dataclass(frozen=True, slots=True)
class Genome:
    hunger_resistance: float
    libido_strength: float
    energy_efficiency: float
    longevity: float


@dataclass(frozen=True, slots=True)
class DerivedValues:
    hunger_threshold: float
    horniness_threshold: float
    tiredness_threshold: float
    hunger_rate: float
    horniness_rate: float
    energy_drain_rate: float
    max_age: float
    base_speed: float


def derive(genome: Genome) -> DerivedValues:
    resistance = genome.hunger_resistance
    libido = genome.libido_strength
    efficiency = genome.energy_efficiency
    return DerivedValues(
        hunger_threshold=50.0 + resistance * 40.0,
        # higher libido lowers the threshold
        horniness_threshold=60.0 + (1.0 - libido) * 30.0,
        tiredness_threshold=20.0 + efficiency * 20.0,
        hunger_rate=5.0 + (1.0 - resistance) * 10.0,
        horniness_rate=2.0 + libido * 8.0,
        energy_drain_rate=5.0 + (1.0 - efficiency) * 8.0,
        max_age=60.0 + genome.longevity * 60.0,
        base_speed=70.0 + efficiency * 80.0,
    )


def mutate_value(value: float, rate: float, rng: DeterministicRng) -> float:
    return _clamp_value(value + rng.next_signed() * rate, 0.0, 1.0)


def inherit(first: Genome, second: Genome, rng: DeterministicRng, rate: float) -> Genome:
    """Average two parent genomes and mutate each component independently."""
    return Genome(
        hunger_resistance=mutate_value((first.hunger_resistance + second.hunger_resistance) * 0.5, rate, rng),
        libido_strength=mutate_value((first.libido_strength + second.libido_strength) * 0.5, rate, rng),
        energy_efficiency=mutate_value((first.energy_efficiency + second.energy_efficiency) * 0.5, rate, rng),
        longevity=mutate_value((first.longevity + second.longevity) * 0.5, rate, rng),
    )


def blend_color(first: Color, second: Color, rng: DeterministicRng, rate: float) -> Color:
    return (
        mutate_value((first[0] + second[0]) * 0.5, rate, rng),
        mutate_value((first[1] + second[1]) * 0.5, rate, rng),
        mutate_value((first[2] + second[2]) * 0.5, rate, rng),
    )


def sample_founder(rng: DeterministicRng, ranges: FounderConfig) -> Genome:
    return Genome(
        hunger_resistance=_sample_range(rng, ranges.hunger_resistance),
        libido_strength=_sample_range(rng, ranges.libido_strength),
        energy_efficiency=_sample_range(rng, ranges.energy_efficiency),
        longevity=_sample_range(rng, ranges.longevity),
    )


def _sample_range(rng: DeterministicRng, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return low + rng.next_float() * (high - low)
