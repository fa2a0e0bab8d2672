from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    alive: int
    births: int
    deaths: int
    removed: int
    food: int
    average_energy: float
    average_hunger: float
    average_age: float
    discarded_births: int = 0
    tick_duration_ms: float = 0.0
