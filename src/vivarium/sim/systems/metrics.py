from __future__ import annotations

from typing import Tuple

from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    births: int,
    discarded_births: int,
    deaths: int,
    removed: int,
    duration_ms: float,
    stats: Tuple[int, int, int, float, float, float],
) -> TickMetrics:
    population, alive, food, avg_energy, avg_hunger, avg_age = stats
    return TickMetrics(
        tick=tick,
        population=population,
        alive=alive,
        births=births,
        deaths=deaths,
        removed=removed,
        food=food,
        average_energy=avg_energy,
        average_hunger=avg_hunger,
        average_age=avg_age,
        discarded_births=discarded_births,
        tick_duration_ms=duration_ms,
    )
