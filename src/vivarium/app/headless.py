from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.world import World
from .tilemap import DEFAULT_TILE_SIZE, load_map_file

logger = logging.getLogger(__name__)


_BASIC_HEADER = [
    "tick",
    "population",
    "alive",
    "births",
    "deaths",
    "removed",
    "food",
    "avg_energy",
    "avg_hunger",
    "avg_age",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "alive",
    "dead",
    "births",
    "discarded_births",
    "deaths",
    "removed",
    "food",
    "avg_energy",
    "avg_hunger",
    "avg_age",
    "tick_ms",
    "births_per_agent",
    "deaths_per_agent",
    "avg_speed",
    "avg_health",
    "avg_horniness",
    "hungry",
    "tired",
    "horny",
    "idle",
    "bounced",
    "max_generation",
    "avg_food_freshness",
]


def _format_basic_row(metrics: object, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.alive,
        metrics.births,
        metrics.deaths,
        metrics.removed,
        metrics.food,
        f"{metrics.average_energy:.4f}",
        f"{metrics.average_hunger:.4f}",
        f"{metrics.average_age:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: object, tick_ms: float) -> list[object]:
    alive = metrics.alive
    state_counts = {"Hungry": 0, "Tired": 0, "Horny": 0, "Idle": 0}
    speed_sum = 0.0
    health_sum = 0.0
    horniness_sum = 0.0
    bounced = 0
    max_generation = 0
    for agent in world.agents:
        if not agent.alive:
            continue
        speed_sum += math.hypot(agent.velocity.x, agent.velocity.y)
        health_sum += agent.health
        horniness_sum += agent.horniness
        if agent.bounced:
            bounced += 1
        if agent.generation > max_generation:
            max_generation = agent.generation
        if agent.state.value in state_counts:
            state_counts[agent.state.value] += 1

    if alive <= 0:
        births_per_agent = 0.0
        deaths_per_agent = 0.0
        avg_speed = 0.0
        avg_health = 0.0
        avg_horniness = 0.0
    else:
        births_per_agent = metrics.births / alive
        deaths_per_agent = metrics.deaths / alive
        avg_speed = speed_sum / alive
        avg_health = health_sum / alive
        avg_horniness = horniness_sum / alive

    food = world.food
    avg_freshness = sum(item.freshness for item in food) / len(food) if food else 0.0

    return [
        metrics.tick,
        metrics.population,
        alive,
        metrics.population - alive,
        metrics.births,
        metrics.discarded_births,
        metrics.deaths,
        metrics.removed,
        metrics.food,
        f"{metrics.average_energy:.4f}",
        f"{metrics.average_hunger:.4f}",
        f"{metrics.average_age:.4f}",
        f"{tick_ms:.3f}",
        f"{births_per_agent:.4f}",
        f"{deaths_per_agent:.4f}",
        f"{avg_speed:.4f}",
        f"{avg_health:.4f}",
        f"{avg_horniness:.4f}",
        state_counts["Hungry"],
        state_counts["Tired"],
        state_counts["Horny"],
        state_counts["Idle"],
        bounced,
        max_generation,
        f"{avg_freshness:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def build_config(
    seed: Optional[int] = None,
    config_path: Optional[Path] = None,
    map_path: Optional[Path] = None,
    tile_size: int = DEFAULT_TILE_SIZE,
    base: Optional[SimulationConfig] = None,
) -> SimulationConfig:
    """Resolve the run config: YAML file, else a copy of ``base``, else defaults."""
    if config_path:
        config = SimulationConfig.from_yaml(config_path)
    elif base is not None:
        config = replace(base)
    else:
        config = SimulationConfig()
    if seed is not None:
        config.seed = seed
    if map_path:
        config.world_width, config.world_height = load_map_file(map_path).play_area(tile_size)
    return config


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 1000,
    dt: Optional[float] = None,
    config: Optional[SimulationConfig] = None,
) -> World:
    if config is None:
        config = build_config(seed)
    elif seed is not None:
        config.seed = seed
    world = World(config)

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    logger.info(
        "Running %d steps (seed=%d, world=%.0fx%.0f, founders=%d)",
        steps,
        config.seed,
        config.world_width,
        config.world_height,
        config.initial_population,
    )

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    alive_series: list[int] = []
    food_series: list[int] = []
    tick_ms_series: list[float] = []
    total_births = 0
    total_deaths = 0
    peak_alive = (-1, -1)

    try:
        for tick in range(steps):
            metrics = world.step(tick, dt)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            total_births += metrics.births
            total_deaths += metrics.deaths

            if summary_path:
                alive_series.append(metrics.alive)
                food_series.append(metrics.food)
                tick_ms_series.append(tick_ms)
                if metrics.alive > peak_alive[0]:
                    peak_alive = (metrics.alive, tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    logger.info(
        "Finished: %d alive, %d births, %d deaths",
        len(world.live_agents()),
        total_births,
        total_deaths,
    )

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(alive_series) - window), len(alive_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "births": total_births,
            "deaths": total_deaths,
            "final_alive": len(world.live_agents()),
            "max_generation": max((agent.generation for agent in world.agents), default=0),
            "alive": _summary_stats([float(v) for v in alive_series]),
            "food": _summary_stats([float(v) for v in food_series]),
            "tick_ms": _summary_stats(tick_ms_series),
            "peaks": {
                "alive": {"value": peak_alive[0], "tick": peak_alive[1]},
            },
            "tail_window": {
                "window": window,
                "alive": _summary_stats([float(v) for v in alive_series[tail_slice]]),
                "food": _summary_stats([float(v) for v in food_series[tail_slice]]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless vivarium simulation")
    parser.add_argument("--steps", type=int, default=3600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--dt", type=float, default=None, help="Seconds per tick (defaults to the config time_step).")
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--map", type=Path, default=None, help="Tile map JSON that sets the play-area size")
    parser.add_argument("--tile-size", type=int, default=DEFAULT_TILE_SIZE)
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=1000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s:%(name)s:%(message)s",
    )
    config = build_config(args.seed, args.config, args.map, args.tile_size)
    run_headless(
        args.steps,
        None,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        dt=args.dt,
        config=config,
    )


if __name__ == "__main__":
    main()
