from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


@dataclass
class FoodConfig:
    max_food: int = 100
    spawn_interval: float = 2.0
    max_age: float = 30.0
    radius: float = 3.0


@dataclass
class NeedsConfig:
    starvation_damage_per_second: float = 5.0
    health_regen_per_second: float = 2.0
    wander_time_min: float = 5.0
    wander_time_jitter: float = 5.0
    wander_margin: float = 50.0


@dataclass
class BehaviorConfig:
    proximity_radius: float = 10.0
    courting_radius: float = 150.0
    arrival_radius: float = 20.0
    tired_speed_factor: float = 0.6
    starving_speed_factor: float = 0.4
    rest_damping: float = 0.95
    rest_recovery_per_second: float = 30.0
    feed_hunger_relief: float = 50.0
    feed_energy_gain: float = 20.0
    mating_horniness_cost: float = 60.0
    mating_cooldown: float = 20.0
    mating_energy_cost: float = 10.0
    birth_jitter: float = 10.0
    # Floor-clamp hunger, horniness and mating energy right away instead of on the next needs update.
    eager_need_clamp: bool = False


@dataclass
class EvolutionConfig:
    mutation_rate: float = 0.1
    offspring_hunger: float = 30.0
    offspring_horniness: float = 0.0
    offspring_energy: float = 80.0
    offspring_health: float = 100.0
    offspring_cooldown: float = 30.0


@dataclass
class FounderConfig:
    hunger_resistance: tuple[float, float] = (0.3, 1.0)
    libido_strength: tuple[float, float] = (0.2, 1.0)
    energy_efficiency: tuple[float, float] = (0.4, 1.0)
    longevity: tuple[float, float] = (0.5, 1.0)
    hunger: tuple[float, float] = (0.0, 50.0)
    horniness: tuple[float, float] = (0.0, 40.0)
    energy: tuple[float, float] = (50.0, 100.0)
    speed: tuple[float, float] = (50.0, 150.0)


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    initial_population: int = 20
    max_population: int = 200
    world_width: float = 800.0
    world_height: float = 600.0
    agent_radius: float = 5.0
    corpse_grace: float = 5.0
    seed: int = 42
    config_version: str = "v1"
    food: FoodConfig = field(default_factory=FoodConfig)
    needs: NeedsConfig = field(default_factory=NeedsConfig)
    behavior: BehaviorConfig = field(default_factory=BehaviorConfig)
    evolution: EvolutionConfig = field(default_factory=EvolutionConfig)
    founder: FounderConfig = field(default_factory=FounderConfig)

    def __post_init__(self) -> None:
        if self.initial_population > self.max_population:
            raise ValueError(
                f"initial_population {self.initial_population} exceeds max_population {self.max_population}"
            )

    @property
    def bounds(self) -> tuple[float, float]:
        return (self.world_width, self.world_height)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        logger.info("Loaded simulation config from %s", path)
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


_SECTIONS = {"food", "needs", "behavior", "evolution", "founder"}


def load_config(raw: dict) -> SimulationConfig:
    default_founder = FounderConfig()
    founder_raw = raw.get("founder", {})

    def _pair(name: str, value: tuple[float, float] | list[float] | None, default: tuple[float, float]) -> tuple[float, float]:
        if value is None:
            return default
        if isinstance(value, (tuple, list)) and len(value) == 2:
            low, high = float(value[0]), float(value[1])
            if high < low:
                raise ValueError(f"founder.{name} range is inverted: {value!r}")
            return (low, high)
        raise ValueError(f"founder.{name} must be a [low, high] pair, got {value!r}")

    founder = FounderConfig(
        **{
            name: _pair(name, founder_raw.get(name), getattr(default_founder, name))
            for name in (
                "hunger_resistance",
                "libido_strength",
                "energy_efficiency",
                "longevity",
                "hunger",
                "horniness",
                "energy",
                "speed",
            )
        }
    )
    unknown_founder = set(founder_raw) - set(founder.__dataclass_fields__)
    if unknown_founder:
        raise ValueError(f"Unknown founder keys: {sorted(unknown_founder)}")
    food = FoodConfig(**raw.get("food", {}))
    needs = NeedsConfig(**raw.get("needs", {}))
    behavior = BehaviorConfig(**raw.get("behavior", {}))
    evolution = EvolutionConfig(**raw.get("evolution", {}))
    sim_values = {k: v for k, v in raw.items() if k not in _SECTIONS}
    return SimulationConfig(
        food=food,
        needs=needs,
        behavior=behavior,
        evolution=evolution,
        founder=founder,
        **sim_values,
    )
