from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Optional

from .agent import BOUNCE_COLOR, Agent
from .config import SimulationConfig
from .food import Food
from .genome import sample_founder
from .rng import DeterministicRng
from ..systems import behavior, foraging, metrics as metrics_system, movement, needs
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import _from_heading

logger = logging.getLogger(__name__)


class World:
    """Population arena plus food pool, advanced one tick at a time.

    Agents live in a plain list and are addressed by index during a tick; one
    agent's turn may change another agent's fields and later agents in the same
    pass see those changes. Offspring are buffered and only join the arena
    after the pass, so they are never visited in the tick they are born.
    """

    def __init__(self, config: SimulationConfig):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._agents: List[Agent] = []
        self._food: List[Food] = []
        self._birth_queue: List[Agent] = []
        self._food_spawn_timer = 0.0
        self._next_id = 0
        self._next_food_id = 0
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    @property
    def food(self) -> List[Food]:
        return self._food

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def live_agents(self) -> List[Agent]:
        return [agent for agent in self._agents if agent.alive]

    def reset(self) -> None:
        self._agents.clear()
        self._food.clear()
        self._birth_queue.clear()
        self._rng.reset()
        self._food_spawn_timer = 0.0
        self._next_id = 0
        self._next_food_id = 0
        self._metrics = None
        self._bootstrap_population()

    def initialize_population(self, count: int) -> List[Agent]:
        """Add ``count`` founders with randomised genomes and needs."""
        if len(self._agents) + count > self._config.max_population:
            raise ValueError(
                f"{count} founders would exceed max_population {self._config.max_population}"
            )
        founders = [self._spawn_founder() for _ in range(count)]
        self._agents.extend(founders)
        return founders

    def step(self, tick: int, dt: Optional[float] = None) -> TickMetrics:
        start = perf_counter()
        config = self._config
        if dt is None:
            dt = config.time_step

        foraging.tick_food_spawner(self, dt)
        foraging.age_food(self, dt)

        agents = self._agents
        pending = self._birth_queue
        pending.clear()
        births = 0
        discarded = 0
        deaths = 0
        # agents is not resized during the pass; births wait in the queue
        for index in range(len(agents)):
            agent = agents[index]
            if not agent.alive:
                agent.time_since_death += dt
                continue
            needs.update_needs(self, agent, dt)
            if not agent.alive:
                deaths += 1
                continue
            agent.color = behavior.decide_color(agent)
            child = behavior.behave(self, index, dt)
            if child is None:
                continue
            if len(agents) + len(pending) < config.max_population:
                pending.append(child)
                births += 1
            else:
                discarded += 1
                logger.debug("population cap %d reached, discarding offspring %d", config.max_population, child.id)

        for agent in agents:
            if agent.alive:
                movement.integrate(self, agent, dt)

        self._apply_births()
        removed = self._remove_dead()

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            tick, births, discarded, deaths, removed, elapsed_ms, self._population_stats()
        )
        self._metrics = metrics
        return metrics

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._snapshot_metrics_from_state(tick)
        metadata = SnapshotMetadata(
            world_width=self._config.world_width,
            world_height=self._config.world_height,
            sim_dt=self._config.time_step,
            tick_rate=0.0 if self._config.time_step <= 0 else 1.0 / self._config.time_step,
            seed=self._config.seed,
            config_version=self._config.config_version,
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            food=[self._food_snapshot(item) for item in self._food],
            world=SnapshotWorld(width=self._config.world_width, height=self._config.world_height),
            metadata=metadata,
        )

    def _bootstrap_population(self) -> None:
        self.initialize_population(self._config.initial_population)

    def _spawn_founder(self) -> Agent:
        config = self._config
        founder = config.founder
        rng = self._rng
        position = foraging.random_play_area_point(self, config.agent_radius)
        velocity = _from_heading(rng.next_angle(), self._sample(founder.speed))
        color = (rng.next_float(), rng.next_float(), rng.next_float())
        agent = Agent(
            id=self._allocate_id(),
            generation=0,
            position=position,
            velocity=velocity,
            genome=sample_founder(rng, founder),
            color=color,
            hunger=self._sample(founder.hunger),
            horniness=self._sample(founder.horniness),
            energy=self._sample(founder.energy),
            health=100.0,
            reproduction_cooldown=0.0,
        )
        needs.set_random_wander_target(self, agent)
        return agent

    def _sample(self, bounds: tuple[float, float]) -> float:
        low, high = bounds
        return low + self._rng.next_float() * (high - low)

    def _allocate_id(self) -> int:
        agent_id = self._next_id
        self._next_id += 1
        return agent_id

    def _allocate_food_id(self) -> int:
        food_id = self._next_food_id
        self._next_food_id += 1
        return food_id

    def _apply_births(self) -> None:
        for agent in self._birth_queue:
            self._agents.append(agent)
        self._birth_queue.clear()

    def _remove_dead(self) -> int:
        grace = self._config.corpse_grace
        survivors = []
        for agent in self._agents:
            if not agent.alive and (
                agent.age > agent.max_age + grace or agent.time_since_death > grace
            ):
                logger.debug("removing agent %d after %.2f dead", agent.id, agent.time_since_death)
                continue
            survivors.append(agent)
        removed = len(self._agents) - len(survivors)
        self._agents[:] = survivors
        return removed

    def _render_radius(self, agent: Agent) -> float:
        return self._config.agent_radius * (0.5 + 0.5 * agent.maturity)

    def _agent_snapshot(self, agent: Agent) -> Dict[str, Any]:
        color = BOUNCE_COLOR if agent.bounced and agent.alive else agent.color
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "radius": self._render_radius(agent),
            "color": list(color),
            "behavior_state": agent.state.value,
            "is_alive": agent.alive,
            "bounced": agent.bounced,
            "age": agent.age,
            "max_age": agent.max_age,
            "maturity": agent.maturity,
            "generation": agent.generation,
            "hunger": agent.hunger,
            "horniness": agent.horniness,
            "energy": agent.energy,
            "health": agent.health,
        }

    def _food_snapshot(self, item: Food) -> Dict[str, Any]:
        return {
            "id": item.id,
            "x": item.position.x,
            "y": item.position.y,
            "radius": self._config.food.radius,
            "intensity": item.freshness,
        }

    def _population_stats(self) -> tuple[int, int, int, float, float, float]:
        alive = 0
        energy_sum = 0.0
        hunger_sum = 0.0
        age_sum = 0.0
        for agent in self._agents:
            if not agent.alive:
                continue
            alive += 1
            energy_sum += agent.energy
            hunger_sum += agent.hunger
            age_sum += agent.age
        if alive == 0:
            return (len(self._agents), 0, len(self._food), 0.0, 0.0, 0.0)
        return (
            len(self._agents),
            alive,
            len(self._food),
            energy_sum / alive,
            hunger_sum / alive,
            age_sum / alive,
        )

    def _snapshot_metrics_from_state(self, tick: int) -> TickMetrics:
        population, alive, food, avg_energy, avg_hunger, avg_age = self._population_stats()
        return TickMetrics(
            tick=tick,
            population=population,
            alive=alive,
            births=0,
            deaths=0,
            removed=0,
            food=food,
            average_energy=avg_energy,
            average_hunger=avg_hunger,
            average_age=avg_age,
        )
