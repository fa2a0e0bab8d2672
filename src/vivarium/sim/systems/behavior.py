from __future__ import annotations

import logging
from typing import List, Optional, TYPE_CHECKING

from pygame.math import Vector2

from ..core.agent import (
    DEAD_COLOR,
    HORNY_COLOR,
    HUNGRY_COLOR,
    IDLE_COLOR,
    NEED_MAX,
    STARVING_COLOR,
    TIRED_COLOR,
    Agent,
    AgentState,
)
from ..core.food import Food
from ..core.genome import Color, blend_color, inherit
from ..utils.math2d import _distance, _from_heading, _midpoint, _safe_normalize_xy
from .needs import set_random_wander_target

if TYPE_CHECKING:
    from ..core.world import World

logger = logging.getLogger(__name__)


def decide_color(agent: Agent) -> Color:
    if not agent.alive:
        return DEAD_COLOR
    if agent.is_starving:
        return STARVING_COLOR
    if agent.is_hungry:
        return HUNGRY_COLOR
    if agent.is_tired:
        return TIRED_COLOR
    if agent.is_horny and agent.is_mature:
        return HORNY_COLOR
    return IDLE_COLOR


def classify(agent: Agent) -> AgentState:
    if not agent.alive:
        return AgentState.DEAD
    if agent.is_hungry:
        return AgentState.HUNGRY
    if agent.is_tired:
        return AgentState.TIRED
    if agent.is_horny and agent.is_mature:
        return AgentState.HORNY
    return AgentState.IDLE


def behave(world: World, index: int, dt: float) -> Optional[Agent]:
    """Run exactly one behaviour branch for ``world.agents[index]``.

    Priority is hunger, then tiredness, then horniness, then wandering. Feeding
    and mating are applied immediately, so agents later in the same pass see
    the eaten food and the mate's spent horniness and cooldown. Returns the
    offspring when a mating completes, otherwise ``None``.
    """
    agent = world.agents[index]
    if not agent.alive:
        return None
    behavior = world._config.behavior
    state = classify(agent)
    agent.state = state

    if state is AgentState.HUNGRY:
        food = find_nearest_food(agent, world.food)
        if food is None:
            wander(world, agent)
            return None
        seek(world, agent, food.position)
        if _distance(agent.position, food.position) < behavior.proximity_radius:
            food.eaten = True
            agent.hunger -= behavior.feed_hunger_relief
            agent.energy += behavior.feed_energy_gain
            if behavior.eager_need_clamp:
                agent.hunger = max(0.0, agent.hunger)
        return None

    if state is AgentState.TIRED:
        agent.velocity *= behavior.rest_damping
        agent.energy = min(NEED_MAX, agent.energy + behavior.rest_recovery_per_second * dt)
        return None

    if state is AgentState.HORNY:
        mate_index = find_mate(world, index)
        if mate_index is None:
            wander(world, agent)
            return None
        mate = world.agents[mate_index]
        seek(world, agent, mate.position)
        if _distance(agent.position, mate.position) >= behavior.proximity_radius:
            return None
        for parent in (agent, mate):
            parent.horniness -= behavior.mating_horniness_cost
            if behavior.eager_need_clamp:
                parent.horniness = max(0.0, parent.horniness)
            parent.reproduction_cooldown = behavior.mating_cooldown
        child = spawn_offspring(world, agent, mate)
        for parent in (agent, mate):
            parent.energy -= behavior.mating_energy_cost
            if behavior.eager_need_clamp:
                parent.energy = max(0.0, parent.energy)
        return child

    wander(world, agent)
    return None


def seek(world: World, agent: Agent, target: Vector2) -> None:
    behavior = world._config.behavior
    direction = _safe_normalize_xy(target.x - agent.position.x, target.y - agent.position.y)
    speed = agent.derived.base_speed
    if agent.is_tired:
        speed *= behavior.tired_speed_factor
    if agent.is_starving:
        speed *= behavior.starving_speed_factor
    agent.velocity = direction * speed


def wander(world: World, agent: Agent) -> None:
    if _distance(agent.position, agent.wander_target) < world._config.behavior.arrival_radius:
        set_random_wander_target(world, agent)
    else:
        seek(world, agent, agent.wander_target)


def find_nearest_food(agent: Agent, food: List[Food]) -> Optional[Food]:
    nearest = None
    closest = float("inf")
    for item in food:
        if item.eaten:
            continue
        dist = _distance(agent.position, item.position)
        if dist < closest:
            closest = dist
            nearest = item
    return nearest


def find_mate(world: World, index: int) -> Optional[int]:
    """Index of the first live, mature, horny agent inside the courting radius."""
    agent = world.agents[index]
    courting_radius = world._config.behavior.courting_radius
    for other_index, other in enumerate(world.agents):
        if other_index == index or not other.alive:
            continue
        if (
            other.is_horny
            and other.is_mature
            and _distance(agent.position, other.position) < courting_radius
        ):
            return other_index
    return None


def spawn_offspring(world: World, first: Agent, second: Agent) -> Agent:
    config = world._config
    evolution = config.evolution
    jitter = config.behavior.birth_jitter
    rng = world._rng
    center = _midpoint(first.position, second.position)
    position = Vector2(
        center.x + rng.next_signed() * jitter,
        center.y + rng.next_signed() * jitter,
    )
    genome = inherit(first.genome, second.genome, rng, evolution.mutation_rate)
    child = Agent(
        id=world._allocate_id(),
        generation=max(first.generation, second.generation) + 1,
        position=position,
        velocity=Vector2(),
        genome=genome,
        energy=evolution.offspring_energy,
        health=evolution.offspring_health,
        hunger=evolution.offspring_hunger,
        horniness=evolution.offspring_horniness,
        reproduction_cooldown=evolution.offspring_cooldown,
    )
    child.velocity = _from_heading(rng.next_angle(), child.derived.base_speed)
    child.color = blend_color(first.color, second.color, rng, evolution.mutation_rate)
    set_random_wander_target(world, child)
    logger.debug(
        "agent %d born to %d and %d (generation %d)", child.id, first.id, second.id, child.generation
    )
    return child
