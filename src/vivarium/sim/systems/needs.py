from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pygame.math import Vector2

from ..core.agent import DEAD_COLOR, NEED_MAX, Agent, AgentState

if TYPE_CHECKING:
    from ..core.world import World

logger = logging.getLogger(__name__)


def update_needs(world: World, agent: Agent, dt: float) -> None:
    """Advance one agent's age, needs and health by ``dt``.

    The steps run in a fixed order: aging (and death by old age) comes first and
    ends the update, then cooldown, need accrual, clamping, health and finally
    the wander timer. A dead agent is never touched.
    """
    if not agent.alive:
        return
    derived = agent.derived
    needs = world._config.needs

    agent.age += dt
    if agent.age >= derived.max_age:
        die(agent, "old_age")
        return

    if agent.reproduction_cooldown > 0.0:
        # left negative on purpose; anything <= 0 counts as available
        agent.reproduction_cooldown -= dt

    agent.hunger += derived.hunger_rate * dt
    if agent.is_mature:
        agent.horniness += derived.horniness_rate * dt
    agent.energy -= derived.energy_drain_rate * dt

    agent.hunger = max(0.0, min(NEED_MAX, agent.hunger))
    agent.horniness = max(0.0, min(NEED_MAX, agent.horniness))
    agent.energy = max(0.0, min(NEED_MAX, agent.energy))

    if agent.is_starving:
        agent.health -= needs.starvation_damage_per_second * dt
        if agent.health <= 0.0:
            agent.health = 0.0
            die(agent, "starvation")
            return
    elif agent.health < NEED_MAX and not agent.is_hungry:
        agent.health = min(NEED_MAX, agent.health + needs.health_regen_per_second * dt)

    agent.wander_timer -= dt
    if agent.wander_timer <= 0.0:
        set_random_wander_target(world, agent)


def set_random_wander_target(world: World, agent: Agent) -> None:
    config = world._config
    needs = config.needs
    rng = world._rng
    margin_x = min(needs.wander_margin, config.world_width * 0.5)
    margin_y = min(needs.wander_margin, config.world_height * 0.5)
    agent.wander_target = Vector2(
        margin_x + rng.next_float() * (config.world_width - 2.0 * margin_x),
        margin_y + rng.next_float() * (config.world_height - 2.0 * margin_y),
    )
    agent.wander_timer = needs.wander_time_min + rng.next_float() * needs.wander_time_jitter


def die(agent: Agent, cause: str) -> None:
    agent.alive = False
    agent.state = AgentState.DEAD
    agent.color = DEAD_COLOR
    agent.time_since_death = 0.0
    logger.debug("agent %d died of %s at age %.2f", agent.id, cause, agent.age)
