from __future__ import annotations

from pygame.math import Vector2

from vivarium.sim.core.agent import Agent
from vivarium.sim.core.food import Food
from vivarium.sim.core.genome import Genome

# thresholds: hunger 70, horniness 75, tiredness 30; max age 90, base speed 110
MIDDLE_GENOME = Genome(hunger_resistance=0.5, libido_strength=0.5, energy_efficiency=0.5, longevity=0.5)
ADULT_AGE = 40.0


def make_agent(agent_id: int, position=(400.0, 300.0), genome: Genome = MIDDLE_GENOME, **overrides) -> Agent:
    """Agent with calm needs, parked on its own wander target."""
    values = dict(
        id=agent_id,
        generation=0,
        position=Vector2(position),
        velocity=Vector2(),
        genome=genome,
        energy=80.0,
        health=100.0,
        hunger=0.0,
        horniness=0.0,
        wander_target=Vector2(position),
        wander_timer=100.0,
    )
    values.update(overrides)
    return Agent(**values)


def make_food(food_id: int, position, **overrides) -> Food:
    return Food(id=food_id, position=Vector2(position), **overrides)
