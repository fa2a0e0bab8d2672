from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.agent import Agent

if TYPE_CHECKING:
    from ..core.world import World


def integrate(world: World, agent: Agent, dt: float) -> bool:
    """Move ``agent`` by its velocity and bounce it off the play-area edges.

    Each axis is checked on its own, so a corner hit flips both velocity
    components. Sets and returns ``agent.bounced``.
    """
    config = world._config
    pos_x = agent.position.x + agent.velocity.x * dt
    pos_y = agent.position.y + agent.velocity.y * dt
    pos_x, pos_y, vel_x, vel_y, bounced = _reflect(
        pos_x,
        pos_y,
        agent.velocity.x,
        agent.velocity.y,
        config.agent_radius,
        config.world_width,
        config.world_height,
    )
    agent.position.update(pos_x, pos_y)
    agent.velocity.update(vel_x, vel_y)
    agent.bounced = bounced
    return bounced


def _reflect(
    x: float, y: float, vx: float, vy: float, radius: float, width: float, height: float
) -> tuple[float, float, float, float, bool]:
    bounced = False
    if x < radius:
        x = radius
        vx = -vx
        bounced = True
    elif x > width - radius:
        x = width - radius
        vx = -vx
        bounced = True
    if y < radius:
        y = radius
        vy = -vy
        bounced = True
    elif y > height - radius:
        y = height - radius
        vy = -vy
        bounced = True
    return x, y, vx, vy, bounced
