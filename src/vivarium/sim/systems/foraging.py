from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from pygame.math import Vector2

from ..core.food import Food

if TYPE_CHECKING:
    from ..core.world import World


def tick_food_spawner(world: World, dt: float) -> Optional[Food]:
    """Advance the spawn timer and drop in one food item when it has elapsed.

    The timer keeps accumulating while the pool is full, so a slot that frees up
    is refilled on the next tick.
    """
    food_config = world._config.food
    world._food_spawn_timer += dt
    if world._food_spawn_timer < food_config.spawn_interval or len(world.food) >= food_config.max_food:
        return None
    world._food_spawn_timer = 0.0
    item = Food(
        id=world._allocate_food_id(),
        position=random_play_area_point(world, world._config.agent_radius),
        max_age=food_config.max_age,
    )
    world.food.append(item)
    return item


def age_food(world: World, dt: float) -> int:
    """Age every food item and drop eaten or rotten ones. Returns how many were dropped."""
    kept = []
    for item in world.food:
        item.advance(dt)
        if item.eaten or item.is_rotten():
            continue
        kept.append(item)
    dropped = len(world.food) - len(kept)
    world.food[:] = kept
    return dropped


def random_play_area_point(world: World, inset: float) -> Vector2:
    config = world._config
    rng = world._rng
    inset_x = min(inset, config.world_width * 0.5)
    inset_y = min(inset, config.world_height * 0.5)
    return Vector2(
        inset_x + rng.next_float() * (config.world_width - 2.0 * inset_x),
        inset_y + rng.next_float() * (config.world_height - 2.0 * inset_y),
    )
