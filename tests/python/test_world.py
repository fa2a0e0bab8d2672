from __future__ import annotations

import pytest
from pygame.math import Vector2
from pytest import approx

from helpers import ADULT_AGE, make_agent, make_food
from vivarium.sim.core.agent import BOUNCE_COLOR, DEAD_COLOR
from vivarium.sim.core.config import SimulationConfig
from vivarium.sim.core.world import World
from vivarium.sim.systems.movement import integrate


def run_steps(config: SimulationConfig, steps: int):
    world = World(config)
    history = []
    for tick in range(steps):
        metrics = world.step(tick)
        history.append((metrics.population, metrics.births, metrics.deaths, round(metrics.average_energy, 4)))
    positions = [(agent.id, round(agent.position.x, 6), round(agent.position.y, 6)) for agent in world.agents]
    return history, positions


def test_deterministic_steps():
    config = SimulationConfig(seed=1234, initial_population=30, max_population=120)
    result_a = run_steps(config, 120)
    # recreate config to ensure RNG resets
    config_b = SimulationConfig(seed=1234, initial_population=30, max_population=120)
    result_b = run_steps(config_b, 120)
    assert result_a == result_b


def test_different_seeds_diverge():
    first = World(SimulationConfig(seed=1, initial_population=5))
    second = World(SimulationConfig(seed=2, initial_population=5))
    assert [a.position for a in first.agents] != [a.position for a in second.agents]


def test_founders_are_sampled_inside_configured_ranges():
    world = World(SimulationConfig(seed=5, initial_population=40))

    assert len(world.agents) == 40
    assert len({agent.id for agent in world.agents}) == 40
    for agent in world.agents:
        assert agent.generation == 0
        assert agent.alive
        assert agent.age == 0.0
        assert 5.0 <= agent.position.x <= 795.0
        assert 5.0 <= agent.position.y <= 595.0
        assert 50.0 <= agent.velocity.length() <= 150.0 + 1e-6
        assert 0.0 <= agent.hunger <= 50.0
        assert 0.0 <= agent.horniness <= 40.0
        assert 50.0 <= agent.energy <= 100.0
        assert agent.health == 100.0
        assert 0.3 <= agent.genome.hunger_resistance <= 1.0
        assert 0.5 <= agent.genome.longevity <= 1.0


def test_offspring_join_after_the_pass(empty_world):
    first = make_agent(100, age=ADULT_AGE, horniness=80.0)
    second = make_agent(101, position=(405.0, 300.0), age=ADULT_AGE, horniness=80.0)
    empty_world.agents.extend([first, second])

    metrics = empty_world.step(0, 0.1)

    assert metrics.births == 1
    assert metrics.population == 3
    child = empty_world.agents[2]
    # not visited in the tick it was born
    assert child.age == 0.0
    assert child.hunger == approx(30.0)
    assert first.reproduction_cooldown == approx(20.0)


def test_population_cap_discards_offspring_but_charges_parents(empty_world):
    empty_world.config.max_population = 2
    first = make_agent(100, age=ADULT_AGE, horniness=80.0)
    second = make_agent(101, position=(405.0, 300.0), age=ADULT_AGE, horniness=80.0)
    empty_world.agents.extend([first, second])

    metrics = empty_world.step(0, 0.1)

    assert metrics.births == 0
    assert metrics.discarded_births == 1
    assert len(empty_world.agents) == 2
    assert first.horniness == approx(80.6 - 60.0)
    assert second.reproduction_cooldown == approx(20.0 - 0.1)


def test_population_cap_holds_with_several_births_in_one_tick(empty_world):
    pairs = [((100.0, 100.0), (105.0, 100.0)), ((400.0, 300.0), (405.0, 300.0)), ((700.0, 500.0), (705.0, 500.0))]
    for number, (left, right) in enumerate(pairs):
        empty_world.agents.append(make_agent(100 + 2 * number, position=left, age=ADULT_AGE, horniness=80.0))
        empty_world.agents.append(make_agent(101 + 2 * number, position=right, age=ADULT_AGE, horniness=80.0))
    empty_world.config.max_population = len(empty_world.agents) + 1

    metrics = empty_world.step(0, 0.1)

    assert metrics.births == 1
    assert metrics.discarded_births == 2
    assert len(empty_world.agents) == 7
    assert len(empty_world.agents) <= empty_world.config.max_population
    # each mate runs its own needs update after the seeker paid the cost
    assert [agent.reproduction_cooldown for agent in empty_world.agents[:6]] == approx([20.0, 19.9] * 3)


def test_founders_beyond_cap_are_rejected(empty_world):
    empty_world.config.max_population = 3
    empty_world.agents.append(make_agent(100))

    with pytest.raises(ValueError, match="max_population"):
        empty_world.initialize_population(3)
    assert len(empty_world.agents) == 1
    assert len(empty_world.initialize_population(2)) == 2


def test_deaths_are_counted_and_corpses_linger(empty_world):
    elder = make_agent(100, age=89.95)
    empty_world.agents.append(elder)

    metrics = empty_world.step(0, 0.1)

    assert metrics.deaths == 1
    assert metrics.alive == 0
    assert metrics.population == 1
    assert not elder.alive
    assert elder.color == DEAD_COLOR


def test_corpses_are_removed_after_grace(empty_world):
    lingering = make_agent(100, alive=False, age=50.0, time_since_death=4.95)
    ancient = make_agent(101, alive=False, age=96.0)
    fresh = make_agent(102, alive=False, age=50.0)
    empty_world.agents.extend([lingering, ancient, fresh])

    metrics = empty_world.step(0, 0.1)

    assert metrics.removed == 2
    assert empty_world.agents == [fresh]
    assert fresh.age == 50.0
    assert fresh.time_since_death == approx(0.1)


def test_dead_agents_do_not_move(empty_world):
    corpse = make_agent(100, alive=False, velocity=Vector2(50.0, 0.0))
    empty_world.agents.append(corpse)

    empty_world.step(0, 0.5)

    assert corpse.position == Vector2(400.0, 300.0)


def test_rotten_food_is_dropped_during_step(empty_world):
    rotting = make_food(1, (100.0, 100.0), age=29.95)
    fresh = make_food(2, (200.0, 100.0))
    empty_world.food.extend([rotting, fresh])

    metrics = empty_world.step(0, 0.1)

    assert empty_world.food == [fresh]
    assert metrics.food == 1


def test_food_spawns_on_interval_during_step():
    world = World(SimulationConfig(seed=3, initial_population=0))
    world.step(0, 1.0)
    assert world.food == []
    world.step(1, 1.0)
    assert len(world.food) == 1


def test_boundary_reflection_clamps_and_flips(empty_world):
    agent = make_agent(100, position=(-3.0, 300.0), velocity=Vector2(-10.0, 0.0))

    assert integrate(empty_world, agent, 0.1)

    assert agent.position.x == approx(5.0)
    assert agent.velocity.x == approx(10.0)
    assert agent.bounced


def test_corner_reflection_flips_both_axes(empty_world):
    agent = make_agent(100, position=(798.0, 598.0), velocity=Vector2(40.0, 30.0))

    integrate(empty_world, agent, 0.1)

    assert agent.position == Vector2(795.0, 595.0)
    assert agent.velocity == Vector2(-40.0, -30.0)


def test_bounced_flag_clears_inside_bounds(empty_world):
    agent = make_agent(100, velocity=Vector2(10.0, 0.0), bounced=True)

    assert not integrate(empty_world, agent, 0.1)

    assert agent.position.x == approx(401.0)
    assert not agent.bounced


def test_live_agents_stay_in_bounds_over_long_run():
    config = SimulationConfig(seed=77, initial_population=25, max_population=60)
    world = World(config)
    for tick in range(400):
        metrics = world.step(tick, 0.05)
        assert len(world.agents) <= config.max_population
        assert len(world.food) <= config.food.max_food
        assert metrics.population == len(world.agents)
        ids = [agent.id for agent in world.agents]
        assert len(ids) == len(set(ids))
        for agent in world.agents:
            assert 0.0 <= agent.health <= 100.0
            if not agent.alive:
                continue
            assert 0.0 <= agent.hunger <= 100.0
            assert 0.0 <= agent.horniness <= 100.0
            if agent.age > 0.0:
                assert 5.0 <= agent.position.x <= 795.0
                assert 5.0 <= agent.position.y <= 595.0


def test_metrics_average_over_live_agents(empty_world):
    empty_world.agents.append(make_agent(100, energy=60.0, hunger=10.0, age=20.0))
    empty_world.agents.append(make_agent(101, alive=False, energy=0.0, hunger=99.0, age=50.0))

    metrics = empty_world.step(0, 0.1)

    assert metrics.population == 2
    assert metrics.alive == 1
    assert metrics.average_energy == approx(60.0 - 0.9)
    assert metrics.average_hunger == approx(11.0)
    assert metrics.average_age == approx(20.1)
    assert empty_world.metrics is metrics


def test_snapshot_contains_metadata_and_agent_signals():
    config = SimulationConfig(seed=7, time_step=0.5, initial_population=2)
    world = World(config)
    world.step(0)
    snapshot = world.snapshot(1)

    assert snapshot.world.width == approx(800.0)
    assert snapshot.metadata.world_height == approx(600.0)
    assert snapshot.metadata.sim_dt == approx(0.5)
    assert snapshot.metadata.tick_rate == approx(2.0)
    assert snapshot.metadata.seed == 7
    assert snapshot.metrics.population == len(world.agents)

    payload = snapshot.agents[0]
    for key in ["id", "x", "y", "vx", "vy", "radius", "color", "behavior_state", "generation", "maturity"]:
        assert key in payload
    assert payload["is_alive"]
    assert len(payload["color"]) == 3


def test_snapshot_radius_grows_with_maturity(empty_world):
    empty_world.agents.append(make_agent(100, age=0.0))
    empty_world.agents.append(make_agent(101, age=ADULT_AGE))

    newborn, adult = empty_world.snapshot(0).agents

    assert newborn["radius"] == approx(2.5)
    assert adult["radius"] == approx(5.0)


def test_snapshot_shows_bounce_color_without_changing_agent(empty_world):
    agent = make_agent(100, bounced=True)
    empty_world.agents.append(agent)

    payload = empty_world.snapshot(0).agents[0]

    assert payload["color"] == list(BOUNCE_COLOR)
    assert payload["bounced"]
    assert agent.color != BOUNCE_COLOR


def test_snapshot_food_intensity_tracks_freshness(empty_world):
    empty_world.food.append(make_food(4, (10.0, 20.0), age=15.0))

    item = empty_world.snapshot(0).food[0]

    assert item["id"] == 4
    assert item["intensity"] == approx(0.5)
    assert item["radius"] == approx(3.0)


def test_reset_restores_initial_population():
    config = SimulationConfig(seed=19, initial_population=6)
    world = World(config)
    initial = [(agent.id, Vector2(agent.position)) for agent in world.agents]
    for tick in range(30):
        world.step(tick)

    world.reset()

    assert [(agent.id, agent.position) for agent in world.agents] == initial
    assert world.food == []
    assert world.metrics is None
