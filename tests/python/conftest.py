import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from vivarium.sim.core.config import SimulationConfig  # noqa: E402
from vivarium.sim.core.world import World  # noqa: E402


@pytest.fixture
def empty_world() -> World:
    """A world with no founders and a food spawner that never fires."""
    config = SimulationConfig(seed=11, initial_population=0, max_population=50)
    config.food.spawn_interval = 1e9
    return World(config)
