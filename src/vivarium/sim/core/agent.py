from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pygame.math import Vector2

from .genome import Color, DerivedValues, Genome, derive

STARVING_HUNGER = 95.0
MATURITY_FRACTION = 0.3
NEED_MAX = 100.0

DEAD_COLOR: Color = (0.3, 0.3, 0.3)
STARVING_COLOR: Color = (1.0, 0.0, 0.0)
HUNGRY_COLOR: Color = (1.0, 1.0, 0.0)
TIRED_COLOR: Color = (0.5, 0.5, 1.0)
HORNY_COLOR: Color = (1.0, 0.0, 1.0)
IDLE_COLOR: Color = (0.0, 1.0, 0.0)
BOUNCE_COLOR: Color = (1.0, 0.2, 0.2)


class AgentState(str, Enum):
    IDLE = "Idle"
    HUNGRY = "Hungry"
    TIRED = "Tired"
    HORNY = "Horny"
    DEAD = "Dead"


@dataclass(slots=True)
class Agent:
    id: int
    generation: int
    position: Vector2
    velocity: Vector2
    genome: Genome
    color: Color = IDLE_COLOR
    energy: float = 100.0
    health: float = 100.0
    hunger: float = 0.0
    horniness: float = 0.0
    age: float = 0.0
    alive: bool = True
    reproduction_cooldown: float = 0.0
    wander_target: Vector2 = field(default_factory=Vector2)
    wander_timer: float = 0.0
    state: AgentState = AgentState.IDLE
    bounced: bool = False
    time_since_death: float = 0.0
    derived: DerivedValues | None = None

    def __post_init__(self) -> None:
        if self.derived is None:
            self.derived = derive(self.genome)

    @property
    def max_age(self) -> float:
        return self.derived.max_age

    @property
    def is_hungry(self) -> bool:
        return self.hunger >= self.derived.hunger_threshold

    @property
    def is_tired(self) -> bool:
        return self.energy <= self.derived.tiredness_threshold

    @property
    def is_horny(self) -> bool:
        return self.horniness >= self.derived.horniness_threshold and self.reproduction_cooldown <= 0.0

    @property
    def is_starving(self) -> bool:
        return self.hunger >= STARVING_HUNGER

    @property
    def is_mature(self) -> bool:
        return self.age > self.derived.max_age * MATURITY_FRACTION

    @property
    def maturity(self) -> float:
        adult_age = self.derived.max_age * MATURITY_FRACTION
        if adult_age <= 0.0:
            return 1.0
        return min(1.0, self.age / adult_age)
