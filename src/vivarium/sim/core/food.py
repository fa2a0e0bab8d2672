from __future__ import annotations

from dataclasses import dataclass

from pygame.math import Vector2


@dataclass(slots=True)
class Food:
    id: int
    position: Vector2
    max_age: float = 30.0
    age: float = 0.0
    eaten: bool = False

    def advance(self, dt: float) -> None:
        self.age += dt

    def is_rotten(self) -> bool:
        return self.age >= self.max_age

    @property
    def freshness(self) -> float:
        if self.max_age <= 0.0:
            return 0.0
        return max(0.0, min(1.0, 1.0 - self.age / self.max_age))
