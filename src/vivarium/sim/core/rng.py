from __future__ import annotations

import math
import random


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_signed(self) -> float:
        """Uniform sample in [-1, 1]."""
        return self._random.random() * 2.0 - 1.0

    def next_angle(self) -> float:
        return self._random.uniform(0, 2 * math.pi)
