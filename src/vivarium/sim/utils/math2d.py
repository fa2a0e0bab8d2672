from __future__ import annotations

import math

from pygame.math import Vector2


def _safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-10:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def _distance(a: Vector2, b: Vector2) -> float:
    dx = b.x - a.x
    dy = b.y - a.y
    return math.sqrt(dx * dx + dy * dy)


def _midpoint(a: Vector2, b: Vector2) -> Vector2:
    return Vector2((a.x + b.x) * 0.5, (a.y + b.y) * 0.5)


def _from_heading(angle: float, length: float) -> Vector2:
    return Vector2(math.cos(angle) * length, math.sin(angle) * length)


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
