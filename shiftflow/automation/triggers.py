"""
Trigger conditions.

Alerts fire strictly past the target; limit orders fire on reaching it.
"""

from ..models.entities import Direction


def crossed_strict(direction: Direction, rate: float, target_rate: float) -> bool:
    if direction == Direction.ABOVE:
        return rate > target_rate
    return rate < target_rate


def crossed_inclusive(direction: Direction, rate: float, target_rate: float) -> bool:
    if direction == Direction.ABOVE:
        return rate >= target_rate
    return rate <= target_rate
