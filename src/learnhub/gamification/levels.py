"""Level formula and its inverse.

level = floor(sqrt(total_points / 100)) + 1

Level n therefore starts at (n - 1)^2 * 100 points and ends just below
n^2 * 100 points. Both directions are kept as separate pure functions.
"""

from __future__ import annotations

import math

POINTS_PER_LEVEL_UNIT = 100


def calculate_level(total_points: int) -> int:
    """Compute the level for a cumulative point total.

    Integer square root keeps this exact for arbitrarily large totals;
    isqrt(p // 100) == floor(sqrt(p / 100)) for every non-negative int p.
    """
    if total_points < 0:
        msg = f"total_points must be non-negative, got {total_points}"
        raise ValueError(msg)
    return math.isqrt(total_points // POINTS_PER_LEVEL_UNIT) + 1


def points_for_level(level: int) -> int:
    """Cumulative points at which `level` begins."""
    return (level - 1) ** 2 * POINTS_PER_LEVEL_UNIT


def points_for_next_level(level: int) -> int:
    """Cumulative points needed to reach the level above `level`."""
    return level**2 * POINTS_PER_LEVEL_UNIT


def level_progress(total_points: int, level: int) -> dict:
    """Progress within the current level, as shown on the stats panel."""
    start = points_for_level(level)
    target = points_for_next_level(level)
    points_in_current_level = total_points - start
    span = target - start

    return {
        "points_for_next_level": target,
        "points_in_current_level": points_in_current_level,
        "progress_to_next_level": points_in_current_level / span * 100,
    }
