"""Small numeric helpers shared by the report, todo and analysis code."""

import math


def round_half_up(value: float, digits: int = 0) -> float | int:
    """Round with .5 going up (2.5 -> 3, -2.5 -> -2).

    Built-in ``round`` sends halves to the even neighbour, which shifts
    averages and scores down by one on exact halves.
    """
    if digits == 0:
        return math.floor(value + 0.5)
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale
