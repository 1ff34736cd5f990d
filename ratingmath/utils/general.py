"""
General utility functions for the ratingmath package.

Small numeric helpers shared by the analytics engines. Scores are plain
Python floats with ``None`` marking an absent rating.
"""

import math
import numpy as np
from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar

T = TypeVar('T')
U = TypeVar('U')


def is_present(value: Any) -> bool:
    """
    Check if a score is present.

    Args:
        value: Score value (number, None or NaN)

    Returns:
        True if the score is a finite number
    """
    if value is None:
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def sign(value: float) -> float:
    """
    Sign of a number as -1.0, 0.0 or 1.0.

    Args:
        value: Number

    Returns:
        Sign of the number
    """
    if value > 0:
        return 1.0
    if value < 0:
        return -1.0
    return 0.0


def present_values(values: Iterable[Optional[float]]) -> List[float]:
    """
    Filter a score vector down to its present values, preserving order.

    Args:
        values: Score vector with absent entries

    Returns:
        List of present scores
    """
    return [float(v) for v in values if is_present(v)]


def mean(values: Sequence[float]) -> Optional[float]:
    """
    Arithmetic mean, or None for an empty sequence.

    Args:
        values: Values to average

    Returns:
        Mean of the values
    """
    if len(values) == 0:
        return None
    return float(np.mean(values))


def population_std(values: Sequence[float]) -> Optional[float]:
    """
    Population standard deviation (divides by n), or None for an empty sequence.

    Args:
        values: Values

    Returns:
        Standard deviation of the values
    """
    if len(values) == 0:
        return None
    return float(np.std(values))


def clamp(value: float, lower: float, upper: float) -> float:
    """
    Clamp a number into a closed interval.

    Args:
        value: Number to clamp
        lower: Lower bound
        upper: Upper bound

    Returns:
        Clamped number
    """
    return max(lower, min(upper, value))


def map_rest(f: Callable[[T, T], U], coll: List[T]) -> List[U]:
    """
    Apply a function to each element and all remaining elements.

    For each element in coll, apply function f to that element and each
    element that comes after it, i.e. once per unordered pair.

    Args:
        f: Function taking two arguments
        coll: Collection to process

    Returns:
        List of results
    """
    result = []
    n = len(coll)
    for i in range(n):
        for j in range(i + 1, n):
            result.append(f(coll[i], coll[j]))
    return result
