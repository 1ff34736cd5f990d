"""
Power ranking of locations for ratingmath.

Each rating contributes sign(value) * |value| ** exponent to its location's
score. Exponent 1 is a plain sum; larger exponents let strong opinions
dominate; exponent 0 reduces every non-zero rating to a +1/-1 vote.
"""

import math
import numpy as np
from typing import Any, Dict, List

from ratingmath.math.score_matrix import ScoreMatrix


DEFAULT_EXPONENT = 1.0
MIN_EXPONENT = 0.0
MAX_EXPONENT = 8.0


def contribution(value: float, exponent: float) -> float:
    """
    Signed power contribution of one rating.

    Magnitudes too large for a float give an infinite contribution.

    Args:
        value: Rating
        exponent: Power applied to the magnitude

    Returns:
        sign(value) * |value| ** exponent
    """
    with np.errstate(over='ignore'):
        return float(np.sign(value) * np.power(float(abs(value)), exponent))


def rank_locations(matrix: ScoreMatrix, exponent: float) -> List[Dict[str, Any]]:
    """
    Rank locations by the sum of their signed power contributions.

    The exponent is expected to lie in [MIN_EXPONENT, MAX_EXPONENT]; callers
    clamp it, this function does not. Locations nobody rated are left out.

    Args:
        matrix: ScoreMatrix
        exponent: Power applied to each rating's magnitude

    Returns:
        Entries sorted by descending score (stable for ties), each with
        'index', 'name', 'score', 'std' (population std of the contributions,
        None when it is not finite) and 'count'
    """
    ranking = []

    for loc in range(matrix.n_locations):
        contributions = [contribution(v, exponent) for v in matrix.location_scores(loc)]
        if not contributions:
            continue

        with np.errstate(over='ignore', invalid='ignore'):
            std = float(np.std(contributions))

        ranking.append({
            'index': loc,
            'name': matrix.location_name(loc),
            'score': float(sum(contributions)),
            'std': std if math.isfinite(std) else None,
            'count': len(contributions)
        })

    # sorted() is stable, so ties keep location order
    return sorted(ranking, key=lambda entry: -entry['score'])
