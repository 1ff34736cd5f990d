"""
Descriptive statistics for ratingmath.

Per-person, per-location and global summaries of a ScoreMatrix. Every
function is pure and returns None (or an empty structure) when there is not
enough data, rather than raising.
"""

import numpy as np
from typing import Any, Dict, List, Optional

from ratingmath.math.corr import person_correlation
from ratingmath.math.score_matrix import Person, ScoreMatrix
from ratingmath.utils.general import map_rest, mean, population_std, present_values


MIN_RATERS = 2  # Raters needed before a location's spread is meaningful


def person_stats(person: Person) -> Optional[Dict[str, Any]]:
    """
    Summary of one person's present scores.

    Args:
        person: Person

    Returns:
        Dictionary with name, n, mean, std, min and max, or None if the
        person rated nothing
    """
    vals = present_values(person.scores)
    if not vals:
        return None

    return {
        'name': person.name,
        'n': len(vals),
        'mean': mean(vals),
        'std': population_std(vals),
        'min': min(vals),
        'max': max(vals)
    }


def global_summary(matrix: ScoreMatrix) -> Dict[str, Any]:
    """
    Summary over every present score in the matrix.

    Args:
        matrix: ScoreMatrix

    Returns:
        Dictionary with people, ratings, mean, std, min and max; the last
        four are None when there are no ratings
    """
    vals = [v for p in matrix.people for v in p.scores if v is not None]

    return {
        'people': len(matrix),
        'locations': matrix.n_locations,
        'ratings': len(vals),
        'mean': mean(vals),
        'std': population_std(vals),
        'min': min(vals) if vals else None,
        'max': max(vals) if vals else None
    }


def person_leaderboard(matrix: ScoreMatrix, top_n: int = 3) -> Dict[str, List[Dict[str, Any]]]:
    """
    People ordered by their average rating.

    Args:
        matrix: ScoreMatrix
        top_n: Number of entries at each end

    Returns:
        Dictionary with 'ranking' (all people with stats, highest mean first),
        'top' and 'bottom'
    """
    ranking = [s for s in (person_stats(p) for p in matrix.people) if s is not None]
    ranking.sort(key=lambda s: -s['mean'])

    if top_n <= 0:
        return {'ranking': ranking, 'top': [], 'bottom': []}

    return {
        'ranking': ranking,
        'top': ranking[:top_n],
        'bottom': ranking[-top_n:]
    }


def global_pair_extremes(matrix: ScoreMatrix) -> Dict[str, Optional[Dict[str, Any]]]:
    """
    The most and least correlated pair of people.

    Only pairs with a defined correlation (overlap of at least 2 and
    non-degenerate variance) are considered.

    Args:
        matrix: ScoreMatrix

    Returns:
        Dictionary with 'best' and 'worst' pairs, each {a, b, r, overlap} or None
    """
    best = None
    worst = None

    def pair_entry(pa: Person, pb: Person) -> Optional[Dict[str, Any]]:
        cell = person_correlation(pa, pb)
        if cell.r is None:
            return None
        return {'a': pa.name, 'b': pb.name, 'r': cell.r, 'overlap': cell.overlap_count}

    for entry in map_rest(pair_entry, matrix.people):
        if entry is None:
            continue
        if best is None or entry['r'] > best['r']:
            best = entry
        if worst is None or entry['r'] < worst['r']:
            worst = entry

    return {'best': best, 'worst': worst}


def location_spreads(matrix: ScoreMatrix) -> List[Dict[str, Any]]:
    """
    Population std of each location's ratings.

    Args:
        matrix: ScoreMatrix

    Returns:
        One entry per location with at least MIN_RATERS ratings
    """
    spreads = []
    for loc in range(matrix.n_locations):
        vals = matrix.location_scores(loc)
        if len(vals) < MIN_RATERS:
            continue
        spreads.append({
            'index': loc,
            'name': matrix.location_name(loc),
            'std': population_std(vals),
            'n': len(vals)
        })
    return spreads


def polarization_extremes(matrix: ScoreMatrix) -> Dict[str, Optional[Dict[str, Any]]]:
    """
    The locations people disagree about most and least.

    Args:
        matrix: ScoreMatrix

    Returns:
        Dictionary with 'most' (highest std) and 'least' (lowest std)
    """
    most = None
    least = None

    for entry in location_spreads(matrix):
        if most is None or entry['std'] > most['std']:
            most = entry
        if least is None or entry['std'] < least['std']:
            least = entry

    return {'most': most, 'least': least}


def most_polarizing_location(matrix: ScoreMatrix) -> Optional[Dict[str, Any]]:
    """The single location with the largest spread of ratings."""
    return polarization_extremes(matrix)['most']


def location_signed_squared_sums(matrix: ScoreMatrix) -> Optional[Dict[str, Any]]:
    """
    Rank locations by the sum of value * |value| over their raters.

    Args:
        matrix: ScoreMatrix

    Returns:
        Dictionary with 'best', 'worst' and the full 'ranking' (highest
        first); each entry also carries the ratings' std as a consensus
        proxy. None when no location has ratings.
    """
    ranking = []

    for loc in range(matrix.n_locations):
        vals = matrix.location_scores(loc)
        if not vals:
            continue
        ranking.append({
            'index': loc,
            'name': matrix.location_name(loc),
            'signed_squared_sum': float(sum(v * abs(v) for v in vals)),
            'std': population_std(vals),
            'count': len(vals)
        })

    if not ranking:
        return None

    ranking.sort(key=lambda entry: -entry['signed_squared_sum'])

    return {'best': ranking[0], 'worst': ranking[-1], 'ranking': ranking}


def most_different_location(matrix: ScoreMatrix, person_idx: int) -> Optional[Dict[str, Any]]:
    """
    The location where a person strays furthest from everyone else.

    Only locations rated by the person and by at least one other person
    are considered.

    Args:
        matrix: ScoreMatrix
        person_idx: Index of the person

    Returns:
        Dictionary with index, name, score, others_mean, others_count and
        difference, or None if no location qualifies
    """
    person = matrix.person(person_idx)
    best = None

    for loc, own in enumerate(person.scores):
        if own is None:
            continue

        others = [p.scores[loc] for i, p in enumerate(matrix.people)
                  if i != person_idx and p.scores[loc] is not None]
        if not others:
            continue

        others_mean = float(np.mean(others))
        diff = abs(own - others_mean)
        if best is None or diff > best['difference']:
            best = {
                'index': loc,
                'name': matrix.location_name(loc),
                'score': own,
                'others_mean': others_mean,
                'others_count': len(others),
                'difference': diff
            }

    return best
