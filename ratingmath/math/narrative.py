"""
Two-person comparison for ratingmath.

Given two people, this module works out how their ratings relate over the
locations both of them scored: the correlation and its strength, how often
they move in the same direction relative to their own averages, how far
apart they usually are, and a handful of notable locations (shared extreme,
biggest disagreement, most representative, best compromise).
"""

from typing import Any, Dict, Optional

from ratingmath.math.corr import MIN_OVERLAP, Overlap, build_overlap, correlation_class, pearson
from ratingmath.math.score_matrix import ScoreMatrix
from ratingmath.utils.general import sign


# Upper bounds on |r| for each qualitative bucket; anything above is 'very strong'
STRENGTH_BUCKETS = [
    (0.2, 'very weak'),
    (0.4, 'weak'),
    (0.6, 'moderate'),
    (0.8, 'strong'),
]

# Upper bounds on the share of opposite-direction moves
POLARIZATION_BUCKETS = [
    (0.25, 'low'),
    (0.50, 'medium'),
]

# Average differences smaller than this count as "about the same level"
SAME_LEVEL_THRESHOLD = 0.05


def strength_label(r: float) -> str:
    """
    Qualitative strength of a correlation.

    Args:
        r: Correlation coefficient

    Returns:
        'very weak', 'weak', 'moderate', 'strong' or 'very strong'
    """
    abs_r = abs(r)
    for bound, label in STRENGTH_BUCKETS:
        if abs_r < bound:
            return label
    return 'very strong'


def polarization_label(share: float) -> str:
    """
    Label for the share of opposite-direction moves.

    Args:
        share: Fraction in [0, 1]

    Returns:
        'low', 'medium' or 'high'
    """
    for bound, label in POLARIZATION_BUCKETS:
        if share < bound:
            return label
    return 'high'


def direction_counts(overlap: Overlap) -> Dict[str, int]:
    """
    Count locations where both people sit on the same side of their averages.

    Deviations are taken from each person's mean over the overlap; locations
    where either deviation is zero are not counted.

    Args:
        overlap: Overlap of two people

    Returns:
        Dictionary with 'same' and 'opposite' counts
    """
    n = len(overlap)
    mean_a = sum(overlap.xs) / n
    mean_b = sum(overlap.ys) / n

    same = 0
    opposite = 0
    for a, b in zip(overlap.xs, overlap.ys):
        prod = (a - mean_a) * (b - mean_b)
        if prod > 0:
            same += 1
        elif prod < 0:
            opposite += 1

    return {'same': same, 'opposite': opposite}


def agreement_buckets(overlap: Overlap) -> Dict[str, float]:
    """
    Percentage of overlap locations by absolute score difference.

    Args:
        overlap: Overlap of two people

    Returns:
        Percentages for differences of exactly 0, 1 and 2, of 3 or more,
        and 'other' for fractional differences below 3
    """
    counts = {'exact': 0, 'one': 0, 'two': 0, 'three_plus': 0, 'other': 0}
    for a, b in zip(overlap.xs, overlap.ys):
        diff = abs(a - b)
        if diff == 0:
            counts['exact'] += 1
        elif diff == 1:
            counts['one'] += 1
        elif diff == 2:
            counts['two'] += 1
        elif diff >= 3:
            counts['three_plus'] += 1
        else:
            counts['other'] += 1

    n = len(overlap)
    return {key: 100.0 * count / n for key, count in counts.items()}


def _location(matrix: ScoreMatrix, index: int, **fields: Any) -> Dict[str, Any]:
    entry = {'index': index, 'name': matrix.location_name(index)}
    entry.update(fields)
    return entry


def largest_shared_extreme(matrix: ScoreMatrix, overlap: Overlap) -> Optional[Dict[str, Any]]:
    """
    The location where both gave the same score with the largest magnitude.

    Args:
        matrix: ScoreMatrix (for location names)
        overlap: Overlap of two people

    Returns:
        Location entry with 'score', or None if they never gave the same score
    """
    best = None
    for idx, a, b in overlap:
        if a != b:
            continue
        if best is None or abs(a) > abs(best['score']):
            best = _location(matrix, idx, score=a)
    return best


def largest_sign_disagreement(matrix: ScoreMatrix, overlap: Overlap) -> Optional[Dict[str, Any]]:
    """
    The location with the largest gap among those where the two disagree in sign.

    A location qualifies when the scores differ and either has opposite
    signs or one of them is zero.

    Args:
        matrix: ScoreMatrix (for location names)
        overlap: Overlap of two people

    Returns:
        Location entry with 'a', 'b' and 'difference', or None
    """
    best = None
    for idx, a, b in overlap:
        sign_a = sign(a)
        sign_b = sign(b)
        opposite_or_zero = (sign_a == 0 or sign_b == 0 or sign_a == -sign_b) and a != b
        if not opposite_or_zero:
            continue

        diff = abs(a - b)
        if best is None or diff > best['difference']:
            best = _location(matrix, idx, a=a, b=b, difference=diff)
    return best


def most_representative(matrix: ScoreMatrix, overlap: Overlap, r: float) -> Optional[Dict[str, Any]]:
    """
    The location that most reinforces the reported correlation.

    Each location contributes (a - mean_a) * (b - mean_b); the sign is
    flipped for a negative correlation so the largest value always pushes
    in the reported direction.

    Args:
        matrix: ScoreMatrix (for location names)
        overlap: Overlap of two people
        r: Correlation over the overlap

    Returns:
        Location entry with 'a', 'b' and 'contribution', or None for an
        empty overlap
    """
    n = len(overlap)
    if n == 0:
        return None

    mean_a = sum(overlap.xs) / n
    mean_b = sum(overlap.ys) / n
    flip = -1.0 if r < 0 else 1.0

    best = None
    for idx, a, b in overlap:
        contrib = flip * (a - mean_a) * (b - mean_b)
        if best is None or contrib > best['contribution']:
            best = _location(matrix, idx, a=a, b=b, contribution=contrib)
    return best


def compromise(matrix: ScoreMatrix, overlap: Overlap) -> Optional[Dict[str, Any]]:
    """
    The location the two are closest on, preferring the better-liked one on ties.

    Args:
        matrix: ScoreMatrix (for location names)
        overlap: Overlap of two people

    Returns:
        Location entry with 'a', 'b', 'difference' and 'average', or None
    """
    best = None
    for idx, a, b in overlap:
        diff = abs(a - b)
        avg = (a + b) / 2
        if (best is None or diff < best['difference']
                or (diff == best['difference'] and avg > best['average'])):
            best = _location(matrix, idx, a=a, b=b, difference=diff, average=avg)
    return best


def compare_people(matrix: ScoreMatrix, a_idx: int, b_idx: int) -> Optional[Dict[str, Any]]:
    """
    Compare two people over the locations both of them rated.

    Args:
        matrix: ScoreMatrix
        a_idx: Index of person A
        b_idx: Index of person B

    Returns:
        Dictionary of comparative metrics, or None when the overlap is
        smaller than 2 or the correlation is undefined
    """
    person_a = matrix.person(a_idx)
    person_b = matrix.person(b_idx)
    overlap = build_overlap(person_a, person_b)

    if len(overlap) < MIN_OVERLAP:
        return None

    r = pearson(overlap.xs, overlap.ys)
    if r is None:
        return None

    n = len(overlap)
    counts = direction_counts(overlap)
    scored = counts['same'] + counts['opposite']

    if scored > 0:
        aligned = counts['same'] if r >= 0 else counts['opposite']
        direction_agreement = 100.0 * aligned / scored
        opposite_share = counts['opposite'] / scored
        polarization = {'index': opposite_share, 'label': polarization_label(opposite_share)}
    else:
        direction_agreement = 0.0
        polarization = {'index': None, 'label': None}

    avg_abs_diff = sum(abs(a - b) for a, b in zip(overlap.xs, overlap.ys)) / n
    avg_diff = sum(a - b for a, b in zip(overlap.xs, overlap.ys)) / n

    if abs(avg_diff) < SAME_LEVEL_THRESHOLD:
        higher_rater = None
    else:
        higher_rater = person_a.name if avg_diff > 0 else person_b.name

    return {
        'a': person_a.name,
        'b': person_b.name,
        'r': r,
        'overlap': n,
        'strength': strength_label(r),
        'sign': 'positive' if r >= 0 else 'negative',
        'correlation_class': correlation_class(r),
        'direction': 'aligned' if r >= 0 else 'opposite',
        'same_direction': counts['same'],
        'opposite_direction': counts['opposite'],
        'direction_agreement': direction_agreement,
        'polarization': polarization,
        'agreement_buckets': agreement_buckets(overlap),
        'shared_extreme': largest_shared_extreme(matrix, overlap),
        'sign_disagreement': largest_sign_disagreement(matrix, overlap),
        'most_representative': most_representative(matrix, overlap, r),
        'compromise': compromise(matrix, overlap),
        'average_abs_difference': avg_abs_diff,
        'average_difference': avg_diff,
        'higher_rater': higher_rater
    }
