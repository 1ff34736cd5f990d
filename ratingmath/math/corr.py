"""
Correlation implementation for ratingmath.

This module provides Pearson correlation between people restricted to the
locations both of them rated, the person x person correlation matrix, and
the working display order used to browse that matrix.
"""

import math
from typing import Any, Dict, List, Optional, Sequence

from ratingmath.math.score_matrix import Person, ScoreMatrix


MIN_OVERLAP = 2  # Smallest overlap for which a correlation is defined

# Thresholds for the coarse positive/neutral/negative classification
POSITIVE_CLASS_THRESHOLD = 0.25
NEGATIVE_CLASS_THRESHOLD = -0.25


class Overlap:
    """
    Scores two people gave on the locations both of them rated.
    """

    def __init__(self, xs: List[float], ys: List[float], indices: List[int]):
        self.xs = xs
        self.ys = ys
        self.indices = indices

    def __len__(self) -> int:
        return len(self.indices)

    def __iter__(self):
        """Iterate over (index, a, b) triples in location order."""
        return iter(zip(self.indices, self.xs, self.ys))

    def __repr__(self) -> str:
        return f"Overlap(size={len(self.indices)})"


class CorrelationCell:
    """
    One cell of the correlation matrix.
    """

    def __init__(self, r: Optional[float], overlap_count: int):
        """
        Initialize a cell.

        Args:
            r: Pearson r, or None when undefined
            overlap_count: Number of locations the correlation is based on
        """
        self.r = r
        self.overlap_count = overlap_count

    def to_dict(self) -> Dict[str, Any]:
        return {'r': self.r, 'overlap': self.overlap_count}

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, CorrelationCell):
            return NotImplemented
        return self.r == other.r and self.overlap_count == other.overlap_count

    def __repr__(self) -> str:
        return f"CorrelationCell(r={self.r}, overlap={self.overlap_count})"


def pearson(xs: Sequence[float], ys: Sequence[float]) -> Optional[float]:
    """
    Pearson product-moment correlation of two equal-length vectors.

    Args:
        xs: First vector
        ys: Second vector, same length as xs

    Returns:
        Correlation coefficient, or None if fewer than 2 points or either
        vector has zero variance
    """
    n = len(xs)
    if n < MIN_OVERLAP:
        return None

    # Constant vectors need not cancel exactly in the sum formula
    if all(x == xs[0] for x in xs) or all(y == ys[0] for y in ys):
        return None

    sum_x = sum_y = sum_xy = sum_x2 = sum_y2 = 0.0
    for x, y in zip(xs, ys):
        sum_x += x
        sum_y += y
        sum_xy += x * y
        sum_x2 += x * x
        sum_y2 += y * y

    num = n * sum_xy - sum_x * sum_y
    den_sq = (n * sum_x2 - sum_x * sum_x) * (n * sum_y2 - sum_y * sum_y)

    # Rounding can push a degenerate product slightly negative
    if not math.isfinite(den_sq) or den_sq <= 0:
        return None

    den = math.sqrt(den_sq)
    if den == 0:
        return None

    r = num / den
    return r if math.isfinite(r) else None


def build_overlap(person_a: Person, person_b: Person) -> Overlap:
    """
    Collect the locations both people rated, preserving location order.

    Args:
        person_a: First person
        person_b: Second person

    Returns:
        Overlap with A's scores, B's scores and the location indices
    """
    xs = []
    ys = []
    indices = []

    for i, (a, b) in enumerate(zip(person_a.scores, person_b.scores)):
        if a is not None and b is not None:
            xs.append(a)
            ys.append(b)
            indices.append(i)

    return Overlap(xs, ys, indices)


def person_correlation(person_a: Person, person_b: Person) -> CorrelationCell:
    """
    Correlation between two people over their overlap.

    Args:
        person_a: First person
        person_b: Second person

    Returns:
        CorrelationCell, with r None when the overlap is too small or degenerate
    """
    overlap = build_overlap(person_a, person_b)
    if len(overlap) < MIN_OVERLAP:
        return CorrelationCell(None, len(overlap))
    return CorrelationCell(pearson(overlap.xs, overlap.ys), len(overlap))


def correlation_class(r: Optional[float]) -> str:
    """
    Coarse classification of a correlation for display.

    Args:
        r: Correlation coefficient

    Returns:
        'positive', 'negative' or 'neutral'
    """
    if r is None:
        return 'neutral'
    if r > POSITIVE_CLASS_THRESHOLD:
        return 'positive'
    if r < NEGATIVE_CLASS_THRESHOLD:
        return 'negative'
    return 'neutral'


def compute_correlation_matrix(matrix: ScoreMatrix,
                               order: Optional[List[int]] = None) -> List[List[CorrelationCell]]:
    """
    Compute the person x person correlation grid in the given order.

    Diagonal cells are always r = 1.0 with the full vector length as overlap,
    whatever the person's missing data.

    Args:
        matrix: ScoreMatrix
        order: Permutation of person indices (defaults to matrix order)

    Returns:
        Grid where grid[i][j] correlates order[i] with order[j]
    """
    if order is None:
        order = list(range(len(matrix)))

    # Values are symmetric, so compute each unordered pair once
    cache: Dict[tuple, CorrelationCell] = {}
    grid = []
    for i in order:
        row = []
        for j in order:
            if i == j:
                row.append(CorrelationCell(1.0, len(matrix.person(i).scores)))
                continue
            key = (min(i, j), max(i, j))
            if key not in cache:
                cache[key] = person_correlation(matrix.person(key[0]), matrix.person(key[1]))
            row.append(cache[key])
        grid.append(row)

    return grid


def best_and_worst_matches(matrix: ScoreMatrix, person_idx: int) -> Dict[str, Optional[Dict[str, Any]]]:
    """
    Find the people most and least correlated with a given person.

    Args:
        matrix: ScoreMatrix
        person_idx: Index of the base person

    Returns:
        Dictionary with 'best' and 'worst' entries (None when no other person
        has a defined correlation)
    """
    base = matrix.person(person_idx)
    best = None
    worst = None

    for idx, other in enumerate(matrix.people):
        if idx == person_idx:
            continue

        cell = person_correlation(base, other)
        if cell.r is None:
            continue

        entry = {'name': other.name, 'index': idx, 'r': cell.r, 'overlap': cell.overlap_count}
        if best is None or cell.r > best['r']:
            best = entry
        if worst is None or cell.r < worst['r']:
            worst = entry

    return {'best': best, 'worst': worst}


class CorrelationOrder:
    """
    Working permutation of people used to lay out the correlation matrix.
    """

    def __init__(self, matrix: ScoreMatrix):
        """
        Initialize the order to the matrix order.

        Args:
            matrix: ScoreMatrix the order refers to
        """
        self.matrix = matrix
        self.order = list(range(len(matrix)))

    def reset(self) -> List[int]:
        """Restore the matrix order."""
        self.order = list(range(len(self.matrix)))
        return list(self.order)

    def sort_by_person(self, person_idx: int) -> List[int]:
        """
        Order everyone by descending correlation to one person.

        The anchor always comes first and people without a defined
        correlation to the anchor come last.

        Args:
            person_idx: Index of the anchor person

        Returns:
            The new order
        """
        anchor = self.matrix.person(person_idx)
        scored = []
        unscored = []

        for idx in self.order:
            if idx == person_idx:
                continue
            r = person_correlation(anchor, self.matrix.person(idx)).r
            if r is None:
                unscored.append(idx)
            else:
                scored.append((r, idx))

        scored.sort(key=lambda item: -item[0])
        self.order = [person_idx] + [idx for _, idx in scored] + unscored
        return list(self.order)

    def move(self, person_idx: int, direction: int) -> List[int]:
        """
        Swap a person with its neighbour in the order.

        Args:
            person_idx: Index of the person to move
            direction: -1 to move up (earlier), +1 to move down (later)

        Returns:
            The new order (unchanged at the boundaries)
        """
        if person_idx not in self.order or direction == 0:
            return list(self.order)

        pos = self.order.index(person_idx)
        target = pos + (1 if direction > 0 else -1)
        if 0 <= target < len(self.order):
            self.order[pos], self.order[target] = self.order[target], self.order[pos]

        return list(self.order)

    def correlation_matrix(self) -> List[List[CorrelationCell]]:
        """Compute the correlation grid in the current order."""
        return compute_correlation_matrix(self.matrix, self.order)

    def names(self) -> List[str]:
        """Person names in the current order."""
        return [self.matrix.person(idx).name for idx in self.order]
