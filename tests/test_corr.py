"""
Tests for the correlation module.
"""

import pytest
import numpy as np
import sys
import os
from scipy import stats as scipy_stats

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ratingmath.math.corr import (
    CorrelationCell, CorrelationOrder, best_and_worst_matches, build_overlap,
    compute_correlation_matrix, correlation_class, pearson, person_correlation
)
from ratingmath.math.score_matrix import ScoreMatrix


@pytest.fixture
def matrix_with_outsider():
    """The example people plus D, who only rated the last location."""
    return ScoreMatrix.from_rows({
        'A': [3, -2, None],
        'B': [3, -1, 4],
        'C': [-3, -2, 0],
        'D': [None, None, 5],
    })


class TestPearson:
    """Tests for the Pearson correlation."""

    def test_simple_values(self):
        """Test known correlations."""
        assert pearson([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
        assert pearson([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)
        assert pearson([3, -1, 4], [-3, -2, 0]) == pytest.approx(9 / np.sqrt(588))

    def test_matches_scipy(self):
        """Compare with scipy's pearsonr on random vectors."""
        rng = np.random.RandomState(42)
        for _ in range(10):
            xs = rng.uniform(-3, 3, size=8)
            ys = rng.uniform(-3, 3, size=8)
            expected, _ = scipy_stats.pearsonr(xs, ys)
            assert pearson(list(xs), list(ys)) == pytest.approx(expected)

    def test_symmetric_and_bounded(self):
        """r(x, y) == r(y, x) and lies in [-1, 1]."""
        rng = np.random.RandomState(7)
        for _ in range(20):
            xs = list(rng.randint(-3, 4, size=6).astype(float))
            ys = list(rng.randint(-3, 4, size=6).astype(float))
            r = pearson(xs, ys)
            if r is None:
                continue
            assert r == pytest.approx(pearson(ys, xs))
            assert -1.0 - 1e-12 <= r <= 1.0 + 1e-12

    def test_self_correlation(self):
        """A vector with variance correlates perfectly with itself."""
        assert pearson([3, -2, 1, 0], [3, -2, 1, 0]) == pytest.approx(1.0)

    def test_too_short(self):
        """Fewer than two points is undefined."""
        assert pearson([], []) is None
        assert pearson([1], [2]) is None

    def test_zero_variance(self):
        """A constant vector is undefined."""
        assert pearson([2, 2, 2], [1, 2, 3]) is None
        assert pearson([1, 2, 3], [0, 0, 0]) is None

    def test_zero_variance_fractional(self):
        """Constant fractional vectors are undefined despite rounding in the sums."""
        for c in (0.3, 0.7, 0.01, 0.6, 3.3):
            assert pearson([c] * 3, [1, 2, 3]) is None
            assert pearson([1, 2, 3], [c] * 3) is None
        assert pearson([1.1] * 5, [1, 2, 3, 4, 5]) is None

    def test_constant_person_has_no_match(self):
        """A constant rater is skipped when ranking matches and sorting."""
        matrix = ScoreMatrix.from_rows({
            'A': [1, 2, 3],
            'B': [0.3, 0.3, 0.3],
            'C': [3, 2, 1],
        })

        assert person_correlation(matrix.person(0), matrix.person(1)).r is None
        assert best_and_worst_matches(matrix, 1) == {'best': None, 'worst': None}
        assert CorrelationOrder(matrix).sort_by_person(0) == [0, 2, 1]


class TestOverlap:
    """Tests for overlap building."""

    def test_build_overlap(self, example_matrix):
        """Only jointly rated locations are kept, in order."""
        overlap = build_overlap(example_matrix.person(0), example_matrix.person(1))

        assert overlap.xs == [3.0, -2.0]
        assert overlap.ys == [3.0, -1.0]
        assert overlap.indices == [0, 1]
        assert len(overlap) == 2
        assert list(overlap) == [(0, 3.0, 3.0), (1, -2.0, -1.0)]

    def test_example_pair(self, example_matrix):
        """A and B correlate over their two shared locations."""
        cell = person_correlation(example_matrix.person(0), example_matrix.person(1))

        assert cell.overlap_count == 2
        assert cell.r == pytest.approx(pearson([3, -2], [3, -1]))

    def test_insufficient_overlap(self, matrix_with_outsider):
        """An overlap of one location gives an absent correlation."""
        cell = person_correlation(matrix_with_outsider.person(1), matrix_with_outsider.person(3))

        assert cell.r is None
        assert cell.overlap_count == 1


class TestCorrelationMatrix:
    """Tests for the correlation matrix."""

    def test_diagonal(self, example_matrix):
        """The diagonal is 1.0 with the full vector length as overlap."""
        grid = compute_correlation_matrix(example_matrix)

        for i in range(3):
            assert grid[i][i].r == 1.0
            assert grid[i][i].overlap_count == 3

    def test_symmetric_values(self, example_matrix):
        """Cells (i, j) and (j, i) hold the same value."""
        grid = compute_correlation_matrix(example_matrix)

        for i in range(3):
            for j in range(3):
                assert grid[i][j] == grid[j][i]

    def test_custom_order(self, example_matrix):
        """Rows and columns follow the requested order."""
        grid = compute_correlation_matrix(example_matrix, [2, 0, 1])

        assert grid[0][1].r == pytest.approx(-1.0)  # C vs A
        assert grid[1][2].r == pytest.approx(1.0)   # A vs B
        assert grid[0][0] == CorrelationCell(1.0, 3)

    def test_empty(self, empty_matrix):
        """An empty matrix has an empty grid."""
        assert compute_correlation_matrix(empty_matrix) == []

    def test_cell_to_dict(self):
        """Cells serialize to r and overlap."""
        assert CorrelationCell(None, 1).to_dict() == {'r': None, 'overlap': 1}


class TestCorrelationOrder:
    """Tests for the working order of the matrix."""

    def test_sort_by_person(self, matrix_with_outsider):
        """Anchor first, then by descending r, undefined last."""
        order = CorrelationOrder(matrix_with_outsider)

        assert order.sort_by_person(2) == [2, 1, 0, 3]
        assert order.names() == ['C', 'B', 'A', 'D']

    def test_sort_puts_undefined_last_from_any_position(self, matrix_with_outsider):
        """People without a defined r go last even if they started first."""
        order = CorrelationOrder(matrix_with_outsider)
        order.order = [3, 0, 1, 2]

        assert order.sort_by_person(0) == [0, 1, 2, 3]

    def test_move(self, matrix_with_outsider):
        """Moving swaps neighbours and is a no-op at the boundaries."""
        order = CorrelationOrder(matrix_with_outsider)

        assert order.move(0, -1) == [0, 1, 2, 3]
        assert order.move(0, 1) == [1, 0, 2, 3]
        assert order.move(2, -1) == [1, 2, 0, 3]
        assert order.move(3, 1) == [1, 2, 0, 3]

    def test_reset(self, matrix_with_outsider):
        """Reset restores matrix order."""
        order = CorrelationOrder(matrix_with_outsider)
        order.sort_by_person(3)

        assert order.reset() == [0, 1, 2, 3]

    def test_matrix_follows_order(self, matrix_with_outsider):
        """The grid is computed in the current order."""
        order = CorrelationOrder(matrix_with_outsider)
        order.move(0, 1)
        grid = order.correlation_matrix()

        assert grid[0][1].r == pytest.approx(1.0)  # B vs A
        assert grid[0][3].r is None                 # B vs D


class TestMatches:
    """Tests for best and worst matches."""

    def test_best_and_worst(self, example_matrix):
        """A matches B best and C worst."""
        result = best_and_worst_matches(example_matrix, 0)

        assert result['best']['name'] == 'B'
        assert result['best']['r'] == pytest.approx(1.0)
        assert result['best']['overlap'] == 2
        assert result['worst']['name'] == 'C'
        assert result['worst']['r'] == pytest.approx(-1.0)

    def test_no_valid_match(self, matrix_with_outsider):
        """Nobody shares two locations with D."""
        result = best_and_worst_matches(matrix_with_outsider, 3)

        assert result == {'best': None, 'worst': None}

    def test_correlation_class(self):
        """Test the coarse classification."""
        assert correlation_class(0.3) == 'positive'
        assert correlation_class(0.25) == 'neutral'
        assert correlation_class(-0.26) == 'negative'
        assert correlation_class(None) == 'neutral'
