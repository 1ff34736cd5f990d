"""
Tests for the clustering module.
"""

import pytest
import numpy as np
import sys
import os
from sklearn.cluster import KMeans

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ratingmath.math.clusters import (
    Cluster, ClusterCache, assign_points_to_clusters, build_normalized_vectors,
    cluster_score_matrix, compute_cluster_extremes, init_clusters, kmeans,
    squared_distance, update_cluster_centers
)
from ratingmath.math.score_matrix import ScoreMatrix


class TestCluster:
    """Tests for the Cluster class."""

    def test_init(self):
        """Test Cluster initialization."""
        cluster = Cluster(np.array([1.0, 2.0]), [1, 3], 0)

        assert np.array_equal(cluster.center, [1.0, 2.0])
        assert cluster.members == [1, 3]
        assert cluster.id == 0

        cluster_default = Cluster(np.array([1.0, 2.0]))
        assert cluster_default.members == []
        assert cluster_default.id is None

    def test_update_center(self):
        """Centers move to the member mean; empty clusters stay put."""
        data = np.array([[1.0, 1.0], [2.0, 2.0], [3.0, 3.0]])

        cluster = Cluster(np.array([0.0, 0.0]), [0, 1])
        cluster.update_center(data)
        assert np.allclose(cluster.center, [1.5, 1.5])

        cluster = Cluster(np.array([5.0, 5.0]), [])
        cluster.update_center(data)
        assert np.allclose(cluster.center, [5.0, 5.0])


class TestNormalizedVectors:
    """Tests for imputation and standardization."""

    def test_imputes_with_own_mean(self):
        """Absent scores take the person's mean before standardizing."""
        matrix = ScoreMatrix.from_rows({'A': [1, None, 3]})
        vectors = build_normalized_vectors(matrix)

        expected = np.array([-1.0, 0.0, 1.0]) / np.sqrt(2.0 / 3.0)
        assert np.allclose(vectors[0], expected)

    def test_zero_std_divides_by_one(self):
        """Constant and fully absent rows become zero vectors."""
        matrix = ScoreMatrix.from_rows({
            'A': [2, 2, None],
            'B': [None, None, None],
        })
        vectors = build_normalized_vectors(matrix)

        assert np.array_equal(vectors, np.zeros((2, 3)))

    def test_rows_are_standardized(self, example_matrix):
        """Each row has zero mean and unit population std."""
        vectors = build_normalized_vectors(example_matrix)

        assert vectors.shape == (3, 3)
        assert np.allclose(vectors.mean(axis=1), 0.0)
        assert np.allclose(vectors.std(axis=1), 1.0)


class TestClusteringUtils:
    """Tests for the clustering helpers."""

    def test_squared_distance(self):
        """Test squared Euclidean distance."""
        assert squared_distance(np.array([1.0, 2.0]), np.array([4.0, 6.0])) == 25.0

    def test_init_clusters_uses_first_points(self):
        """Seeds are the first k points, in order."""
        data = np.array([[5.0], [1.0], [3.0]])
        clusters = init_clusters(data, 2)

        assert [c.id for c in clusters] == [0, 1]
        assert np.array_equal(clusters[0].center, [5.0])
        assert np.array_equal(clusters[1].center, [1.0])

    def test_assign_ties_go_to_lowest_cluster(self):
        """A point equidistant from two centers joins the first."""
        data = np.array([[0.0], [2.0], [1.0]])
        clusters = [Cluster(np.array([0.0]), [], 0), Cluster(np.array([2.0]), [], 1)]

        assert assign_points_to_clusters(data, clusters) == [0, 1, 0]
        assert clusters[0].members == [0, 2]

    def test_update_cluster_centers(self):
        """All centers are updated."""
        data = np.array([[1.0], [3.0], [10.0]])
        clusters = [Cluster(np.array([0.0]), [0, 1]), Cluster(np.array([0.0]), [2])]
        update_cluster_centers(data, clusters)

        assert np.allclose(clusters[0].center, [2.0])
        assert np.allclose(clusters[1].center, [10.0])


class TestKMeans:
    """Tests for k-means."""

    def test_empty_input(self):
        """No points or no clusters gives an empty result."""
        assert kmeans(np.zeros((0, 3)), 3)['assignments'] == []
        assert kmeans(np.ones((4, 2)), 0)['assignments'] == []
        assert kmeans(np.ones((4, 2)), -1)['centroids'] == []

    def test_separated_groups(self):
        """Two obvious groups are found."""
        data = np.array([
            [0.0, 0.0], [10.0, 10.0], [0.1, 0.0],
            [10.0, 10.1], [0.0, 0.1], [10.1, 10.0]
        ])
        result = kmeans(data, 2)

        assert result['assignments'] == [0, 1, 0, 1, 0, 1]
        assert np.allclose(result['centroids'][0], [0.1 / 3, 0.1 / 3])

    def test_matches_sklearn_with_same_seeds(self):
        """Same seeds give the same partition as scikit-learn's Lloyd k-means."""
        rng = np.random.RandomState(42)
        data = np.vstack([
            rng.normal(0, 0.5, size=(10, 3)),
            rng.normal(5, 0.5, size=(10, 3)),
            rng.normal(-5, 0.5, size=(10, 3)),
        ])
        # Interleave the groups so each seed comes from a different one
        data = data[[g * 10 + i for i in range(10) for g in range(3)]]

        result = kmeans(data, 3)
        reference = KMeans(n_clusters=3, init=data[:3], n_init=1, max_iter=25).fit(data)

        assert result['assignments'] == reference.labels_.tolist()
        assert result['assignments'] == [0, 1, 2] * 10

    def test_deterministic(self):
        """Repeated runs give identical assignments."""
        rng = np.random.RandomState(3)
        data = rng.normal(size=(30, 4))

        first = kmeans(data, 3)
        for _ in range(3):
            again = kmeans(data, 3)
            assert again['assignments'] == first['assignments']
            assert all(np.array_equal(a, b) for a, b in zip(again['centroids'], first['centroids']))

    def test_k_at_least_points(self):
        """Each distinct point becomes its own cluster at once."""
        data = np.array([[0.0, 1.0], [5.0, 5.0], [-3.0, 2.0]])
        result = kmeans(data, 5)

        assert result['assignments'] == [0, 1, 2]
        assert len(result['centroids']) == 3
        assert result['iterations'] <= 2

    def test_empty_cluster_keeps_centroid(self):
        """A cluster that loses every member keeps its previous center."""
        data = np.array([[0.0], [0.0], [5.0]])

        # Both seeds coincide, so every point ties and joins cluster 0
        first_round = kmeans(data, 2, max_iters=1)
        assert first_round['assignments'] == [0, 0, 0]
        assert np.allclose(first_round['centroids'][0], [5.0 / 3])
        assert np.array_equal(first_round['centroids'][1], [0.0])

        # The kept center then wins back the zeros
        result = kmeans(data, 2)
        assert result['assignments'] == [1, 1, 0]
        assert np.allclose(result['centroids'][0], [5.0])
        assert np.allclose(result['centroids'][1], [0.0])

    def test_iteration_cap(self):
        """No more rounds than the cap are run."""
        rng = np.random.RandomState(0)
        data = rng.normal(size=(50, 2))

        assert kmeans(data, 4, max_iters=1)['iterations'] == 1


class TestClusterScoreMatrix:
    """Tests for clustering a ScoreMatrix."""

    def test_cluster_score_matrix(self):
        """People with the same shape of opinions cluster together."""
        matrix = ScoreMatrix.from_rows({
            'A': [3, 2, -3, -2],
            'B': [-3, -2, 3, 2],
            'C': [3, 3, -2, None],
            'D': [-2, None, 3, 3],
        })
        result = cluster_score_matrix(matrix, k=2)

        assert result['k'] == 2
        assert result['assignments'] == [0, 1, 0, 1]

    def test_empty_matrix(self, empty_matrix):
        """An empty matrix has no assignments."""
        result = cluster_score_matrix(empty_matrix)

        assert result['assignments'] == []
        assert result['k'] == 3

    def test_cluster_extremes(self):
        """Favorite and least favorite location per cluster."""
        matrix = ScoreMatrix.from_rows(
            {
                'P0': [5, 1, None],
                'P1': [3, None, None],
                'P2': [-1, 4, 2],
            },
            location_names=['Oslo', 'Lima', 'Nara']
        )
        extremes = compute_cluster_extremes(matrix, [0, 0, 1], 3)

        assert len(extremes) == 3
        assert extremes[0]['members'] == ['P0', 'P1']
        assert extremes[0]['favorite']['name'] == 'Oslo'
        assert extremes[0]['favorite']['mean'] == pytest.approx(4.0)
        assert extremes[0]['least_favorite']['name'] == 'Lima'
        assert extremes[1]['favorite']['name'] == 'Lima'
        assert extremes[1]['least_favorite']['name'] == 'Oslo'
        assert extremes[2]['size'] == 0
        assert extremes[2]['favorite'] is None
        assert extremes[2]['least_favorite'] is None


class TestClusterCache:
    """Tests for the per-dataset cluster cache."""

    def test_computes_once_per_version(self):
        """The compute function runs once until the version changes."""
        calls = []

        def compute():
            calls.append(1)
            return {'assignments': [len(calls)]}

        cache = ClusterCache()
        first = cache.get(1, compute)
        second = cache.get(1, compute)

        assert first is second
        assert len(calls) == 1

        third = cache.get(2, compute)
        assert third['assignments'] == [2]
        assert cache.version == 2

    def test_invalidate(self):
        """Invalidation forces recomputation."""
        calls = []
        cache = ClusterCache()
        cache.get(1, lambda: calls.append(1) or {'assignments': []})
        cache.invalidate()

        assert cache.version is None
        cache.get(1, lambda: calls.append(1) or {'assignments': []})
        assert len(calls) == 2
