"""
K-means clustering implementation for ratingmath.

This module groups people by the shape of their score vectors. Vectors are
mean-imputed and standardized per person, then partitioned with a
deterministic k-means seeded from the first k people, so that the same
dataset always yields the same clusters.
"""

import logging
import threading
import numpy as np
from typing import Any, Callable, Dict, List, Optional

from ratingmath.math.score_matrix import ScoreMatrix


DEFAULT_K = 3
MAX_ITERS = 25

logger = logging.getLogger(__name__)


class Cluster:
    """
    Represents a cluster in K-means clustering.
    """

    def __init__(self,
                 center: np.ndarray,
                 members: Optional[List[int]] = None,
                 id: Optional[int] = None):
        """
        Initialize a cluster with a center and optional members.

        Args:
            center: The center of the cluster
            members: Indices of members belonging to the cluster
            id: Cluster id in [0, k)
        """
        self.center = np.array(center, dtype=float)
        self.members = [] if members is None else list(members)
        self.id = id

    def add_member(self, idx: int) -> None:
        """Add a member to the cluster."""
        self.members.append(idx)

    def clear_members(self) -> None:
        """Clear all members from the cluster."""
        self.members = []

    def update_center(self, data: np.ndarray) -> None:
        """
        Move the center to the mean of the members.

        A cluster without members keeps its current center.

        Args:
            data: Data matrix containing all points
        """
        if not self.members:
            return
        self.center = np.mean(data[self.members], axis=0)

    def __repr__(self) -> str:
        """String representation of the cluster."""
        return f"Cluster(id={self.id}, members={len(self.members)})"


def build_normalized_vectors(matrix: ScoreMatrix) -> np.ndarray:
    """
    Impute and standardize each person's score vector.

    Absent scores are filled with the person's own mean (0 when the person
    rated nothing); the filled vector is then shifted to zero mean and divided
    by its own population standard deviation, or by 1 when that is zero.

    Args:
        matrix: ScoreMatrix

    Returns:
        Array of shape (people, locations)
    """
    values = matrix.values
    normalized = np.zeros(values.shape, dtype=float)

    for i, row in enumerate(values):
        present = ~np.isnan(row)
        fill = row[present].mean() if present.any() else 0.0
        filled = np.where(present, row, fill)

        std = filled.std() if filled.size else 0.0
        if std == 0:
            std = 1.0
        normalized[i] = (filled - filled.mean()) / std if filled.size else filled

    return normalized


def squared_distance(a: np.ndarray, b: np.ndarray) -> float:
    """
    Squared Euclidean distance between two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Squared distance
    """
    diff = a - b
    return float(np.dot(diff, diff))


def init_clusters(data: np.ndarray, k: int) -> List[Cluster]:
    """
    Seed k clusters from the first k points, in input order.

    Args:
        data: Data matrix
        k: Number of clusters (at most the number of points)

    Returns:
        List of initialized clusters
    """
    return [Cluster(data[i], [], i) for i in range(k)]


def assign_points_to_clusters(data: np.ndarray, clusters: List[Cluster]) -> List[int]:
    """
    Assign each data point to the nearest cluster.

    Ties go to the cluster with the lowest id.

    Args:
        data: Data matrix
        clusters: List of clusters

    Returns:
        Cluster id per point
    """
    for cluster in clusters:
        cluster.clear_members()

    assignments = []
    for i, point in enumerate(data):
        best_idx = 0
        best_dist = None
        for c_idx, cluster in enumerate(clusters):
            dist = squared_distance(point, cluster.center)
            if best_dist is None or dist < best_dist:
                best_dist = dist
                best_idx = c_idx

        clusters[best_idx].add_member(i)
        assignments.append(best_idx)

    return assignments


def update_cluster_centers(data: np.ndarray, clusters: List[Cluster]) -> None:
    """
    Update the centers of all clusters.

    Args:
        data: Data matrix
        clusters: List of clusters
    """
    for cluster in clusters:
        cluster.update_center(data)


def kmeans(data: np.ndarray, k: int, max_iters: int = MAX_ITERS) -> Dict[str, Any]:
    """
    Perform K-means clustering on the data.

    Args:
        data: Data matrix, one row per point
        k: Requested number of clusters
        max_iters: Maximum number of assignment rounds

    Returns:
        Dictionary with 'assignments' (cluster id per point), 'centroids'
        (one array per cluster) and 'iterations'
    """
    data = np.asarray(data, dtype=float)
    n_points = data.shape[0] if data.ndim > 0 else 0

    if n_points == 0 or k <= 0:
        return {'assignments': [], 'centroids': [], 'iterations': 0}

    k = min(k, n_points)
    clusters = init_clusters(data, k)

    assignments = None
    iterations = 0
    for _ in range(max(max_iters, 1)):
        iterations += 1
        new_assignments = assign_points_to_clusters(data, clusters)
        update_cluster_centers(data, clusters)

        if new_assignments == assignments:
            logger.debug(f"K-means converged after {iterations} iterations")
            break

        assignments = new_assignments
    else:
        logger.debug(f"K-means stopped at the iteration cap ({max_iters})")

    return {
        'assignments': assignments,
        'centroids': [cluster.center for cluster in clusters],
        'iterations': iterations
    }


def cluster_score_matrix(matrix: ScoreMatrix,
                         k: int = DEFAULT_K,
                         max_iters: int = MAX_ITERS) -> Dict[str, Any]:
    """
    Cluster the people of a ScoreMatrix on their normalized vectors.

    Args:
        matrix: ScoreMatrix
        k: Requested number of clusters
        max_iters: Maximum number of assignment rounds

    Returns:
        Result of kmeans, plus 'k' (the requested k)
    """
    if matrix.is_empty():
        return {'assignments': [], 'centroids': [], 'iterations': 0, 'k': k}

    result = kmeans(build_normalized_vectors(matrix), k, max_iters)
    result['k'] = k
    return result


def compute_cluster_extremes(matrix: ScoreMatrix,
                             assignments: List[int],
                             k: int) -> List[Dict[str, Any]]:
    """
    Find each cluster's favorite and least favorite location.

    A location's mean is taken over the members that rated it; locations no
    member rated are skipped. Empty clusters report None for both.

    Args:
        matrix: ScoreMatrix
        assignments: Cluster id per person
        k: Number of clusters

    Returns:
        One dictionary per cluster id in [0, k)
    """
    result = []

    for cluster_id in range(max(k, 0)):
        members = [i for i, c in enumerate(assignments) if c == cluster_id]
        favorite = None
        least_favorite = None

        for loc in range(matrix.n_locations):
            vals = [matrix.person(i).scores[loc] for i in members]
            vals = [v for v in vals if v is not None]
            if not vals:
                continue

            entry = {
                'index': loc,
                'name': matrix.location_name(loc),
                'mean': float(np.mean(vals)),
                'n': len(vals)
            }
            if favorite is None or entry['mean'] > favorite['mean']:
                favorite = entry
            if least_favorite is None or entry['mean'] < least_favorite['mean']:
                least_favorite = entry

        result.append({
            'id': cluster_id,
            'members': [matrix.person(i).name for i in members],
            'size': len(members),
            'favorite': favorite,
            'least_favorite': least_favorite
        })

    return result


class ClusterCache:
    """
    Memoizes one clustering result per dataset version.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._key = None
        self._value = None

    def get(self, version: int, compute: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        """
        Return the cached result for a dataset version, computing it on a miss.

        Args:
            version: Dataset version the result belongs to
            compute: Zero-argument function producing the result

        Returns:
            Cached clustering result
        """
        with self._lock:
            if self._key != version or self._value is None:
                logger.info(f"Computing clusters for dataset version {version}")
                self._value = compute()
                self._key = version
            return self._value

    def invalidate(self) -> None:
        """Drop any cached result."""
        with self._lock:
            self._key = None
            self._value = None

    @property
    def version(self) -> Optional[int]:
        """Dataset version of the cached result, if any."""
        return self._key
