"""
Session state for ratingmath.

A Session owns the currently loaded ScoreMatrix together with the little
state derived from it: a dataset version bumped on every load, the memoized
cluster assignment for that version, and the working order of the
correlation matrix. Everything else is recomputed on demand.
"""

import logging
import threading
import time
from typing import Any, Dict, List, Optional

from ratingmath.components.config import Config, ConfigManager
from ratingmath.data.loader import load_score_matrix
from ratingmath.math.clusters import ClusterCache, cluster_score_matrix, compute_cluster_extremes
from ratingmath.math.corr import CorrelationOrder, best_and_worst_matches
from ratingmath.math.narrative import compare_people
from ratingmath.math.ranking import DEFAULT_EXPONENT, MAX_EXPONENT, MIN_EXPONENT, rank_locations
from ratingmath.math.score_matrix import ScoreMatrix
from ratingmath.math.stats import (
    global_pair_extremes, global_summary, location_signed_squared_sums,
    most_different_location, person_leaderboard, person_stats, polarization_extremes
)
from ratingmath.utils.general import clamp


logger = logging.getLogger(__name__)


class Session:
    """
    Holds one loaded dataset and its session-scoped cache.
    """

    def __init__(self,
                 matrix: Optional[ScoreMatrix] = None,
                 config: Optional[Config] = None):
        """
        Initialize a session.

        Args:
            matrix: Optional initial ScoreMatrix
            config: Configuration (defaults to the shared instance)
        """
        self.config = config or ConfigManager.get_config()
        self.lock = threading.RLock()
        self.version = 0
        self.loaded_at = None
        self.source = None
        self.matrix = ScoreMatrix()
        self.order = CorrelationOrder(self.matrix)
        self._clusters = ClusterCache()

        if matrix is not None:
            self.load_matrix(matrix)

    def load_matrix(self, matrix: ScoreMatrix, source: Optional[str] = None) -> int:
        """
        Replace the dataset, invalidating everything derived from it.

        Args:
            matrix: New ScoreMatrix
            source: Where the matrix came from, for reporting

        Returns:
            The new dataset version
        """
        with self.lock:
            self.matrix = matrix
            self.version += 1
            self.source = source
            self.loaded_at = int(time.time() * 1000)
            self.order = CorrelationOrder(matrix)
            self._clusters.invalidate()

            logger.info(f"Loaded dataset version {self.version} with {len(matrix)} people")
            return self.version

    def load(self, source: Optional[str] = None) -> int:
        """
        Load a dataset from a CSV source using the configured column layout.

        Args:
            source: Path or URL (defaults to data.source)

        Returns:
            The new dataset version
        """
        source = source or self.config.get('data.source')
        if not source:
            raise ValueError("No data source configured")

        matrix = load_score_matrix(
            source,
            name_col=self.config.get('data.name-col', 1),
            score_start_col=self.config.get('data.score-start-col', 5),
            score_end_col=self.config.get('data.score-end-col', 10)
        )
        return self.load_matrix(matrix, source)

    def person_index(self, name: str) -> Optional[int]:
        """Row index of a person, or None if unknown."""
        return self.matrix.index_of(name)

    def get_summary(self) -> Dict[str, Any]:
        """
        Short description of the loaded dataset.

        Returns:
            Dictionary with version, source, people and locations
        """
        return {
            'version': self.version,
            'source': self.source,
            'loaded_at': self.loaded_at,
            'people': self.matrix.names(),
            'locations': [self.matrix.location_name(i) for i in range(self.matrix.n_locations)]
        }

    # Clustering

    def clusters(self) -> Dict[str, Any]:
        """
        Cluster assignment for the current dataset, computed once per load.

        Returns:
            Clustering result (see cluster_score_matrix)
        """
        k = self.config.get('clustering.k', 3)
        max_iters = self.config.get('clustering.max-iters', 25)
        with self.lock:
            matrix = self.matrix
            return self._clusters.get(
                self.version,
                lambda: cluster_score_matrix(matrix, k, max_iters)
            )

    def cluster_of(self, person_idx: int) -> Optional[int]:
        """
        Cluster id of one person.

        Args:
            person_idx: Index of the person

        Returns:
            Cluster id, or None if the person is not clustered
        """
        assignments = self.clusters()['assignments']
        if 0 <= person_idx < len(assignments):
            return assignments[person_idx]
        return None

    def cluster_extremes(self) -> List[Dict[str, Any]]:
        """Favorite and least favorite location per cluster."""
        result = self.clusters()
        return compute_cluster_extremes(self.matrix, result['assignments'], result['k'])

    # Correlation matrix

    def correlation_matrix(self) -> Dict[str, Any]:
        """
        Correlation grid in the current working order.

        Returns:
            Dictionary with 'order' (names) and 'cells' (r/overlap per cell)
        """
        with self.lock:
            grid = self.order.correlation_matrix()
            return {
                'order': self.order.names(),
                'cells': [[cell.to_dict() for cell in row] for row in grid]
            }

    def sort_by_person(self, person_idx: int) -> List[str]:
        """Reorder the matrix around one person; returns the new name order."""
        with self.lock:
            self.order.sort_by_person(person_idx)
            return self.order.names()

    def move_in_order(self, person_idx: int, direction: int) -> List[str]:
        """Move one person up (-1) or down (+1); returns the new name order."""
        with self.lock:
            self.order.move(person_idx, direction)
            return self.order.names()

    # Queries

    def ranking(self, exponent: Optional[float] = None) -> List[Dict[str, Any]]:
        """
        Power ranking of locations, clamping the exponent to the configured range.

        Args:
            exponent: Exponent (defaults to ranking.exponent)

        Returns:
            Ranking entries, best first
        """
        if exponent is None:
            exponent = self.config.get('ranking.exponent', DEFAULT_EXPONENT)
        exponent = clamp(
            exponent,
            self.config.get('ranking.min-exponent', MIN_EXPONENT),
            self.config.get('ranking.max-exponent', MAX_EXPONENT)
        )
        return rank_locations(self.matrix, exponent)

    def person_report(self, person_idx: int) -> Dict[str, Any]:
        """
        Everything known about one person.

        Args:
            person_idx: Index of the person

        Returns:
            Dictionary with stats, matches, most different location and cluster
        """
        return {
            'name': self.matrix.person(person_idx).name,
            'stats': person_stats(self.matrix.person(person_idx)),
            'matches': best_and_worst_matches(self.matrix, person_idx),
            'most_different': most_different_location(self.matrix, person_idx),
            'cluster': self.cluster_of(person_idx)
        }

    def compare(self, a_idx: int, b_idx: int) -> Optional[Dict[str, Any]]:
        """Comparative metrics for two people (None on insufficient overlap)."""
        return compare_people(self.matrix, a_idx, b_idx)

    def overview(self) -> Dict[str, Any]:
        """
        Group-level report over the whole dataset.

        Returns:
            Dictionary aggregating the global statistics
        """
        start_time = time.time()
        matrix = self.matrix

        result = {
            'version': self.version,
            'summary': global_summary(matrix),
            'people': person_leaderboard(matrix, self.config.get('report.top-n', 3)),
            'pairs': global_pair_extremes(matrix),
            'polarization': polarization_extremes(matrix),
            'signed_squared_sums': location_signed_squared_sums(matrix),
            'ranking': self.ranking(),
            'clusters': self.cluster_extremes()
        }

        logger.debug(f"Overview computed in {time.time() - start_time:.3f}s")
        return result


class SessionManager:
    """
    Singleton manager for the session.
    """

    _instance = None
    _lock = threading.RLock()

    @classmethod
    def get_session(cls, config: Optional[Config] = None) -> Session:
        """
        Get the session instance.

        Args:
            config: Configuration for a newly created session

        Returns:
            Session instance
        """
        with cls._lock:
            if cls._instance is None:
                cls._instance = Session(config=config)

            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the current session."""
        with cls._lock:
            cls._instance = None
