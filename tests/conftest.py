"""
Pytest configuration and shared fixtures for ratingmath tests.
"""

import os
import sys

import pytest

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ratingmath.components.config import Config
from ratingmath.math.score_matrix import ScoreMatrix


@pytest.fixture
def example_matrix():
    """Three people over three locations, one missing score."""
    return ScoreMatrix.from_rows(
        {
            'A': [3, -2, None],
            'B': [3, -1, 4],
            'C': [-3, -2, 0],
        },
        location_names=['Vancouver', 'Paris', 'Tokyo']
    )


@pytest.fixture
def empty_matrix():
    """A matrix with no people."""
    return ScoreMatrix()


@pytest.fixture
def config(monkeypatch):
    """Configuration isolated from the caller's environment."""
    for var in ('MATH_ENV', 'PORT', 'HOST', 'CORS_ORIGINS', 'DATA_SOURCE', 'DATA_NAME_COL',
                'DATA_SCORE_START_COL', 'DATA_SCORE_END_COL', 'CLUSTER_K', 'CLUSTER_MAX_ITERS',
                'RANKING_EXPONENT', 'REPORT_TOP_N', 'LOG_LEVEL'):
        monkeypatch.delenv(var, raising=False)
    return Config()
