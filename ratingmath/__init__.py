"""
Ratingmath package for people x location score analysis.

This is the analytics engine behind the score comparison dashboard:
correlation between people, clustering, location rankings and descriptive
statistics over a sparse score matrix.
"""

__version__ = '0.1.0'

from ratingmath.components.config import Config, ConfigManager
from ratingmath.math.score_matrix import Person, ScoreMatrix
from ratingmath.session import Session, SessionManager
