"""
Session management for ratingmath.

This module provides the session holding the loaded score matrix and its
memoized cluster assignment.
"""

from ratingmath.session.session import Session, SessionManager
