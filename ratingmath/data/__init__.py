"""
Dataset ingestion for ratingmath.
"""

from ratingmath.data.loader import load_score_matrix, parse_score, location_name_from_header
