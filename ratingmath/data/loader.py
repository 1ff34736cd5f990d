"""
Dataset ingestion for ratingmath.

Reads the survey export (one row per respondent, one column per location)
into a ScoreMatrix. The first row is the header; location labels are taken
from the score columns' headers.
"""

import logging
import math
import os
import re
import pandas as pd
from typing import Any, List, Optional

from ratingmath.math.score_matrix import Person, ScoreMatrix, default_location_name


logger = logging.getLogger(__name__)

# Default column layout of the survey export (0-based, end inclusive)
NAME_COL_INDEX = 1
SCORE_START_COL_INDEX = 5
SCORE_END_COL_INDEX = 10

LOCATION_HEADER_RE = re.compile(r'Score the following locations:\s*\[(.+?)\]\s*$', re.IGNORECASE)


def _cell_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and math.isnan(value):
        return ''
    return str(value)


def parse_score(value: Any) -> Optional[float]:
    """
    Parse one score cell.

    Args:
        value: Raw cell content

    Returns:
        The score, or None for blank, non-numeric or non-finite cells
    """
    text = _cell_text(value).strip()
    if not text:
        return None

    # Forms often export positive scores as "+3"
    if text.startswith('+'):
        text = text[1:]

    try:
        number = float(text)
    except ValueError:
        return None

    return number if math.isfinite(number) else None


def location_name_from_header(header: Any, index: int) -> str:
    """
    Derive a location label from its column header.

    Args:
        header: Header cell of the score column
        index: 0-based location index

    Returns:
        The bracketed name from "Score the following locations: [X]",
        otherwise the trimmed header, otherwise "Location {index + 1}"
    """
    text = _cell_text(header)
    match = LOCATION_HEADER_RE.search(text)
    if match:
        return match.group(1).strip()

    trimmed = text.strip()
    return trimmed or default_location_name(index)


def score_matrix_from_frame(frame: pd.DataFrame,
                            name_col: int = NAME_COL_INDEX,
                            score_start_col: int = SCORE_START_COL_INDEX,
                            score_end_col: int = SCORE_END_COL_INDEX) -> ScoreMatrix:
    """
    Build a ScoreMatrix from a raw frame whose first row is the header.

    Args:
        frame: Raw cells, header included, positional columns
        name_col: Column holding the respondent name
        score_start_col: First score column
        score_end_col: Last score column (inclusive)

    Returns:
        ScoreMatrix

    Raises:
        ValueError: If no people are found in the name column
    """
    rows = frame.values.tolist()
    header = rows[0] if rows else []
    score_cols = list(range(score_start_col, score_end_col + 1))

    location_names = [
        location_name_from_header(header[col] if col < len(header) else None, i)
        for i, col in enumerate(score_cols)
    ]

    people: List[Person] = []
    seen = set()
    skipped = 0
    for row in rows[1:]:
        name = _cell_text(row[name_col]).strip() if name_col < len(row) else ''
        if not name:
            skipped += 1
            continue

        if name in seen:
            logger.warning(f"Duplicate respondent {name!r}; keeping the first row")
            continue
        seen.add(name)

        scores = [parse_score(row[col]) if col < len(row) else None for col in score_cols]
        people.append(Person(name, scores))

    if not people:
        raise ValueError("No people found in the expected name column.")

    if skipped:
        logger.debug(f"Skipped {skipped} rows without a name")

    return ScoreMatrix(people, location_names)


def load_score_matrix(source: Any,
                      name_col: int = NAME_COL_INDEX,
                      score_start_col: int = SCORE_START_COL_INDEX,
                      score_end_col: int = SCORE_END_COL_INDEX) -> ScoreMatrix:
    """
    Load a ScoreMatrix from a CSV file, URL or file-like object.

    Args:
        source: Local path, http(s) URL or readable buffer
        name_col: Column holding the respondent name
        score_start_col: First score column
        score_end_col: Last score column (inclusive)

    Returns:
        ScoreMatrix
    """
    if isinstance(source, str) and not re.match(r'^https?://', source) and not os.path.exists(source):
        raise FileNotFoundError(f"Dataset not found: {source}")

    frame = pd.read_csv(source, header=None, dtype=str, keep_default_na=False, skip_blank_lines=True)

    # Drop rows that are entirely blank (e.g. ",,,,")
    blank = frame.apply(lambda row: all(not _cell_text(v).strip() for v in row), axis=1)
    frame = frame[~blank]

    matrix = score_matrix_from_frame(frame, name_col, score_start_col, score_end_col)
    logger.info(f"Loaded {len(matrix)} people; score dimension = {matrix.n_locations}")
    return matrix
