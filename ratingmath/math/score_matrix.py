"""
Score matrix implementation for ratingmath.

This module provides the data model consumed by every analytics engine:
a sparse matrix of people x locations, where each cell is a numeric score
or absent. Storage is a pandas DataFrame with NaN for absent cells; the
public accessors hand out ``None`` instead of NaN.
"""

import numpy as np
import pandas as pd
from typing import Any, Callable, Dict, List, Optional, Sequence

from ratingmath.utils.general import is_present


class Person:
    """
    One respondent: a unique name and a fixed-length vector of scores.
    """

    def __init__(self, name: str, scores: Sequence[Optional[float]]):
        """
        Initialize a person.

        Args:
            name: Unique, non-empty name
            scores: Score per location, None where absent
        """
        self.name = name
        self.scores = tuple(float(v) if is_present(v) else None for v in scores)

    def present_count(self) -> int:
        """Number of locations this person rated."""
        return sum(1 for v in self.scores if v is not None)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Person):
            return NotImplemented
        return self.name == other.name and self.scores == other.scores

    def __repr__(self) -> str:
        """String representation of the person."""
        return f"Person(name={self.name!r}, rated={self.present_count()}/{len(self.scores)})"


def default_location_name(index: int) -> str:
    """
    Fallback label for a location without header metadata.

    Args:
        index: 0-based location index

    Returns:
        Human-readable location label
    """
    return f"Location {index + 1}"


class ScoreMatrix:
    """
    An ordered collection of people sharing the same number of locations.

    The matrix is immutable once built. Location labels are resolved through
    ``location_name(index)``, backed by an optional list of names.
    """

    def __init__(self,
                 people: Optional[List[Person]] = None,
                 location_names: Optional[List[str]] = None):
        """
        Initialize a ScoreMatrix.

        Args:
            people: People in display order
            location_names: Optional label per location index

        Raises:
            ValueError: If names are empty or duplicated, or score vectors
                differ in length
        """
        people = [] if people is None else list(people)

        seen = set()
        for person in people:
            if not person.name:
                raise ValueError("Person names must be non-empty")
            if person.name in seen:
                raise ValueError(f"Duplicate person name: {person.name}")
            seen.add(person.name)

        lengths = {len(p.scores) for p in people}
        if len(lengths) > 1:
            raise ValueError(f"Score vectors have inconsistent lengths: {sorted(lengths)}")

        if lengths:
            n_locations = lengths.pop()
        else:
            n_locations = len(location_names) if location_names else 0

        self._people = people
        self._index = {p.name: i for i, p in enumerate(people)}
        self._location_names = list(location_names) if location_names else []
        self._n_locations = n_locations

        values = np.array(
            [[np.nan if v is None else v for v in p.scores] for p in people],
            dtype=float
        ).reshape(len(people), n_locations)
        self._matrix = pd.DataFrame(values, index=[p.name for p in people])

    @classmethod
    def from_rows(cls,
                  rows: Dict[str, Sequence[Optional[float]]],
                  location_names: Optional[List[str]] = None) -> 'ScoreMatrix':
        """
        Build a ScoreMatrix from a name -> scores mapping.

        Args:
            rows: Ordered mapping of person name to score vector
            location_names: Optional label per location index

        Returns:
            New ScoreMatrix
        """
        return cls([Person(name, scores) for name, scores in rows.items()], location_names)

    @property
    def people(self) -> List[Person]:
        """Get the people in order."""
        return list(self._people)

    @property
    def values(self) -> np.ndarray:
        """Get the matrix as a numpy array with NaN for absent scores."""
        return self._matrix.values

    @property
    def matrix(self) -> pd.DataFrame:
        """Get the underlying DataFrame."""
        return self._matrix

    @property
    def n_locations(self) -> int:
        """Number of tracked locations (L)."""
        return self._n_locations

    def names(self) -> List[str]:
        """Get the list of person names in order."""
        return [p.name for p in self._people]

    def person(self, idx: int) -> Person:
        """Get a person by row index."""
        return self._people[idx]

    def index_of(self, name: str) -> Optional[int]:
        """
        Get the row index for a person name, or None if not found.

        Args:
            name: Person name

        Returns:
            Row index if found, None otherwise
        """
        return self._index.get(name)

    def location_name(self, index: int) -> str:
        """
        Resolve a location index to its label.

        Args:
            index: 0-based location index

        Returns:
            Location label
        """
        if 0 <= index < len(self._location_names) and self._location_names[index]:
            return self._location_names[index]
        return default_location_name(index)

    @property
    def location_namer(self) -> Callable[[int], str]:
        """The ``index -> name`` function for labelling outputs."""
        return self.location_name

    def location_scores(self, index: int) -> List[float]:
        """
        Present scores for one location across all people, in person order.

        Args:
            index: 0-based location index

        Returns:
            List of present scores
        """
        return [p.scores[index] for p in self._people if p.scores[index] is not None]

    def is_empty(self) -> bool:
        """True when the matrix holds no people."""
        return len(self._people) == 0

    def __len__(self) -> int:
        """Return the number of people."""
        return len(self._people)

    def __repr__(self) -> str:
        """String representation of the matrix."""
        return f"ScoreMatrix(people={len(self._people)}, locations={self._n_locations})"
