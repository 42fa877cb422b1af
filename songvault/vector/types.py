"""Result types for similarity ranking."""

from dataclasses import dataclass
from typing import Any


@dataclass
class RankedResult:
    """A corpus item with its similarity to the query."""

    record: Any
    """The ranked corpus item (a MediaRecord for song search)"""

    score: float
    """Cosine similarity to the query, in [-1, 1]; 0.0 for zero-magnitude vectors"""
