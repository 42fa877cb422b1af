"""
Cosine similarity and linear-scan top-K ranking.

Scoring is O(N*D) over the whole corpus; there is no index.
"""

from typing import Callable, List, Optional, Sequence

import numpy as np

from ..core.errors import DimensionMismatchError
from .types import RankedResult


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors.

    Returns 0.0 when either vector has zero magnitude, so the result is never
    NaN. Raises DimensionMismatchError for different lengths and ValueError
    for vectors with non-finite components.
    """
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)

    if vec_a.shape != vec_b.shape:
        raise DimensionMismatchError(expected=vec_a.size, actual=vec_b.size)

    peak_a = float(np.max(np.abs(vec_a))) if vec_a.size else 0.0
    peak_b = float(np.max(np.abs(vec_b))) if vec_b.size else 0.0
    if peak_a == 0 or peak_b == 0:
        return 0.0

    # Scale to a peak of 1 so the dot products neither underflow nor overflow.
    vec_a = vec_a / peak_a
    vec_b = vec_b / peak_b

    sq_a = float(np.dot(vec_a, vec_a))
    sq_b = float(np.dot(vec_b, vec_b))

    # sqrt(|a|^2 * |b|^2) keeps score(v, v) exactly 1.0
    score = float(np.dot(vec_a, vec_b)) / float(np.sqrt(sq_a * sq_b))
    if not np.isfinite(score):
        raise ValueError("cosine similarity is undefined for non-finite vectors")
    return max(-1.0, min(1.0, score))


def rank(query_embedding: Sequence[float], corpus: Sequence, k: int = 5,
         embedding_of: Optional[Callable] = None) -> List[RankedResult]:
    """Score every corpus item against the query and return the top k.

    Results are sorted by descending score; equal scores keep corpus order.
    `embedding_of` extracts the vector from a corpus item and defaults to
    the item's `embedding` attribute.
    """
    if k < 0:
        raise ValueError("k must be >= 0")
    if k == 0 or not corpus:
        return []

    if embedding_of is None:
        embedding_of = lambda item: item.embedding

    query = np.asarray(query_embedding, dtype=np.float64)
    if query.ndim != 1:
        raise ValueError("query embedding must be one-dimensional")

    scored = []
    for item in corpus:
        vector = embedding_of(item)
        if len(vector) != query.size:
            raise DimensionMismatchError(expected=query.size, actual=len(vector), context="corpus embedding")
        scored.append(RankedResult(record=item, score=cosine_similarity(query, vector)))

    # sorted() is stable, so ties stay in corpus order
    scored = sorted(scored, key=lambda result: result.score, reverse=True)
    return scored[:k]
