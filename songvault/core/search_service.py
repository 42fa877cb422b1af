"""
Semantic song search: embed the query, scan every stored song, rank by cosine
similarity.

Errors from the embedding call or the document store propagate to the
caller; a failed query never turns into an empty result.
"""

from typing import List, Optional

from .config import Settings
from .dao import SongRepository
from .db import get_db
from ..vector.similarity import rank
from ..vector.types import RankedResult
from ..util.logging import logger


class SearchService:
    """Ranks stored songs against a free-text query."""

    def __init__(self, settings: Settings, embedding_client):
        self.settings = settings
        self.embedding_client = embedding_client

    def search(self, query_text: str, k: Optional[int] = None) -> List[RankedResult]:
        """
        Return up to k stored songs most similar to query_text.

        Args:
            query_text: Free text describing the songs to find
            k: Maximum number of results, defaults to settings.search_top_k

        Returns:
            RankedResult list (record is a MediaRecord), highest score first
        """
        if k is None:
            k = self.settings.search_top_k
        if k < 0:
            raise ValueError("k must be >= 0")

        query_embedding = self.embedding_client.embed(query_text)

        with get_db(self.settings) as conn:
            corpus = SongRepository(conn).list_all()

        results = rank(query_embedding, corpus, k)
        logger.log_search(
            query_text,
            corpus_size=len(corpus),
            returned=len(results),
            top_score=results[0].score if results else None,
        )
        return results
