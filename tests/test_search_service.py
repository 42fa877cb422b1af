"""Tests for semantic song search over the stored corpus."""

from unittest.mock import MagicMock, patch

import pytest

from songvault.core.dao import SongRepository
from songvault.core.db import get_db
from songvault.core.errors import DatabaseError, EmbeddingError
from songvault.core.schema import MediaRecord
from songvault.core.search_service import SearchService


def _insert_songs(settings, embeddings):
    with get_db(settings) as conn:
        repository = SongRepository(conn)
        for i, embedding in enumerate(embeddings):
            repository.insert(MediaRecord(
                source_key=f"https://example.com/{i}.mp3",
                blob_id=f"blob-{i}",
                filename=f"{i}.mp3",
                language="English",
                language_iso="en",
                summary=f"song {i}",
                explicit=False,
                keywords=[],
                moods=[],
                themes=[],
                flags=None,
                embedding=embedding,
            ))


@pytest.fixture
def query_client():
    """Embedding client whose query vector is always [1, 0]."""
    client = MagicMock()
    client.embed.return_value = [1.0, 0.0]
    return client


def test_search_ranks_by_cosine_similarity(settings, query_client):
    _insert_songs(settings, [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])

    results = SearchService(settings, query_client).search("energetic", k=2)

    assert [r.record.summary for r in results] == ["song 0", "song 2"]
    assert results[0].score == 1.0
    assert results[1].score == pytest.approx(0.7071, abs=1e-4)
    query_client.embed.assert_called_once_with("energetic")


def test_search_defaults_to_configured_top_k(settings, query_client):
    _insert_songs(settings, [[1.0, float(i)] for i in range(7)])

    assert len(SearchService(settings, query_client).search("anything")) == settings.search_top_k == 5


def test_search_k_larger_than_corpus(settings, query_client):
    _insert_songs(settings, [[1.0, 0.0], [0.0, 1.0]])
    assert len(SearchService(settings, query_client).search("anything", k=10)) == 2


def test_search_k_zero(settings, query_client):
    _insert_songs(settings, [[1.0, 0.0]])
    assert SearchService(settings, query_client).search("anything", k=0) == []


def test_search_negative_k(settings, query_client):
    with pytest.raises(ValueError):
        SearchService(settings, query_client).search("anything", k=-1)


def test_search_empty_corpus(settings, query_client):
    assert SearchService(settings, query_client).search("anything") == []


def test_embedding_failure_propagates(settings):
    """A failed query embedding is an error, not an empty ranking."""
    _insert_songs(settings, [[1.0, 0.0]])
    client = MagicMock()
    client.embed.side_effect = EmbeddingError("embedding service returned HTTP 503")

    with pytest.raises(EmbeddingError):
        SearchService(settings, client).search("anything")


def test_store_failure_propagates(settings, query_client):
    with patch.object(SongRepository, "list_all", side_effect=DatabaseError("corpus scan failed")):
        with pytest.raises(DatabaseError):
            SearchService(settings, query_client).search("anything")
