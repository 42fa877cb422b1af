"""Shared fixtures: a temporary database and offline stand-ins for external services."""

import sqlite3
from unittest.mock import MagicMock

import pytest

from songvault.core.config import Settings
from songvault.core.db import get_db
from songvault.services.analysis import SongMetadata
from songvault.vector.embeddings import DeterministicHashEmbedding, EmbeddingClient

SONG_URL = "https://storage.example.com/files/thefatrat-mayday.mp3"
SONG_BYTES = b"ID3\x03\x00fake-mp3-payload\x00\xff" * 3

ANALYSIS_PAYLOAD = {
    "summary": "An energetic song about sending a distress signal",
    "language": "English",
    "language-iso": "en",
    "explicit": False,
    "keywords": {"1": "mayday", "2": "signal"},
    "ddex moods": {"1": "Energetic", "2": "Hopeful"},
    "ddex themes": {"1": "Adventure"},
    "flags": {"violence": False},
}


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a fresh database, with tiny blob chunks."""
    return Settings(db_path=str(tmp_path / "songvault.db"), blob_chunk_size=8)


@pytest.fixture
def conn(settings):
    with get_db(settings) as connection:
        yield connection


@pytest.fixture
def song_metadata():
    return SongMetadata.model_validate(ANALYSIS_PAYLOAD)


@pytest.fixture
def analysis_client(song_metadata):
    client = MagicMock()
    client.analyze.return_value = song_metadata
    return client


@pytest.fixture
def payload_fetcher():
    fetcher = MagicMock()
    fetcher.fetch.return_value = SONG_BYTES
    return fetcher


@pytest.fixture
def embedding_client():
    return EmbeddingClient(DeterministicHashEmbedding(dimension=16))


def count_rows(settings, table: str) -> int:
    connection = sqlite3.connect(settings.db_path)
    try:
        return connection.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        connection.close()


@pytest.fixture
def row_count(settings):
    """Count rows in a table through a separate connection."""
    return lambda table: count_rows(settings, table)
