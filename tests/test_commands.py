"""Tests for the command surface: results instead of exceptions."""

from unittest.mock import MagicMock

import pytest

from songvault.commands import CommandResult, SongVault
from songvault.core.config import Settings
from songvault.core.errors import ServiceError

from conftest import SONG_BYTES, SONG_URL


@pytest.fixture
def vault(settings, analysis_client, embedding_client, payload_fetcher):
    return SongVault(settings, analysis_client=analysis_client,
                     embedding_client=embedding_client, payload_fetcher=payload_fetcher)


def test_ingest_then_skip(vault):
    first = vault.ingest(SONG_URL)
    second = vault.ingest(SONG_URL)

    assert isinstance(first, CommandResult)
    assert first.ok is True
    assert first.data["status"] == "ingested"
    assert first.data["record"]["source_key"] == SONG_URL
    assert second.ok is True
    assert second.data["status"] == "skipped"
    assert "already exists" in second.message


def test_failed_ingest_reports_stage(vault, analysis_client):
    analysis_client.analyze.side_effect = ServiceError("analysis service returned HTTP 500")

    result = vault.ingest(SONG_URL)

    assert result.ok is False
    assert result.stage == "analyze"
    assert "HTTP 500" in result.message


def test_search(vault):
    vault.ingest(SONG_URL)

    result = vault.search("energetic song about a distress signal", k=3)

    assert result.ok is True
    assert len(result.data["results"]) == 1
    assert result.data["results"][0]["source_key"] == SONG_URL


def test_search_failure_is_reported(vault, embedding_client):
    vault.ingest(SONG_URL)
    embedding_client.provider = MagicMock()
    embedding_client.provider.embed_text.side_effect = RuntimeError("quota exceeded")

    result = vault.search("anything")

    assert result.ok is False
    assert result.stage == "embed"


def test_download(vault, tmp_path):
    record_id = vault.ingest(SONG_URL).data["record"]["id"]
    output = tmp_path / "downloaded_song.mp3"

    result = vault.download(record_id, str(output))

    assert result.ok is True
    assert output.read_bytes() == SONG_BYTES


def test_download_unknown_song(vault, tmp_path):
    result = vault.download(42, str(tmp_path / "x.mp3"))
    assert result.ok is False
    assert result.stage == "lookup"


@pytest.mark.parametrize("command", ["ingest", "search", "download"])
def test_unusable_database_path_is_reported(tmp_path, analysis_client, embedding_client, payload_fetcher, command):
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("")
    settings = Settings(db_path=str(blocker / "sub" / "songvault.db"))
    vault = SongVault(settings, analysis_client=analysis_client,
                      embedding_client=embedding_client, payload_fetcher=payload_fetcher)

    if command == "ingest":
        result = vault.ingest(SONG_URL)
    elif command == "search":
        result = vault.search("anything")
    else:
        result = vault.download(1, str(tmp_path / "out.mp3"))

    assert result.ok is False
    assert result.stage == "connect"
