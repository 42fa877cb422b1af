"""Tests for settings loading and validation."""

from songvault.core.config import Settings, get_embedding_provider
from songvault.vector.embeddings import DeterministicHashEmbedding, GoogleGenerativeEmbedding


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DB_PATH", str(tmp_path / "x.db"))
    monkeypatch.setenv("EMBED_PROVIDER", "google")
    monkeypatch.setenv("GOOGLE_API_KEY", "g-key")
    monkeypatch.setenv("RAPID_API_KEY", "r-key")
    monkeypatch.setenv("EMBED_DIMENSION", "768")
    monkeypatch.setenv("SEARCH_TOP_K", "3")
    monkeypatch.setenv("HTTP_TIMEOUT_SEC", "12.5")

    settings = Settings.from_env(dotenv_path=str(tmp_path / "missing.env"))

    assert settings.db_path == str(tmp_path / "x.db")
    assert settings.embed_provider == "google"
    assert settings.embed_dimension == 768
    assert settings.search_top_k == 3
    assert settings.http_timeout_sec == 12.5
    assert settings.validate() == []


def test_validate_reports_issues():
    settings = Settings(embed_provider="bogus", blob_chunk_size=0, search_top_k=-1)
    issues = settings.validate()

    assert any("EMBED_PROVIDER" in issue for issue in issues)
    assert any("RAPID_API_KEY" in issue for issue in issues)
    assert any("BLOB_CHUNK_SIZE" in issue for issue in issues)
    assert any("SEARCH_TOP_K" in issue for issue in issues)


def test_google_requires_api_key():
    issues = Settings(embed_provider="google", rapid_api_key="r").validate()
    assert issues == ["EMBED_PROVIDER=google requires GOOGLE_API_KEY"]


def test_get_embedding_provider():
    assert isinstance(get_embedding_provider(Settings()), DeterministicHashEmbedding)
    assert get_embedding_provider(Settings(embed_dimension=32)).get_dimension() == 32
    provider = get_embedding_provider(Settings(embed_provider="google", google_api_key="k"))
    assert isinstance(provider, GoogleGenerativeEmbedding)
    assert provider.model_name == "embedding-001"
