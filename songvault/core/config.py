"""
Runtime configuration.

Settings are read from the environment once (after loading an optional .env
file) into a Settings object that is passed to the orchestrator, the search
service and the API. Nothing below reads the environment after startup.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

VERSION = "1.0.0"

SONOTELLER_URL = "https://sonoteller-ai1.p.rapidapi.com/lyrics_ddex"
SONOTELLER_HOST = "sonoteller-ai1.p.rapidapi.com"
GOOGLE_EMBED_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:embedContent"

# GridFS default chunk size (255 KiB)
DEFAULT_CHUNK_SIZE = 261120

EMBED_PROVIDERS = ("google", "sentence", "hash")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return int(value)


@dataclass
class Settings:
    """Process-wide configuration, constructed once at startup."""

    db_path: str = "./data/songvault.db"
    blob_bucket: str = "songs_audio"
    blob_chunk_size: int = DEFAULT_CHUNK_SIZE

    rapid_api_key: Optional[str] = None
    sonoteller_url: str = SONOTELLER_URL
    sonoteller_host: str = SONOTELLER_HOST

    google_api_key: Optional[str] = None
    embed_provider: str = "hash"  # google|sentence|hash
    embed_model_name: Optional[str] = None  # provider default when unset
    embed_dimension: Optional[int] = None

    http_timeout_sec: float = 30.0
    payload_timeout_sec: float = 120.0
    search_top_k: int = 5
    debug: bool = False

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """Build settings from environment variables, loading .env first."""
        load_dotenv(dotenv_path)

        return cls(
            db_path=os.getenv("DB_PATH", "./data/songvault.db"),
            blob_bucket=os.getenv("BLOB_BUCKET", "songs_audio"),
            blob_chunk_size=int(os.getenv("BLOB_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE))),
            rapid_api_key=os.getenv("RAPID_API_KEY"),
            sonoteller_url=os.getenv("SONOTELLER_URL", SONOTELLER_URL),
            sonoteller_host=os.getenv("SONOTELLER_HOST", SONOTELLER_HOST),
            google_api_key=os.getenv("GOOGLE_API_KEY"),
            embed_provider=os.getenv("EMBED_PROVIDER", "hash"),
            embed_model_name=os.getenv("EMBED_MODEL_NAME") or None,
            embed_dimension=_env_optional_int("EMBED_DIMENSION"),
            http_timeout_sec=float(os.getenv("HTTP_TIMEOUT_SEC", "30")),
            payload_timeout_sec=float(os.getenv("PAYLOAD_TIMEOUT_SEC", "120")),
            search_top_k=int(os.getenv("SEARCH_TOP_K", "5")),
            debug=_env_bool("DEBUG", "false"),
        )

    def validate(self) -> List[str]:
        """Validate configuration and return any issues."""
        issues = []

        if self.embed_provider not in EMBED_PROVIDERS:
            issues.append(f"Invalid EMBED_PROVIDER: {self.embed_provider}")

        if self.embed_provider == "google" and not self.google_api_key:
            issues.append("EMBED_PROVIDER=google requires GOOGLE_API_KEY")

        if not self.rapid_api_key:
            issues.append("RAPID_API_KEY is not set; ingestion will fail at the analysis stage")

        if self.blob_chunk_size < 1:
            issues.append("BLOB_CHUNK_SIZE must be >= 1")

        if self.embed_dimension is not None and self.embed_dimension < 1:
            issues.append("EMBED_DIMENSION must be >= 1")

        if self.http_timeout_sec <= 0 or self.payload_timeout_sec <= 0:
            issues.append("HTTP_TIMEOUT_SEC and PAYLOAD_TIMEOUT_SEC must be > 0")

        if self.search_top_k < 0:
            issues.append("SEARCH_TOP_K must be >= 0")

        return issues

    def ensure_db_directory(self):
        """Ensure the database directory exists."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)


def get_embedding_provider(settings: Settings):
    """Get the configured embedding provider implementation."""
    if settings.embed_provider == "google":
        from songvault.vector.embeddings import GoogleGenerativeEmbedding
        return GoogleGenerativeEmbedding(
            api_key=settings.google_api_key,
            model_name=settings.embed_model_name or "embedding-001",
            timeout=settings.http_timeout_sec,
        )
    elif settings.embed_provider == "sentence":
        from songvault.vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(settings.embed_model_name or "all-mpnet-base-v2")
    else:
        from songvault.vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(dimension=settings.embed_dimension or 384)
