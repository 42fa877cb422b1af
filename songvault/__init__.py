"""SongVault: song ingestion with deduplication and embedding similarity search."""

from .core.config import VERSION

__version__ = VERSION
