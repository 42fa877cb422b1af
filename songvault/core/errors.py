"""Error taxonomy for ingestion, blob storage and similarity search."""

from typing import Optional


class SongVaultError(Exception):
    """Base class for all songvault errors."""
    pass


class IngestionError(SongVaultError):
    """Error raised by one stage of the ingestion pipeline.

    The ``stage`` attribute names the pipeline step that failed so callers can
    report it without inspecting the exception type.
    """

    stage = "ingest"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ServiceError(IngestionError):
    """Analysis service returned a non-success response or a malformed payload."""
    stage = "analyze"


class EmbeddingError(IngestionError):
    """Embedding call failed or returned a vector of the wrong dimension."""
    stage = "embed"


class TransferError(IngestionError):
    """Fetching the raw audio payload failed."""
    stage = "fetch_payload"


class BlobStoreError(IngestionError):
    """Blob upload or download failed.

    ``side`` is ``"source"`` when reading from the store failed and
    ``"destination"`` when writing to the store or to a download sink failed.
    """

    stage = "blob"

    def __init__(self, message: str, side: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message, stage=stage)
        self.side = side


class BlobNotFoundError(BlobStoreError):
    """No blob exists for the requested identifier."""
    pass


class DatabaseError(IngestionError):
    """Document store connection or query failure."""
    stage = "persist"


class DimensionMismatchError(SongVaultError, ValueError):
    """Two embeddings with different lengths were compared or stored together."""

    def __init__(self, expected: int, actual: int, context: str = "embedding"):
        super().__init__(f"{context} dimension {actual} does not match expected dimension {expected}")
        self.expected = expected
        self.actual = actual


class DuplicateKey(SongVaultError):
    """A record for the source key already exists.

    This is an expected outcome, not a failure: the orchestrator resolves it
    into a skipped ingestion.
    """

    def __init__(self, source_key: str):
        super().__init__(f"record already exists for source key {source_key}")
        self.source_key = source_key
