"""
Song ingestion pipeline.

dedup -> analyze -> compose -> embed -> fetch payload -> upload blob -> persist

The pipeline aborts on the first error and never persists a partial record.
Each stage failure is raised as an IngestionError subclass naming the stage.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Optional

from .blob_store import SqliteBlobStore
from .composer import COMPOSITION_VERSION, compose_text
from .config import Settings
from .dao import SongRepository
from .db import get_db
from .errors import (
    BlobStoreError,
    DatabaseError,
    DimensionMismatchError,
    DuplicateKey,
    EmbeddingError,
    IngestionError,
)
from .schema import MediaRecord
from ..services.payload import filename_from_url
from ..util.logging import logger


@dataclass
class IngestionResult:
    """Outcome of one ingest call."""

    source_key: str
    status: str  # ingested|skipped
    record: Optional[MediaRecord] = None

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"


class IngestionOrchestrator:
    """Runs the ingestion pipeline for one source key at a time per key."""

    def __init__(self, settings: Settings, analysis_client, embedding_client, payload_fetcher):
        self.settings = settings
        self.analysis_client = analysis_client
        self.embedding_client = embedding_client
        self.payload_fetcher = payload_fetcher

        self._locks_guard = threading.Lock()
        self._key_locks: Dict[str, list] = {}  # source_key -> [lock, waiters]

    @contextmanager
    def _key_lock(self, source_key: str):
        """Serialize ingestions of the same source key within this process."""
        with self._locks_guard:
            entry = self._key_locks.setdefault(source_key, [threading.Lock(), 0])
            entry[1] += 1

        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._key_locks[source_key]

    def ingest(self, source_key: str) -> IngestionResult:
        """Ingest the song at source_key unless it is already stored."""
        if not source_key or not source_key.strip():
            raise IngestionError("source key cannot be empty", stage="validate")
        source_key = source_key.strip()

        with self._key_lock(source_key):
            try:
                with get_db(self.settings) as conn:
                    repository = SongRepository(conn)
                    blob_store = SqliteBlobStore(
                        conn,
                        bucket=self.settings.blob_bucket,
                        chunk_size=self.settings.blob_chunk_size,
                    )
                    return self._run(source_key, repository, blob_store)
            except IngestionError as e:
                logger.log_ingest_stage(e.stage, source_key, status="failed", details={
                    "error_type": e.__class__.__name__,
                    "error": str(e)[:200],
                })
                raise

    def _run(self, source_key: str, repository: SongRepository, blob_store: SqliteBlobStore) -> IngestionResult:
        if repository.exists(source_key):
            logger.log_ingest_stage("dedup", source_key, status="skipped")
            return IngestionResult(source_key=source_key, status="skipped")

        stored_dimension = repository.stored_dimension()
        if stored_dimension is not None:
            self.embedding_client.pin_dimension(stored_dimension)

        metadata = self.analysis_client.analyze(source_key)
        logger.log_ingest_stage("analyze", source_key, details={"language": metadata.language})

        text = compose_text(metadata)
        embedding = self.embedding_client.embed(text)
        logger.log_ingest_stage("embed", source_key, details={
            "dimension": len(embedding),
            "composition_version": COMPOSITION_VERSION,
        })

        payload = self.payload_fetcher.fetch(source_key)
        filename = filename_from_url(source_key)
        logger.log_ingest_stage("fetch_payload", source_key, details={"bytes": len(payload)})

        blob_id = blob_store.upload(payload, filename)

        record = MediaRecord(
            source_key=source_key,
            blob_id=blob_id,
            filename=filename,
            language=metadata.language,
            language_iso=metadata.language_iso,
            summary=metadata.summary,
            explicit=metadata.explicit,
            keywords=list(metadata.keywords.values()),
            moods=list(metadata.moods.values()),
            themes=list(metadata.themes.values()),
            flags=metadata.flags,
            embedding=embedding,
        )

        try:
            record = repository.insert(record)
        except DuplicateKey:
            # Another writer stored this key after our dedup check.
            self._discard_blob(blob_store, blob_id, source_key)
            logger.log_ingest_stage("persist", source_key, status="skipped", details={"reason": "duplicate_key"})
            return IngestionResult(source_key=source_key, status="skipped")
        except DimensionMismatchError as e:
            self._discard_blob(blob_store, blob_id, source_key)
            raise EmbeddingError(str(e), stage="persist") from e
        except DatabaseError:
            self._discard_blob(blob_store, blob_id, source_key)
            raise

        logger.log_ingest_stage("persist", source_key, details={"id": record.id, "blob_id": blob_id})
        return IngestionResult(source_key=source_key, status="ingested", record=record)

    def _discard_blob(self, blob_store: SqliteBlobStore, blob_id: str, source_key: str):
        try:
            blob_store.delete(blob_id)
        except BlobStoreError as e:
            logger.warning(f"Could not remove orphan blob {blob_id} for {source_key}: {e}")
