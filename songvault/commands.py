"""
Command surface: ingest, search and download.

Each command returns a CommandResult and never raises for a failed external
call, so one bad song cannot take the host process down.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .core.blob_store import SqliteBlobStore
from .core.config import Settings, get_embedding_provider
from .core.dao import SongRepository
from .core.db import get_db
from .core.errors import IngestionError, SongVaultError
from .core.ingestion import IngestionOrchestrator
from .core.search_service import SearchService
from .services.analysis import SonotellerClient
from .services.payload import PayloadFetcher
from .vector.embeddings import EmbeddingClient
from .util.logging import logger


@dataclass
class CommandResult:
    ok: bool
    message: str
    stage: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


class SongVault:
    """Wires settings, clients, orchestrator and search service together."""

    def __init__(self, settings: Settings, analysis_client=None, embedding_client=None, payload_fetcher=None):
        self.settings = settings
        self.embedding_client = embedding_client or EmbeddingClient(
            get_embedding_provider(settings), dimension=settings.embed_dimension
        )
        self.orchestrator = IngestionOrchestrator(
            settings,
            analysis_client=analysis_client or SonotellerClient.from_settings(settings),
            embedding_client=self.embedding_client,
            payload_fetcher=payload_fetcher or PayloadFetcher(timeout=settings.payload_timeout_sec),
        )
        self.search_service = SearchService(settings, self.embedding_client)

    @classmethod
    def from_env(cls) -> "SongVault":
        settings = Settings.from_env()
        issues = settings.validate()
        if issues:
            logger.log_errors("config.validate", issues)
        return cls(settings)

    def ingest(self, source_key: str) -> CommandResult:
        try:
            result = self.orchestrator.ingest(source_key)
        except IngestionError as e:
            return CommandResult(ok=False, message=str(e), stage=e.stage)
        except SongVaultError as e:
            return CommandResult(ok=False, message=str(e), stage="ingest")

        if result.skipped:
            return CommandResult(ok=True, message="Song already exists in the database.",
                                 data={"status": result.status, "source_key": source_key})

        return CommandResult(
            ok=True,
            message=f"Inserted song into DB with ID: {result.record.id}",
            data={"status": result.status, "record": result.record.to_dict()},
        )

    def search(self, query_text: str, k: Optional[int] = None) -> CommandResult:
        try:
            results = self.search_service.search(query_text, k)
        except (SongVaultError, ValueError) as e:
            logger.error(f"Search failed for query '{query_text[:50]}': {e}")
            return CommandResult(ok=False, message=str(e), stage=getattr(e, "stage", "search"))

        hits: List[Dict[str, Any]] = [
            {"id": r.record.id, "summary": r.record.summary, "source_key": r.record.source_key, "score": r.score}
            for r in results
        ]
        return CommandResult(ok=True, message=f"Top {len(hits)} similar songs", data={"results": hits})

    def download(self, record_id: int, output_path: str = "./downloaded_song.mp3") -> CommandResult:
        try:
            with get_db(self.settings) as conn:
                record = SongRepository(conn).get(record_id)
                if record is None:
                    return CommandResult(ok=False, message=f"No song with id {record_id}", stage="lookup")
                blob_store = SqliteBlobStore(conn, self.settings.blob_bucket, self.settings.blob_chunk_size)
                path = blob_store.download_to_path(record.blob_id, output_path)
        except SongVaultError as e:
            return CommandResult(ok=False, message=str(e), stage=getattr(e, "stage", "download"))

        return CommandResult(ok=True, message=f"Download complete: {path}", data={"path": path})
