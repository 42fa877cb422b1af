"""
HTTP API for song ingestion, search and audio download.

Endpoints are plain functions, so FastAPI runs them in its threadpool and a
slow ingestion does not block other requests. Serve with
`uvicorn songvault.api.main:create_app --factory`.
"""

import io
import mimetypes
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from .schemas import (
    ErrorResponse,
    HealthResponse,
    IngestRequest,
    IngestResponse,
    SearchRequest,
    SearchResponse,
    SearchResult,
    SongResponse,
)
from ..commands import SongVault
from ..core.blob_store import SqliteBlobStore
from ..core.config import VERSION
from ..core.dao import SongRepository
from ..core.db import get_db, health_check
from ..core.errors import (
    BlobNotFoundError,
    DatabaseError,
    DimensionMismatchError,
    EmbeddingError,
    ServiceError,
    SongVaultError,
    TransferError,
)
from ..core.schema import MediaRecord

# Upstream failures are reported as bad gateway, local storage failures as 500.
_STATUS_BY_ERROR = [
    (BlobNotFoundError, 404),
    (ServiceError, 502),
    (EmbeddingError, 502),
    (TransferError, 502),
    (DimensionMismatchError, 500),
    (DatabaseError, 500),
]


def _status_for(error: SongVaultError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def _song_response(record: MediaRecord) -> SongResponse:
    return SongResponse(**record.to_dict())


def create_app(vault: Optional[SongVault] = None) -> FastAPI:
    """Build the FastAPI application around one SongVault instance."""
    vault = vault or SongVault.from_env()
    settings = vault.settings

    app = FastAPI(
        title="SongVault API",
        version=VERSION,
        description="Song ingestion with deduplication and semantic similarity search",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.vault = vault

    @app.exception_handler(SongVaultError)
    def songvault_error_handler(request: Request, exc: SongVaultError):
        body = ErrorResponse(
            error_type=exc.__class__.__name__,
            stage=getattr(exc, "stage", None),
            message=str(exc),
        )
        return JSONResponse(status_code=_status_for(exc), content=body.model_dump())

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint():
        """Check system health."""
        db_health = health_check(settings)
        song_count = 0
        if db_health:
            with get_db(settings) as conn:
                song_count = SongRepository(conn).count()

        return HealthResponse(
            status="healthy" if db_health else "unhealthy",
            version=VERSION,
            db_health=db_health,
            song_count=song_count,
        )

    @app.post("/songs/ingest", response_model=IngestResponse)
    def ingest_endpoint(req: IngestRequest):
        result = vault.orchestrator.ingest(req.source_key)
        return IngestResponse(
            status=result.status,
            source_key=result.source_key,
            song=_song_response(result.record) if result.record else None,
        )

    @app.post("/songs/search", response_model=SearchResponse)
    def search_endpoint(req: SearchRequest):
        results = vault.search_service.search(req.query, req.k)
        return SearchResponse(results=[
            SearchResult(
                id=r.record.id,
                summary=r.record.summary,
                source_key=r.record.source_key,
                filename=r.record.filename,
                score=r.score,
            )
            for r in results
        ])

    @app.get("/songs/{song_id}", response_model=SongResponse)
    def get_song_endpoint(song_id: int):
        with get_db(settings) as conn:
            record = SongRepository(conn).get(song_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Song {song_id} not found")
        return _song_response(record)

    @app.get("/songs/{song_id}/audio")
    def download_song_endpoint(song_id: int):
        buffer = io.BytesIO()
        with get_db(settings) as conn:
            record = SongRepository(conn).get(song_id)
            if record is None:
                raise HTTPException(status_code=404, detail=f"Song {song_id} not found")
            SqliteBlobStore(conn, settings.blob_bucket, settings.blob_chunk_size).download(record.blob_id, buffer)

        media_type = mimetypes.guess_type(record.filename)[0] or "application/octet-stream"
        return Response(
            content=buffer.getvalue(),
            media_type=media_type,
            headers={"Content-Disposition": f'attachment; filename="{record.filename}"'},
        )

    return app
