from pydantic import BaseModel, field_validator
from typing import Optional, List, Any
from datetime import datetime


class IngestRequest(BaseModel):
    source_key: str

    @field_validator('source_key')
    @classmethod
    def source_key_must_be_url(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('source_key cannot be empty')
        if not (v.startswith('http://') or v.startswith('https://')):
            raise ValueError('source_key must be an http(s) URL')
        return v


class SongResponse(BaseModel):
    id: int
    source_key: str
    blob_id: str
    filename: str
    language: str
    language_iso: str
    summary: str
    explicit: bool
    keywords: List[str]
    moods: List[str]
    themes: List[str]
    flags: Any = None
    created_at: datetime


class IngestResponse(BaseModel):
    status: str
    source_key: str
    song: Optional[SongResponse] = None


class SearchRequest(BaseModel):
    query: str
    k: Optional[int] = None

    @field_validator('query')
    @classmethod
    def query_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('query cannot be empty')
        return v

    @field_validator('k')
    @classmethod
    def k_must_not_be_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError('k must be >= 0')
        return v


class SearchResult(BaseModel):
    id: int
    summary: str
    source_key: str
    filename: str
    score: float


class SearchResponse(BaseModel):
    results: List[SearchResult]


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    song_count: int


class ErrorResponse(BaseModel):
    error_type: str
    stage: Optional[str] = None
    message: str
