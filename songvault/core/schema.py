"""Record types stored in the document store."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class MediaRecord:
    """One ingested song. Created once and never mutated."""

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
    flags: Any
    embedding: List[float]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[int] = None

    @property
    def dimension(self) -> int:
        return len(self.embedding)

    def to_dict(self, include_embedding: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "source_key": self.source_key,
            "blob_id": self.blob_id,
            "filename": self.filename,
            "language": self.language,
            "language_iso": self.language_iso,
            "summary": self.summary,
            "explicit": self.explicit,
            "keywords": list(self.keywords),
            "moods": list(self.moods),
            "themes": list(self.themes),
            "flags": self.flags,
            "created_at": self.created_at.isoformat(),
        }
        if include_embedding:
            data["embedding"] = list(self.embedding)
        return data


@dataclass
class BlobInfo:
    """Metadata of a stored blob."""

    id: str
    filename: str
    length: int
    chunk_size: int
    upload_date: datetime
