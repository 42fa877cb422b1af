"""
Document store access for song records.

SongRepository is bound to one open connection (see db.get_db) so that a
top-level operation acquires storage once and releases it once.
"""

import json
import math
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from .db import safe_rollback
from .errors import DatabaseError, DimensionMismatchError, DuplicateKey
from .schema import MediaRecord
from ..util.logging import logger

_COLUMNS = (
    "id, source_key, blob_id, filename, language, language_iso, summary, explicit, "
    "keywords, moods, themes, flags, embedding, created_at"
)


def _row_to_record(row) -> MediaRecord:
    (record_id, source_key, blob_id, filename, language, language_iso, summary,
     explicit, keywords, moods, themes, flags, embedding, created_at) = row

    return MediaRecord(
        id=record_id,
        source_key=source_key,
        blob_id=blob_id,
        filename=filename,
        language=language,
        language_iso=language_iso,
        summary=summary,
        explicit=bool(explicit),
        keywords=json.loads(keywords) if keywords else [],
        moods=json.loads(moods) if moods else [],
        themes=json.loads(themes) if themes else [],
        flags=json.loads(flags) if flags is not None else None,
        embedding=[float(x) for x in json.loads(embedding)],
        created_at=datetime.fromisoformat(created_at),
    )


class SongRepository:
    """Song records in the `songs` table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def exists(self, source_key: str) -> bool:
        """Dedup gate: whether a record for this source key is already stored.

        Absence is a normal outcome and returns False.
        """
        try:
            cursor = self.conn.execute(
                "SELECT 1 FROM songs WHERE source_key = ? LIMIT 1", (source_key,)
            )
            return cursor.fetchone() is not None
        except sqlite3.Error as e:
            logger.error(f"Existence check failed for '{source_key}': {e}")
            raise DatabaseError(f"existence check failed: {e}", stage="dedup") from e

    def find_by_source_key(self, source_key: str) -> Optional[MediaRecord]:
        try:
            cursor = self.conn.execute(
                f"SELECT {_COLUMNS} FROM songs WHERE source_key = ?", (source_key,)
            )
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(f"lookup failed: {e}", stage="lookup") from e
        return _row_to_record(row) if row else None

    def get(self, record_id: int) -> Optional[MediaRecord]:
        try:
            cursor = self.conn.execute(f"SELECT {_COLUMNS} FROM songs WHERE id = ?", (record_id,))
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(f"lookup failed: {e}", stage="lookup") from e
        return _row_to_record(row) if row else None

    def list_all(self) -> List[MediaRecord]:
        """Full corpus scan in insertion order."""
        try:
            cursor = self.conn.execute(f"SELECT {_COLUMNS} FROM songs ORDER BY id")
            rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to load song corpus: {e}")
            raise DatabaseError(f"corpus scan failed: {e}", stage="search") from e
        return [_row_to_record(row) for row in rows]

    def count(self) -> int:
        try:
            return self.conn.execute("SELECT COUNT(*) FROM songs").fetchone()[0]
        except sqlite3.Error as e:
            raise DatabaseError(f"count failed: {e}", stage="lookup") from e

    def stored_dimension(self) -> Optional[int]:
        """Embedding dimension of stored records, or None for an empty store."""
        try:
            row = self.conn.execute("SELECT embedding_dim FROM songs ORDER BY id LIMIT 1").fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(f"dimension lookup failed: {e}", stage="lookup") from e
        return row[0] if row else None

    def insert(self, record: MediaRecord) -> MediaRecord:
        """Insert a new record and return it with its assigned id.

        Raises DuplicateKey if the source key is already stored and
        DimensionMismatchError if the embedding length differs from the
        records already in the store.
        """
        if not record.embedding:
            raise DimensionMismatchError(expected=self.stored_dimension() or 1, actual=0)
        if any(not math.isfinite(x) for x in record.embedding):
            raise DatabaseError("embedding contains non-finite values")

        expected = self.stored_dimension()
        if expected is not None and expected != record.dimension:
            logger.log_errors("songs.insert", [f"dimension {record.dimension} != stored {expected}"])
            raise DimensionMismatchError(expected=expected, actual=record.dimension)

        created_at = record.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        try:
            cursor = self.conn.execute(
                """INSERT INTO songs (source_key, blob_id, filename, language, language_iso, summary,
                                      explicit, keywords, moods, themes, flags, embedding,
                                      embedding_dim, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.source_key,
                    record.blob_id,
                    record.filename,
                    record.language,
                    record.language_iso,
                    record.summary,
                    bool(record.explicit),
                    json.dumps(record.keywords),
                    json.dumps(record.moods),
                    json.dumps(record.themes),
                    json.dumps(record.flags),
                    json.dumps([float(x) for x in record.embedding]),
                    record.dimension,
                    created_at.isoformat(),
                ),
            )
            self.conn.commit()
        except sqlite3.IntegrityError as e:
            safe_rollback(self.conn)
            if "source_key" in str(e):
                raise DuplicateKey(record.source_key) from e
            raise DatabaseError(f"insert rejected: {e}") from e
        except sqlite3.Error as e:
            safe_rollback(self.conn)
            logger.error(f"Database error inserting '{record.source_key}': {e}")
            raise DatabaseError(f"insert failed: {e}") from e

        record.id = cursor.lastrowid
        record.created_at = created_at
        return record
