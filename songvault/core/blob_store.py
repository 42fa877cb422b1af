"""
Chunked binary blob storage in SQLite.

Blobs are laid out the way GridFS lays them out: one row per file in
`<bucket>_files` and the payload split into fixed-size rows in
`<bucket>_chunks`. Identifiers are generated by the store.
"""

import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Optional

from .config import DEFAULT_CHUNK_SIZE
from .db import bucket_tables, safe_rollback
from .errors import BlobNotFoundError, BlobStoreError
from .schema import BlobInfo
from ..util.logging import logger


class SqliteBlobStore:
    """Upload and download binary payloads by opaque identifier."""

    def __init__(self, conn: sqlite3.Connection, bucket: str = "songs_audio",
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.conn = conn
        self.bucket = bucket
        self.chunk_size = chunk_size
        self.files_table, self.chunks_table = bucket_tables(bucket)

    def upload(self, data: bytes, name: str) -> str:
        """Store a fully materialized buffer and return its new identifier.

        The identifier is returned only after the transaction commits. On any
        failure the transaction is rolled back and BlobStoreError is raised.
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise BlobStoreError(f"upload expects bytes, got {type(data).__name__}", side="destination")

        payload = bytes(data)
        blob_id = uuid.uuid4().hex

        try:
            self.conn.execute(
                f"INSERT INTO {self.files_table} (id, filename, length, chunk_size, upload_date) "
                f"VALUES (?, ?, ?, ?, ?)",
                (blob_id, name, len(payload), self.chunk_size,
                 datetime.now(timezone.utc).isoformat()),
            )
            self.conn.executemany(
                f"INSERT INTO {self.chunks_table} (files_id, n, data) VALUES (?, ?, ?)",
                (
                    (blob_id, n, payload[offset:offset + self.chunk_size])
                    for n, offset in enumerate(range(0, len(payload), self.chunk_size))
                ),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            safe_rollback(self.conn)
            logger.log_blob_operation("upload", blob_id, {"filename": name, "error": str(e)}, status="failed")
            raise BlobStoreError(f"upload of '{name}' failed: {e}", side="destination") from e

        logger.log_blob_operation("upload", blob_id, {
            "filename": name,
            "length": len(payload),
            "chunks": -(-len(payload) // self.chunk_size),
        })
        return blob_id

    def stat(self, blob_id: str) -> Optional[BlobInfo]:
        """Return blob metadata, or None if the blob does not exist."""
        try:
            row = self.conn.execute(
                f"SELECT id, filename, length, chunk_size, upload_date FROM {self.files_table} WHERE id = ?",
                (blob_id,),
            ).fetchone()
        except sqlite3.Error as e:
            raise BlobStoreError(f"stat of '{blob_id}' failed: {e}", side="source") from e

        if row is None:
            return None
        return BlobInfo(
            id=row[0],
            filename=row[1],
            length=row[2],
            chunk_size=row[3],
            upload_date=datetime.fromisoformat(row[4]),
        )

    def download(self, blob_id: str, sink: BinaryIO) -> int:
        """Stream a blob's bytes into a writable binary sink.

        Returns the number of bytes written once the whole transfer is done.
        Failures reading from the store are raised with side="source",
        failures writing to the sink with side="destination".
        """
        info = self.stat(blob_id)
        if info is None:
            raise BlobNotFoundError(f"no blob with id '{blob_id}'", side="source")

        written = 0
        expected_n = 0
        try:
            cursor = self.conn.execute(
                f"SELECT n, data FROM {self.chunks_table} WHERE files_id = ? ORDER BY n",
                (blob_id,),
            )
        except sqlite3.Error as e:
            raise BlobStoreError(f"reading blob '{blob_id}' failed: {e}", side="source") from e

        while True:
            try:
                row = cursor.fetchone()
            except sqlite3.Error as e:
                raise BlobStoreError(f"reading blob '{blob_id}' failed: {e}", side="source") from e
            if row is None:
                break

            n, chunk = row
            if n != expected_n:
                raise BlobStoreError(f"blob '{blob_id}' is missing chunk {expected_n}", side="source")
            expected_n += 1

            try:
                sink.write(chunk)
            except (OSError, ValueError) as e:
                raise BlobStoreError(f"writing blob '{blob_id}' to sink failed: {e}", side="destination") from e
            written += len(chunk)

        if written != info.length:
            raise BlobStoreError(
                f"blob '{blob_id}' is truncated: read {written} of {info.length} bytes", side="source"
            )

        try:
            sink.flush()
        except (OSError, ValueError) as e:
            raise BlobStoreError(f"flushing sink for blob '{blob_id}' failed: {e}", side="destination") from e

        logger.log_blob_operation("download", blob_id, {"length": written})
        return written

    def download_to_path(self, blob_id: str, output_path: str = "./downloaded_song.mp3") -> str:
        """Download a blob into a file, removing the partial file on failure."""
        path = Path(output_path)
        try:
            sink = open(path, "wb")
        except OSError as e:
            raise BlobStoreError(f"cannot open '{path}' for writing: {e}", side="destination") from e

        try:
            with sink:
                self.download(blob_id, sink)
        except BlobStoreError:
            path.unlink(missing_ok=True)
            raise
        return str(path)

    def delete(self, blob_id: str) -> bool:
        """Delete a blob and its chunks. Returns False if it did not exist."""
        try:
            self.conn.execute(f"DELETE FROM {self.chunks_table} WHERE files_id = ?", (blob_id,))
            cursor = self.conn.execute(f"DELETE FROM {self.files_table} WHERE id = ?", (blob_id,))
            self.conn.commit()
        except sqlite3.Error as e:
            safe_rollback(self.conn)
            raise BlobStoreError(f"delete of '{blob_id}' failed: {e}", side="destination") from e

        deleted = cursor.rowcount > 0
        if deleted:
            logger.log_blob_operation("delete", blob_id)
        return deleted
