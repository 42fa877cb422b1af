"""SQLite database initialization and connection management."""

import re
import sqlite3
from contextlib import contextmanager
from typing import Generator

from .config import Settings
from .errors import DatabaseError
from ..util.logging import logger

_BUCKET_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def bucket_tables(bucket: str):
    """Return the (files, chunks) table names for a blob bucket."""
    if not _BUCKET_NAME.match(bucket):
        raise ValueError(f"Invalid blob bucket name: {bucket}")
    return f"{bucket}_files", f"{bucket}_chunks"


@contextmanager
def get_db(settings: Settings) -> Generator[sqlite3.Connection, None, None]:
    """Open a SQLite connection for one top-level operation.

    The connection is closed exactly once when the block exits, whether it
    finishes normally, returns early or raises.
    """
    try:
        settings.ensure_db_directory()
        conn = sqlite3.connect(settings.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        init_db(conn, settings.blob_bucket)
    except (sqlite3.Error, OSError) as e:
        logger.error(f"Failed to open database at '{settings.db_path}': {e}")
        raise DatabaseError(f"could not open database: {e}", stage="connect") from e

    try:
        yield conn
    finally:
        conn.close()


def init_db(conn: sqlite3.Connection, bucket: str = "songs_audio"):
    """Create the songs table and the blob bucket tables if missing."""
    files_table, chunks_table = bucket_tables(bucket)
    cursor = conn.cursor()

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS songs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            source_key TEXT NOT NULL UNIQUE,
            blob_id TEXT NOT NULL,
            filename TEXT,
            language TEXT,
            language_iso TEXT,
            summary TEXT,
            explicit BOOLEAN DEFAULT FALSE,
            keywords TEXT,       -- JSON list
            moods TEXT,          -- JSON list
            themes TEXT,         -- JSON list
            flags TEXT,          -- JSON passthrough
            embedding TEXT NOT NULL,
            embedding_dim INTEGER NOT NULL,
            created_at TIMESTAMP NOT NULL
        )
    ''')

    cursor.execute(f'''
        CREATE TABLE IF NOT EXISTS {files_table} (
            id TEXT PRIMARY KEY,
            filename TEXT NOT NULL,
            length INTEGER NOT NULL,
            chunk_size INTEGER NOT NULL,
            upload_date TIMESTAMP NOT NULL
        )
    ''')

    cursor.execute(f'''
        CREATE TABLE IF NOT EXISTS {chunks_table} (
            files_id TEXT NOT NULL REFERENCES {files_table}(id) ON DELETE CASCADE,
            n INTEGER NOT NULL,
            data BLOB NOT NULL,
            PRIMARY KEY (files_id, n)
        )
    ''')

    conn.commit()


def health_check(settings: Settings) -> bool:
    """Check database health."""
    files_table, chunks_table = bucket_tables(settings.blob_bucket)
    try:
        with get_db(settings) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [row[0] for row in cursor.fetchall()]
            required_tables = ['songs', files_table, chunks_table]
            return all(table in table_names for table in required_tables)
    except DatabaseError:
        return False


def safe_rollback(conn: sqlite3.Connection):
    """Roll back the open transaction, ignoring a connection that is already unusable."""
    try:
        conn.rollback()
    except sqlite3.Error as e:
        logger.warning(f"Rollback failed: {e}")
