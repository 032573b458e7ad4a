"""SQLite persistence for the reference index."""

import json
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from ..core.index import ReferenceIndexEntry

LOGGER = logging.getLogger(__name__)


@dataclass
class SQLiteReferenceStore:
    """
    Stores reference index entries in a single table.

    The DB is a cache that can be rebuilt; the documents remain the source
    of truth.
    """

    db_path: Path

    def _conn(self) -> sqlite3.Connection:
        """Get a connection to the SQLite database."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA temp_store=MEMORY")
        return conn

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS refs (
                ref_file TEXT NOT NULL,
                ref_idx INTEGER NOT NULL,
                source_file TEXT NOT NULL,
                sub_path TEXT NOT NULL,
                ranges TEXT NOT NULL,
                PRIMARY KEY (ref_file, ref_idx)
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS refs_source_idx ON refs(source_file)")

    def load(self) -> list[ReferenceIndexEntry]:
        if not self.db_path.exists():
            return []
        conn = self._conn()
        try:
            self._init_schema(conn)
            rows = conn.execute(
                "SELECT source_file, sub_path, ranges, ref_file, ref_idx FROM refs "
                "ORDER BY ref_file, ref_idx"
            ).fetchall()
        finally:
            conn.close()
        return [
            ReferenceIndexEntry(
                source_file=source_file,
                sub_path=sub_path,
                ranges=json.loads(ranges),
                ref_file=ref_file,
                ref_idx=ref_idx,
            )
            for source_file, sub_path, ranges, ref_file, ref_idx in rows
        ]

    def save(self, entries: list[ReferenceIndexEntry]) -> None:
        """Replace the stored entries with entries."""
        conn = self._conn()
        try:
            self._init_schema(conn)
            with conn:
                conn.execute("DELETE FROM refs")
                conn.executemany(
                    "INSERT OR REPLACE INTO refs (ref_file, ref_idx, source_file, sub_path, ranges) "
                    "VALUES (?, ?, ?, ?, ?)",
                    [
                        (e.ref_file, e.ref_idx, e.source_file, e.sub_path, json.dumps(e.ranges))
                        for e in entries
                    ],
                )
        finally:
            conn.close()
        LOGGER.debug("saved %d reference(s) to %s", len(entries), self.db_path)
