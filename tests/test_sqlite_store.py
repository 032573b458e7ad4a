"""Tests for the SQLite reference store."""

import sqlite3
import tempfile
from pathlib import Path

from quoth.adapters.sqlite_store import SQLiteReferenceStore
from quoth.core.index import ReferenceIndexEntry


def entries():
    return [
        ReferenceIndexEntry("Source.md", "#Title", ['"moon"', '"a" to "b"'], "Ref.md", 0),
        ReferenceIndexEntry("Source.md", "", [], "Ref.md", 1),
        ReferenceIndexEntry("Other.md", "#^blk", ["0:1 to 0:4"], "notes/Other Ref.md", 0),
    ]


def test_load_missing_db():
    """A store with no DB file loads nothing and creates nothing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "sub" / "index.sqlite"
        store = SQLiteReferenceStore(db_path)
        assert store.load() == []
        assert not db_path.exists()


def test_save_and_load():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / ".quoth" / "index.sqlite"
        store = SQLiteReferenceStore(db_path)
        store.save(entries())

        assert db_path.exists()
        loaded = SQLiteReferenceStore(db_path).load()
        assert sorted(loaded, key=lambda e: (e.ref_file, e.ref_idx)) == sorted(
            entries(), key=lambda e: (e.ref_file, e.ref_idx)
        )


def test_save_replaces_previous_entries():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SQLiteReferenceStore(Path(tmpdir) / "index.sqlite")
        store.save(entries())
        store.save(entries()[:1])
        assert store.load() == entries()[:1]

        store.save([])
        assert store.load() == []


def test_wal_mode():
    """Test that the DB is opened in WAL mode."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "index.sqlite"
        SQLiteReferenceStore(db_path).save(entries())
        conn = sqlite3.connect(str(db_path))
        try:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        finally:
            conn.close()
        assert mode.lower() == "wal"
