"""
storage/db.py

SQLite backend for the Genosym Record Store.

Schema
------
collections   : one row per logical collection; the record list is stored as a
                Fernet-encrypted JSON blob (see storage.crypto)

Each ``save_many`` runs inside a single SQLite transaction, so an institution
and its admin account are always committed together.

Usage
-----
    from storage.db import SqliteRecordStore
    store = SqliteRecordStore("data/genosym_registry.db", seeds=default_seeds(settings))
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Iterable, Mapping

from cryptography.fernet import Fernet

from storage.crypto import decrypt_records, encrypt_records, get_fernet
from storage.errors import StoreFault
from storage.models import utc_now
from storage.records import RecordStore

logger = logging.getLogger(__name__)

_DDL = """
CREATE TABLE IF NOT EXISTS collections (
    name           TEXT PRIMARY KEY,
    encrypted_blob TEXT NOT NULL,          -- Fernet token from crypto.py
    updated_at     TEXT NOT NULL           -- ISO-8601 UTC
);
"""


class SqliteRecordStore(RecordStore):
    """Record Store persisting encrypted collections in a SQLite file."""

    def __init__(
        self,
        db_path: Path | str,
        seeds: Mapping[str, Iterable[dict]] | None = None,
        fernet: Fernet | None = None,
    ):
        super().__init__(seeds)
        self.db_path = Path(db_path)
        self._fernet = fernet or get_fernet()
        self.init_db()

    def _connect(self) -> sqlite3.Connection:
        """
        Open (or create) the SQLite database and return a connection.

        ``check_same_thread=False`` lets the notification worker threads share
        the store; serialisation is provided by the store lock.
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        return conn

    def init_db(self) -> None:
        """Create the collections table if it does not already exist (idempotent)."""
        with self._connect() as conn:
            conn.executescript(_DDL)
        logger.info("Record store initialised at %s", self.db_path)

    def _read(self, collection: str) -> list[dict] | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT encrypted_blob FROM collections WHERE name = ?",
                    (collection,),
                ).fetchone()
        except sqlite3.DatabaseError as exc:
            raise StoreFault(f"cannot read collection '{collection}'", collection=collection) from exc
        if row is None:
            return None
        try:
            return decrypt_records(row["encrypted_blob"], self._fernet)
        except StoreFault as exc:
            exc.collection = collection
            raise

    def _write(self, collections: dict[str, list[dict]]) -> None:
        now = utc_now()
        rows = [(name, encrypt_records(records, self._fernet), now) for name, records in collections.items()]
        try:
            with self._connect() as conn:
                conn.executemany(
                    """
                    INSERT INTO collections (name, encrypted_blob, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(name) DO UPDATE SET
                        encrypted_blob = excluded.encrypted_blob,
                        updated_at = excluded.updated_at
                    """,
                    rows,
                )
        except sqlite3.DatabaseError as exc:
            logger.error("Failed to write collections %s: %s", [r[0] for r in rows], exc)
            raise StoreFault("cannot write collections") from exc
