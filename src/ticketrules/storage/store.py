"""RuleStore: one DuckDB database, snapshot reads and serialized write transactions."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from ticketrules.storage.db import get_connection, init_schema

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from ticketrules.config import Settings

log = structlog.get_logger(__name__)


class RuleStore:
    """Owns the connection. Every read and write runs on its own cursor.

    DuckDB is MVCC: a read transaction sees one snapshot for its whole
    lifetime, so a resolution never observes half of a scope replace.
    Writers are serialized on a store-wide lock. `write_version` counts
    committed write transactions.
    """

    def __init__(self, conn: DuckDBPyConnection) -> None:
        self._conn = conn
        self._write_lock = threading.Lock()
        self._cursor_lock = threading.Lock()
        self._closed = False
        self.write_version = 0

    @classmethod
    def open(cls, db_path: str | Path) -> RuleStore:
        conn = get_connection(db_path)
        init_schema(conn)
        log.debug("store_opened", db_path=str(db_path))
        return cls(conn)

    @classmethod
    def from_settings(cls, settings: Settings) -> RuleStore:
        return cls.open(settings.db_path)

    def _cursor(self) -> DuckDBPyConnection:
        with self._cursor_lock:
            return self._conn.cursor()

    @contextmanager
    def read(self) -> Iterator[DuckDBPyConnection]:
        """Cursor inside a read transaction (one consistent snapshot)."""
        cur = self._cursor()
        try:
            cur.begin()
            try:
                yield cur
            finally:
                cur.rollback()
        finally:
            cur.close()

    @contextmanager
    def transaction(self) -> Iterator[DuckDBPyConnection]:
        """Cursor inside a write transaction; commits on success, rolls back on any error."""
        with self._write_lock:
            cur = self._cursor()
            try:
                cur.begin()
                try:
                    yield cur
                except BaseException:
                    cur.rollback()
                    raise
                cur.commit()
                self.write_version += 1
            finally:
                cur.close()

    def close(self) -> None:
        if not self._closed:
            self._conn.close()
            self._closed = True
