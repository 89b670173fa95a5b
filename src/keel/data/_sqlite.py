"""SQLite driver using stdlib sqlite3.

Uses Python 3.12+ features:
    - ``autocommit=True``: every statement commits on its own;
      ``begin()`` issues an explicit ``BEGIN`` for multi-statement work
    - ``check_same_thread=False``: requests run in worker threads, so the
      held connection is used from more than one thread. Calls are
      serialized with a lock.
"""

import sqlite3
import threading
from collections.abc import Sequence
from typing import Any

from keel.data.connection import Result
from keel.data.errors import DataError


class SQLiteConnection:
    """``Connection`` over a single ``sqlite3.Connection``."""

    __slots__ = ("_conn", "_last_id", "_lock")

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._last_id = 0

    def execute(self, sql: str, bindings: Sequence[Any] = ()) -> Result:
        with self._lock:
            cursor = self._conn.execute(sql, tuple(bindings))
            rows = [dict(row) for row in cursor.fetchall()] if cursor.description else []
            if cursor.lastrowid:
                self._last_id = cursor.lastrowid
            return Result(rows=rows, row_count=cursor.rowcount, last_insert_id=cursor.lastrowid)

    def last_insert_id(self) -> int:
        return self._last_id

    def begin(self) -> bool:
        with self._lock:
            if self._conn.in_transaction:
                return False
            self._conn.execute("BEGIN")
            return True

    def commit(self) -> bool:
        with self._lock:
            if not self._conn.in_transaction:
                return False
            self._conn.execute("COMMIT")
            return True

    def rollback(self) -> bool:
        with self._lock:
            if not self._conn.in_transaction:
                return False
            self._conn.execute("ROLLBACK")
            return True

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def parse_sqlite_path(url: str) -> str:
    """Extract the file path from a sqlite:// URL."""
    # sqlite:///path/to/db  ->  path/to/db
    # sqlite:////abs/db     ->  /abs/db
    # sqlite:///:memory:    ->  :memory:
    for prefix in ("sqlite:///", "sqlite://"):
        if url.startswith(prefix):
            return url[len(prefix) :] or ":memory:"
    msg = f"Invalid SQLite URL: {url!r}"
    raise DataError(msg)


def connect(url: str) -> SQLiteConnection:
    """Open a SQLite connection with foreign keys enforced."""
    path = parse_sqlite_path(url)
    conn = sqlite3.connect(path, autocommit=True, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys=ON")
    return SQLiteConnection(conn)
