"""
Database connection management for the API.

The database path is resolved at import time from APP_DB_PATH (default:
promocoes.sqlite) and can be overridden by ``create_app(db_path=...)``.

Routes open connections with ``open_connection()`` and catch
``DatabaseUnavailable`` so that each one can degrade to its own fallback
(SCPC API, sample data, or a 503 for the campaign detail).
"""

import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

_DB_PATH: Path = Path(os.getenv("APP_DB_PATH", "promocoes.sqlite"))


class DatabaseUnavailable(RuntimeError):
    """The database file is missing or cannot be opened."""


def get_db_path() -> Path:
    """Return the configured database path."""
    return _DB_PATH


def set_db_path(path: Path) -> None:
    global _DB_PATH
    _DB_PATH = Path(path)


def _make_conn(db_path: Path) -> sqlite3.Connection:
    """Open a read-only (``mode=ro`` URI) connection with standard pragmas."""
    conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True,
                           check_same_thread=False, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


@contextmanager
def open_connection() -> Iterator[sqlite3.Connection]:
    """Yield a read-only connection.

    Raises DatabaseUnavailable when the file is missing, cannot be opened,
    or a query inside the block fails with a SQLite error (missing tables,
    corrupt file).
    """
    db_path = get_db_path()
    if not db_path.exists():
        raise DatabaseUnavailable(f"Database not found at '{db_path}'")
    try:
        conn = _make_conn(db_path)
    except sqlite3.Error as exc:
        raise DatabaseUnavailable(str(exc)) from exc
    try:
        yield conn
    except sqlite3.Error as exc:
        raise DatabaseUnavailable(str(exc)) from exc
    finally:
        conn.close()


def ping_database() -> bool:
    """Return True if the database opens and answers a trivial query."""
    try:
        with open_connection() as conn:
            conn.execute("SELECT 1").fetchone()
        return True
    except (DatabaseUnavailable, sqlite3.Error):
        return False
