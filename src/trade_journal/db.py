import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .settings import settings


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS confirmed_trades (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id INTEGER NOT NULL UNIQUE,
    symbol TEXT NOT NULL,
    strategy TEXT,
    strike_info TEXT,
    entry REAL,
    stop REAL,
    target REAL,
    expiry TEXT,
    confidence_level INTEGER,
    premium REAL,
    confirmed_at TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'open',
    outcome TEXT NOT NULL DEFAULT 'pending',
    notes TEXT NOT NULL DEFAULT '',
    closed_at TEXT
);
"""

MAX_SQLITE_INTEGER = 2**63 - 1


def get_connection(db_path: Path | None = None) -> sqlite3.Connection:
    path = Path(db_path or settings.db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def connection(db_path: Path | None = None) -> Iterator[sqlite3.Connection]:
    """One transaction on a fresh connection; commits on success and always closes."""
    conn = get_connection(db_path)
    try:
        with conn:
            yield conn
    finally:
        conn.close()


def initialize_database(db_path: Path | None = None) -> None:
    with connection(db_path) as conn:
        conn.executescript(SCHEMA_SQL)
