# database/__init__.py
from __future__ import annotations

from pathlib import Path
import sqlite3

from ..config import DB_PATH
from . import schema as schema_module
from .versioning import ensure_version

MEMORY = ":memory:"


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode (file databases)
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
      - check_same_thread off; callers serialize access through the store lock
    Ensures the schema and version row are applied idempotently.
    `":memory:"` gives a throwaway database for tests.
    """
    target = str(db_path) if db_path is not None else str(DB_PATH)
    if target != MEMORY:
        Path(target).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(target, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    if target != MEMORY:
        conn.execute("PRAGMA journal_mode = WAL;")

    schema_module.init_schema(conn)
    ensure_version(conn)

    conn.commit()
    return conn


__all__ = [
    "MEMORY",
    "get_connection",
]
