import sqlite3

from ..constants import TABLE_DOCUMENTS

SQL = f"""
/* ======================== DOCUMENT STORE ======================== */

/* one row per stored document: the clinic data blob, the auto-backup marker */
CREATE TABLE IF NOT EXISTS {TABLE_DOCUMENTS} (
    key         TEXT PRIMARY KEY,
    body        TEXT NOT NULL,
    updated_at  TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""


def init_schema(conn: sqlite3.Connection) -> None:
    """Apply the schema on an open connection (idempotent)."""
    conn.executescript(SQL)
    conn.commit()
