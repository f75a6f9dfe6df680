from __future__ import annotations

"""
Persistence boundary for the clinic document.

The whole application state is one JSON document stored in the `documents`
table under `vetclinic_db`. Every mutation runs inside `transaction()`:

    with store.transaction() as data:
        ...mutate data through the repositories...

On normal exit running balances are recomputed and the document is written;
if the block raises, the in-memory document is restored from the snapshot
taken on entry and nothing is written.

The live `ClinicData` object is never replaced, only refilled, so
repositories built around it stay valid across rollbacks and imports.
"""

import copy
import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import fields
from pathlib import Path
from typing import Iterator, Optional

from ..constants import DOCUMENT_KEY, TABLE_DOCUMENTS
from ..utils.validators import is_iso_date
from . import get_connection
from .errors import DataCorruption
from .models import ClinicData, Counters, JsonRecord
from .repositories.accounts_repo import recompute_running_balances
from .seeders.default_data import seed as seed_default_data

_log = logging.getLogger(__name__)


def _refill(target: ClinicData, source: ClinicData) -> None:
    for f in fields(ClinicData):
        setattr(target, f.name, getattr(source, f.name))


# record fields holding a document date; `expiryDate` may be blank and is not listed
_DATE_FIELDS = ("date", "timestamp")
_NUMBER_TYPES = ("float", "int", "Optional[float]")


def _check_record(record: JsonRecord, path: str) -> None:
    """Walk a parsed record; raise DataCorruption naming the first bad value."""
    for f in fields(record):  # type: ignore[arg-type]
        value = getattr(record, f.name)
        where = f"{path}.{record._key(f.name)}" if path else record._key(f.name)
        if isinstance(value, list):
            for i, item in enumerate(value):
                if isinstance(item, JsonRecord):
                    _check_record(item, f"{where}[{i}]")
        elif isinstance(value, JsonRecord):
            _check_record(value, where)
        elif f.name in _DATE_FIELDS:
            if not is_iso_date(value):
                raise DataCorruption(f"Invalid backup file: {where} is not a valid date ({value!r}).")
        elif f.type in _NUMBER_TYPES and value is not None:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise DataCorruption(f"Invalid backup file: {where} is not a number ({value!r}).")


def _coerce_counters(counters: Counters) -> None:
    for f in fields(counters):
        value = getattr(counters, f.name)
        try:
            if isinstance(value, bool):
                raise TypeError(value)
            setattr(counters, f.name, int(value))
        except (TypeError, ValueError):
            raise DataCorruption(
                f"Invalid backup file: counters.{counters._key(f.name)} is not an integer ({value!r})."
            ) from None


def parse_document(text: str) -> ClinicData:
    """
    Parse an exported/stored document. Keys missing from older exports are
    filled with defaults; a missing `counters` object or `products` list
    means the text is not a clinic document at all.
    """
    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as e:
        raise DataCorruption(f"Invalid backup file: not valid JSON ({e}).") from e
    if not isinstance(raw, dict) or not isinstance(raw.get("counters"), dict) \
            or not isinstance(raw.get("products"), list):
        raise DataCorruption("Invalid backup file format. Core data structure is incorrect.")
    try:
        data = ClinicData.from_dict(raw)
    except (TypeError, ValueError, KeyError) as e:
        raise DataCorruption(f"Invalid backup file format: {e}") from e
    _coerce_counters(data.counters)
    _check_record(data, "")
    return data


class DocumentStore:
    """
    Single-writer store. `lock` is re-entrant so facade methods may nest
    transactions; readers take it too so they never see a half-applied
    mutation.
    """

    def __init__(self, db_path: str | Path | None = None, conn: Optional[sqlite3.Connection] = None):
        self.conn = conn if conn is not None else get_connection(db_path)
        self.lock = threading.RLock()
        self.data = ClinicData()
        self._loaded = False

    # ------------------------------------------------------------------
    # raw key/value access
    # ------------------------------------------------------------------

    def get_value(self, key: str) -> Optional[str]:
        with self.lock:
            row = self.conn.execute(
                f"SELECT body FROM {TABLE_DOCUMENTS} WHERE key = ?", (key,)
            ).fetchone()
            return row["body"] if row else None

    def set_value(self, key: str, body: str) -> None:
        with self.lock:
            self.conn.execute(
                f"""
                INSERT INTO {TABLE_DOCUMENTS}(key, body, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET body = excluded.body,
                                               updated_at = excluded.updated_at
                """,
                (key, body),
            )
            self.conn.commit()

    # ------------------------------------------------------------------
    # document lifecycle
    # ------------------------------------------------------------------

    def load(self) -> ClinicData:
        """
        Read the stored document (or start from an empty one) and run the
        seed step, persisting if seeding added anything.
        """
        with self.lock:
            stored = self.get_value(DOCUMENT_KEY)
            if stored is not None:
                _refill(self.data, parse_document(stored))
            else:
                _refill(self.data, ClinicData())
            self._loaded = True
            if seed_default_data(self.data) or stored is None:
                self.persist()
            _log.info(
                "Loaded clinic document: %d products, %d invoices, %d transactions",
                len(self.data.products), len(self.data.invoices), len(self.data.account_transactions),
            )
            return self.data

    def persist(self) -> None:
        with self.lock:
            recompute_running_balances(self.data.account_transactions)
            self.set_value(DOCUMENT_KEY, json.dumps(self.data.to_dict()))

    @contextmanager
    def transaction(self) -> Iterator[ClinicData]:
        with self.lock:
            if not self._loaded:
                self.load()
            snapshot = copy.deepcopy(self.data)
            try:
                yield self.data
                self.persist()
            except BaseException:
                _refill(self.data, snapshot)
                raise

    # ------------------------------------------------------------------
    # export / import
    # ------------------------------------------------------------------

    def export_json(self) -> str:
        with self.lock:
            if not self._loaded:
                self.load()
            return json.dumps(self.data.to_dict(), indent=2)

    def import_json(self, text: str) -> ClinicData:
        """
        Replace the whole document and run the same seed step as `load()`.
        Raises DataCorruption without touching the stored or in-memory
        document when `text` is not a valid export.
        """
        parsed = parse_document(text)
        with self.lock:
            previous = copy.deepcopy(self.data)
            _refill(self.data, parsed)
            self._loaded = True
            try:
                seed_default_data(self.data)
                self.persist()
            except BaseException:
                _refill(self.data, previous)
                raise
            _log.info("Imported clinic document (%d products)", len(self.data.products))
            return self.data

    def close(self) -> None:
        self.conn.close()
