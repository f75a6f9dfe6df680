"""
modules/backup_restore/service.py

Purpose
-------
Run Backup/Restore of the clinic document off the caller's thread and report
progress through duck-typed callbacks; take the periodic automatic snapshot.

Public interface
----------------
- BackupJob(db).run_async(dest_file: str, callbacks) -> None / .run(dest_file, callbacks) -> Optional[str]
- RestoreJob(db).run_async(src_file: str, callbacks) -> None / .run(src_file, callbacks) -> bool
- AutoBackupScheduler(db, backup_dir).check_and_backup(now=None) -> Optional[str]

`db` is the ClinicDB facade (export_data / import_data / store).

Where callbacks is any object (or simple namespace) that exposes:
- phase(text: str)
- progress(pct: int)                  # 0..100, or negative for indeterminate
- log(line: str)
- finished(success: bool, message: str, path: Optional[str])
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from PySide6.QtCore import QObject, QRunnable, QThreadPool, QTimer, Slot

from ...config import BACKUP_PATH
from ...constants import (
    AUTO_BACKUP_CHECK_MS,
    AUTO_BACKUP_FILE_NAME,
    AUTO_BACKUP_INTERVAL_HOURS,
    LAST_AUTO_BACKUP_KEY,
)
from ..event_bus import EventBus, get_event_bus
from . import fsops
from .logging_utils import get_logger, log_event
from .validators import BACKUP_SUFFIX, validate_backup_destination, validate_backup_source

_log = logging.getLogger(__name__)


# ----------------------------
# Utilities
# ----------------------------

def _safe_call(fn: Optional[Callable], *args, **kwargs) -> None:
    """Call a callback if present; a failing callback never aborts the job."""
    if fn is None:
        return
    try:
        fn(*args, **kwargs)
    except Exception:
        _log.debug("Backup/restore callback failed:\n%s", traceback.format_exc())


def _fmt_err(msg: str, exc: BaseException | None = None) -> str:
    if exc is None:
        return msg
    return f"{msg}\n\n{exc.__class__.__name__}: {exc}"


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


@dataclass
class _Callbacks:
    phase: Optional[Callable[[str], None]] = None
    progress: Optional[Callable[[int], None]] = None
    log: Optional[Callable[[str], None]] = None
    finished: Optional[Callable[[bool, str, Optional[str]], None]] = None

    @classmethod
    def of(cls, callbacks) -> "_Callbacks":
        return cls(
            phase=getattr(callbacks, "phase", None),
            progress=getattr(callbacks, "progress", None),
            log=getattr(callbacks, "log", None),
            finished=getattr(callbacks, "finished", None),
        )


# ----------------------------
# Base runnable
# ----------------------------

class _JobRunnable(QRunnable):
    """Thin QRunnable wrapper that executes a callable on the pool."""
    def __init__(self, work: Callable[[], object]) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self._work = work

    @Slot()
    def run(self) -> None:  # type: ignore[override]
        self._work()


# ----------------------------
# Backup Job
# ----------------------------

class BackupJob(QObject):
    """Export the document and write it atomically as a .json file."""

    def __init__(self, db, pool: Optional[QThreadPool] = None, logger: Optional[logging.Logger] = None) -> None:
        super().__init__()
        self._db = db
        self._pool = pool or QThreadPool.globalInstance()
        self._events = logger or get_logger()

    def run_async(self, dest_file: str, callbacks=None) -> None:
        self._pool.start(_JobRunnable(lambda: self.run(dest_file, callbacks)))

    def run(self, dest_file: str, callbacks=None) -> Optional[str]:
        """Blocking workflow; returns the written path or None on failure."""
        cb = _Callbacks.of(callbacks)
        try:
            dest = Path(dest_file)
            if dest.suffix.lower() != BACKUP_SUFFIX:
                dest = dest.with_suffix(BACKUP_SUFFIX)

            _safe_call(cb.phase, "Preflight")
            _safe_call(cb.progress, -1)
            fsops.ensure_writable_dir(str(dest.parent))

            _safe_call(cb.phase, "Exporting data")
            payload = self._db.export_data()
            size = len(payload.encode("utf-8"))
            validate_backup_destination(str(dest), size, fsops.get_free_space_bytes(str(dest.parent)))
            log_event(self._events, "backup", "export", "Document exported", {"bytes": size})
            _safe_call(cb.progress, 50)

            _safe_call(cb.phase, "Saving")
            written = fsops.write_text_atomic(str(dest), payload)
            _safe_call(cb.progress, 100)
            _safe_call(cb.log, f"Backup written to: {written}")
            log_event(self._events, "backup", "done", "Backup written", {"path": written, "bytes": size})

            _safe_call(cb.finished, True, "Backup completed successfully.", written)
            return written
        except Exception as exc:
            _log.debug("Backup failed:\n%s", traceback.format_exc())
            log_event(self._events, "backup", "failed", str(exc), {"dest": str(dest_file)}, level=logging.ERROR)
            _safe_call(cb.finished, False, _fmt_err("Backup failed.", exc), None)
            return None


# ----------------------------
# Restore Job
# ----------------------------

class RestoreJob(QObject):
    """
    Replace the whole document with a previously exported file. The import
    is validated before anything is written; on failure the current data is
    left untouched.
    """

    def __init__(self, db, pool: Optional[QThreadPool] = None, logger: Optional[logging.Logger] = None) -> None:
        super().__init__()
        self._db = db
        self._pool = pool or QThreadPool.globalInstance()
        self._events = logger or get_logger()

    def run_async(self, src_file: str, callbacks=None) -> None:
        self._pool.start(_JobRunnable(lambda: self.run(src_file, callbacks)))

    def run(self, src_file: str, callbacks=None) -> bool:
        cb = _Callbacks.of(callbacks)
        try:
            _safe_call(cb.phase, "Validating backup")
            _safe_call(cb.progress, 5)
            validate_backup_source(src_file)
            text = Path(src_file).read_text(encoding="utf-8")
            _safe_call(cb.progress, 25)

            _safe_call(cb.phase, "Importing data")
            self._db.import_data(text)
            _safe_call(cb.progress, 100)
            _safe_call(cb.log, "Restore completed successfully.")
            log_event(self._events, "restore", "done", "Document restored", {"path": str(src_file)})

            _safe_call(cb.finished, True, "Restore completed successfully.", str(src_file))
            return True
        except Exception as exc:
            _log.debug("Restore failed:\n%s", traceback.format_exc())
            log_event(self._events, "restore", "failed", str(exc), {"path": str(src_file)}, level=logging.ERROR)
            _safe_call(cb.finished, False, _fmt_err("Restore failed.", exc), None)
            return False


# ----------------------------
# Automatic daily snapshot
# ----------------------------

class AutoBackupScheduler(QObject):
    """
    Writes `vetclinic_auto_backup.json` into the backup folder when no
    automatic backup was taken yet or the last one is older than the
    interval. The marker (epoch milliseconds) lives in the documents table.
    """

    def __init__(
        self,
        db,
        backup_dir: str | Path | None = None,
        interval: timedelta = timedelta(hours=AUTO_BACKUP_INTERVAL_HOURS),
        bus: Optional[EventBus] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__()
        self._db = db
        self._dir = Path(backup_dir) if backup_dir is not None else BACKUP_PATH
        self._interval = interval
        self._bus = bus or get_event_bus()
        self._events = logger or get_logger()
        self._timer: Optional[QTimer] = None

    @property
    def target(self) -> Path:
        return self._dir / AUTO_BACKUP_FILE_NAME

    def last_backup(self) -> Optional[datetime]:
        raw = self._db.store.get_value(LAST_AUTO_BACKUP_KEY)
        if not raw:
            return None
        try:
            return datetime.fromtimestamp(int(raw) / 1000)
        except (TypeError, ValueError):
            _log.warning("Ignoring unreadable auto-backup marker %r", raw)
            return None

    def is_due(self, now: Optional[datetime] = None) -> bool:
        last = self.last_backup()
        return last is None or (now or datetime.now()) - last > self._interval

    def check_and_backup(self, now: Optional[datetime] = None) -> Optional[str]:
        """Returns the written path when a backup was taken, else None."""
        now = now or datetime.now()
        if not self.is_due(now):
            return None
        log_event(self._events, "auto_backup", "start", "Triggering automatic backup")
        written = BackupJob(self._db, logger=self._events).run(str(self.target))
        if written is None:
            # marker untouched so the next check tries again
            return None
        stamp = _epoch_ms(now)
        self._db.store.set_value(LAST_AUTO_BACKUP_KEY, str(stamp))
        self._bus.backup_completed.emit(stamp)
        return written

    # ---- periodic ----
    def start(self, interval_ms: int = AUTO_BACKUP_CHECK_MS) -> None:
        """Check now (the app may have been closed for days), then hourly."""
        self.check_and_backup()
        if self._timer is None:
            self._timer = QTimer(self)
            self._timer.timeout.connect(self._tick)
        self._timer.start(interval_ms)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.stop()

    @Slot()
    def _tick(self) -> None:
        self.check_and_backup()
