"""
modules/backup_restore/fsops.py

Purpose
-------
File-system utilities with attention to atomicity and cross-platform behavior.

Public interface
----------------
- ensure_writable_dir(path: str) -> None
- get_free_space_bytes(path: str) -> int
- make_temp_file(suffix: str = "", dir: Optional[str] = None) -> str
- atomic_move(src: str, dest: str, *, verbose: bool = False, logger: Optional[logging.Logger] = None) -> None
- write_text_atomic(dest: str, text: str) -> str
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

__all__ = [
    "ensure_writable_dir",
    "get_free_space_bytes",
    "make_temp_file",
    "atomic_move",
    "write_text_atomic",
]

# ----------------------------
# Helpers (private)
# ----------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds") + "Z"


def _log(logger: Optional[logging.Logger], verbose: bool, message: str, **fields) -> None:
    """Emit a single line of key=value fields if verbose logging is enabled."""
    if not (verbose and logger):
        return
    parts = [message]
    for k, v in fields.items():
        parts.append(f"{k}={v}")
    logger.info(" ".join(parts))


def _fsync_file(path: Path) -> None:
    """Best-effort fsync for a file."""
    try:
        fd = os.open(str(path), os.O_RDWR | getattr(os, "O_BINARY", 0))
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        # not every platform/file allows fsync; the data is still written
        pass


def _fsync_dir(path: Path) -> None:
    """Best-effort fsync for a directory (Windows cannot open directories)."""
    try:
        fd = os.open(str(path), os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        pass


def _same_device(p1: Path, p2: Path) -> bool:
    try:
        return p1.stat().st_dev == p2.parent.stat().st_dev
    except OSError:
        return p1.resolve().anchor == p2.resolve().anchor


# ----------------------------
# Public API
# ----------------------------

def ensure_writable_dir(path: str) -> None:
    """
    Create `path` if needed and verify a file can actually be written there.
    Raise RuntimeError with a helpful message if not.
    """
    p = Path(path)
    if p.exists() and not p.is_dir():
        raise RuntimeError(f"Backup path is not a folder: {p}")
    try:
        p.mkdir(parents=True, exist_ok=True)
        tmp = tempfile.NamedTemporaryFile(prefix=".permcheck_", dir=str(p), delete=True)
        tmp.close()
    except OSError as exc:
        raise RuntimeError(f"Unable to write to backup folder: {p} ({exc})") from exc


def get_free_space_bytes(path: str) -> int:
    """Available bytes on the filesystem holding `path` (or its nearest existing parent)."""
    probe = Path(path)
    while not probe.exists() and probe != probe.parent:
        probe = probe.parent
    return int(shutil.disk_usage(str(probe)).free)


def make_temp_file(suffix: str = "", dir: Optional[str] = None) -> str:
    """
    Create an empty temp file that survives close (delete=False) and return
    its absolute path. Caller moves or removes it.
    """
    d = Path(dir) if dir else Path(tempfile.gettempdir())
    d.mkdir(parents=True, exist_ok=True)
    f = tempfile.NamedTemporaryFile(prefix="vetclinic_", suffix=suffix, dir=str(d), delete=False)
    f_path = Path(f.name).resolve()
    f.close()
    return str(f_path)


def atomic_move(
    src: str,
    dest: str,
    *,
    verbose: bool = False,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Move `src` over `dest` so readers only ever see the old or the new file.
    Same volume: os.replace(). Across volumes: copy next to `dest`, fsync,
    then os.replace() and remove the source.
    """
    src_p = Path(src).resolve()
    dest_p = Path(dest).resolve()
    dest_p.parent.mkdir(parents=True, exist_ok=True)
    _log(logger, verbose, "atomic_move.start", ts=_now_iso(), src=str(src_p), dest=str(dest_p),
         src_size=src_p.stat().st_size)

    if _same_device(src_p, dest_p):
        _fsync_file(src_p)
        os.replace(str(src_p), str(dest_p))
    else:
        tmp_dest = dest_p.with_suffix(dest_p.suffix + ".part")
        tmp_dest.unlink(missing_ok=True)
        shutil.copy2(str(src_p), str(tmp_dest))
        _fsync_file(tmp_dest)
        os.replace(str(tmp_dest), str(dest_p))
        src_p.unlink(missing_ok=True)
    _fsync_dir(dest_p.parent)
    _log(logger, verbose, "atomic_move.replaced", ts=_now_iso(), final=str(dest_p),
         final_size=dest_p.stat().st_size)


def write_text_atomic(dest: str, text: str) -> str:
    """Write `text` (UTF-8) to a temp file beside `dest`, then atomically move it into place."""
    dest_p = Path(dest)
    tmp = make_temp_file(suffix=dest_p.suffix or ".tmp", dir=str(dest_p.parent))
    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            fh.write(text)
        atomic_move(tmp, str(dest_p))
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    return str(dest_p.resolve())
