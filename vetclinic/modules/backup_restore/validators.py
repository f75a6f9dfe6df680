"""
modules/backup_restore/validators.py

Purpose
-------
Centralize common preflight checks with clear, user-friendly error messages.

Public API
---------
- validate_backup_destination(dest_file: str, payload_size: int, free_space: int) -> None
- validate_backup_source(src_file: str) -> None
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Iterable

BACKUP_SUFFIX = ".json"


def _human_size(num: int) -> str:
    units = ["B", "KB", "MB", "GB", "TB"]
    size = float(max(0, int(num)))
    for u in units:
        if size < 1024.0 or u == units[-1]:
            return f"{size:.1f} {u}"
        size /= 1024.0
    return f"{size:.1f} TB"


def _windows_reserved_names() -> Iterable[str]:
    return {
        "con", "prn", "aux", "nul",
        *(f"com{i}" for i in range(1, 10)),
        *(f"lpt{i}" for i in range(1, 10)),
    }


def validate_backup_destination(dest_file: str, payload_size: int, free_space: int) -> None:
    """
    Validate that the destination path can receive a backup file.

    Rules:
      - Filename must be non-empty and not an existing directory.
      - Windows reserved names are refused.
      - Free space must cover twice the export size (temp file + final file).
    Raises:
      RuntimeError with a user-facing message on failure.
    """
    path = Path(dest_file)
    name = path.name.strip()
    if not name:
        raise RuntimeError("Please provide a file name for the backup.")
    if sys.platform.startswith("win"):
        if path.stem.lower().rstrip(".") in _windows_reserved_names():
            raise RuntimeError(f"The backup filename '{path.stem}' is reserved on Windows.")
        if path.name.endswith((" ", ".")):
            raise RuntimeError("Windows filenames cannot end with a space or dot.")
    if path.exists() and path.is_dir():
        raise RuntimeError("Destination path points to a directory, not a file.")

    required = int(max(0, payload_size) * 2)
    if free_space < required:
        raise RuntimeError(
            "Not enough free space in the destination folder.\n"
            f"Required (approx): {_human_size(required)}\n"
            f"Available: {_human_size(free_space)}"
        )


def validate_backup_source(src_file: str) -> None:
    """
    Validate that a backup file can be read before attempting a restore.

    Rules:
      - Path must exist and be a regular, readable file with a .json suffix.
      - Size must be > 0 bytes.
    Raises:
      RuntimeError with a user-facing message on failure.
    """
    p = Path(src_file)
    if not p.exists():
        raise RuntimeError(f"Backup file not found: {p}")
    if not p.is_file():
        raise RuntimeError(f"Backup path is not a file: {p}")
    if p.suffix.lower() != BACKUP_SUFFIX:
        raise RuntimeError(f"Backup file must have {BACKUP_SUFFIX} extension.")
    if not os.access(str(p), os.R_OK):
        raise RuntimeError(f"Backup file is not readable: {p}")
    if p.stat().st_size <= 0:
        raise RuntimeError("The backup file is empty (0 bytes).")
