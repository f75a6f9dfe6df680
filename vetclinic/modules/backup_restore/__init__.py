"""
Backup & Restore of the clinic document.

- BackupJob / RestoreJob run on the Qt thread pool and report through callbacks.
- AutoBackupScheduler takes the daily automatic snapshot.
"""

from __future__ import annotations

from .service import AutoBackupScheduler, BackupJob, RestoreJob

MODULE_TITLE: str = "Backup & Restore"
__all__ = ["MODULE_TITLE", "AutoBackupScheduler", "BackupJob", "RestoreJob"]
