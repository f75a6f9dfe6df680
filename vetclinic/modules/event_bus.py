"""
modules/event_bus.py

Process-wide change notifications.

- data_changed(collection)          after every persisted mutation
                                    ("*" after an import replaces everything)
- sync_status_changed(status, n)    sync state + number of queued operations
- backup_completed(timestamp_ms)    after an automatic or manual backup
"""

from __future__ import annotations

from PySide6.QtCore import QObject, Signal

ALL_COLLECTIONS = "*"


class EventBus(QObject):
    data_changed = Signal(str)
    sync_status_changed = Signal(str, int)
    backup_completed = Signal(object)


_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Shared bus; created on first use so importing this module has no Qt side effects."""
    global _bus
    if _bus is None:
        _bus = EventBus()
    return _bus
