"""
modules/sync/service.py

Purpose
-------
Drain queued create/update/delete operations to a remote peer without
blocking foreground mutations.

Public interface
----------------
- SyncService(db, transport=None, bus=None)
    .status / .pending
    .set_online(online: bool)
    .refresh() -> int                 # recount queue, update status
    .drain() -> int                   # synchronous drain, returns ops sent
    .drain_async() -> bool            # same, on the thread pool
    .start(interval_ms) / .stop()     # periodic refresh + drain

A transport is any callable taking one SyncOperation. Returning normally
acknowledges the operation, which is then removed from the queue; raising
stops the drain and leaves that operation (and everything after it) queued
for the next round. There is no retry inside one round.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from PySide6.QtCore import QObject, QRunnable, QThreadPool, QTimer, Signal, Slot

from ...constants import SYNC_INTERVAL_MS
from ...database.models import SyncOperation
from ..event_bus import EventBus, get_event_bus

OFFLINE = "offline"
ONLINE = "online"
SYNCING = "syncing"
PENDING = "pending"

Transport = Callable[[SyncOperation], None]

_log = logging.getLogger(__name__)


def log_transport(op: SyncOperation) -> None:
    """Stand-in transport for installs without a remote peer: log and acknowledge."""
    _log.info("sync %s %s on %s", op.id, op.action, op.collection)


class _DrainRunnable(QRunnable):
    def __init__(self, work: Callable[[], object]) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self._work = work

    @Slot()
    def run(self) -> None:  # type: ignore[override]
        self._work()


class SyncService(QObject):
    status_changed = Signal(str, int)
    drained = Signal(int)

    def __init__(
        self,
        db,
        transport: Optional[Transport] = None,
        bus: Optional[EventBus] = None,
        pool: Optional[QThreadPool] = None,
        online: bool = True,
    ) -> None:
        super().__init__()
        self._db = db
        self._transport = transport or log_transport
        self._bus = bus or get_event_bus()
        self._pool = pool or QThreadPool.globalInstance()
        self._online = online
        self._status = ONLINE if online else OFFLINE
        self._pending = 0
        self._processing = threading.Lock()
        # status and pending change together from the pool and the GUI thread
        self._state_lock = threading.RLock()
        self._timer: Optional[QTimer] = None

    # ---- state ----
    @property
    def status(self) -> str:
        with self._state_lock:
            return self._status

    @property
    def pending(self) -> int:
        with self._state_lock:
            return self._pending

    def state(self) -> tuple[str, int]:
        """(status, pending) read together."""
        with self._state_lock:
            return self._status, self._pending

    def _publish(self, status: str, pending: int) -> None:
        with self._state_lock:
            if status == self._status and pending == self._pending:
                return
            self._status = status
            self._pending = pending
            self.status_changed.emit(status, pending)
            self._bus.sync_status_changed.emit(status, pending)

    def _idle_status(self, pending: int) -> str:
        if not self._online:
            return OFFLINE
        return PENDING if pending > 0 else ONLINE

    def refresh(self) -> int:
        """Recount the queue and publish the resting status; returns the count."""
        pending = len(self._db.get_sync_queue())
        if not self._processing.locked():
            self._publish(self._idle_status(pending), pending)
        else:
            self._publish(SYNCING, pending)
        return pending

    def set_online(self, online: bool) -> None:
        self._online = online
        self.refresh()
        if online:
            self.drain_async()

    # ---- draining ----
    def drain(self) -> int:
        """
        Send queued operations oldest first until the queue is empty, the
        service goes offline, or the transport fails. Returns how many were
        acknowledged. A concurrent call returns 0 immediately.
        """
        if not self._online:
            return 0
        if not self._processing.acquire(blocking=False):
            return 0
        sent = 0
        try:
            queue = self._db.get_sync_queue()
            if queue:
                _log.info("Starting sync for %d operations", len(queue))
                self._publish(SYNCING, len(queue))
            while queue and self._online:
                op = queue[0]
                try:
                    self._transport(op)
                except Exception:
                    _log.warning("Sync of %s failed; %d operations stay queued", op.id, len(queue), exc_info=True)
                    break
                self._db.clear_sync_operations([op.id])
                sent += 1
                queue = self._db.get_sync_queue()
                self._publish(SYNCING, len(queue))
        finally:
            self._processing.release()
        self.refresh()
        if sent:
            _log.info("Sync round finished: %d sent, %d pending", sent, self.pending)
        self.drained.emit(sent)
        return sent

    def drain_async(self) -> bool:
        """Queue a drain on the thread pool; False when offline or already draining."""
        if not self._online or self._processing.locked():
            return False
        self._pool.start(_DrainRunnable(self.drain))
        return True

    # ---- periodic ----
    def start(self, interval_ms: int = SYNC_INTERVAL_MS) -> None:
        self.refresh()
        self.drain_async()
        if self._timer is None:
            self._timer = QTimer(self)
            self._timer.timeout.connect(self._tick)
        self._timer.start(interval_ms)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.stop()

    @Slot()
    def _tick(self) -> None:
        self.refresh()
        self.drain_async()
