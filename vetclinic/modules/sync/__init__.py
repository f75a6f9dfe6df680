"""
Background sync of the outbound operation queue.

SyncService drains the document's sync_queue on a QThreadPool worker through
a transport callable and reports its status; the queue itself lives in
`vetclinic.database.repositories.sync_queue_repo`.
"""

from .service import (
    OFFLINE,
    ONLINE,
    PENDING,
    SYNCING,
    SyncService,
    log_transport,
)

__all__ = ["OFFLINE", "ONLINE", "PENDING", "SYNCING", "SyncService", "log_transport"]
