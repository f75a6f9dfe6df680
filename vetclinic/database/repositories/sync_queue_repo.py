from __future__ import annotations

"""
Outbound sync queue.

Every create/update/delete of a record appends one SyncOperation to the
document's `sync_queue`. The payload is a snapshot of the record at the
time of the change (or a DeletedRef for deletes). Draining lives in
`vetclinic.modules.sync`; this repo only appends, lists and clears.
"""

import copy
from typing import Iterable, List

from ...utils.helpers import now_iso
from ..models import ClinicData, DeletedRef, SyncOperation, User
from .counters import IdAllocator


class SyncQueueRepo:
    def __init__(self, data: ClinicData, ids: IdAllocator):
        self.data = data
        self.ids = ids

    def log(self, collection: str, action: str, payload) -> SyncOperation:
        """
        Append an operation. For deletes `payload` may be the record id.
        User payloads never carry the password hash.
        """
        if action == "delete":
            ref = payload if isinstance(payload, str) else payload.id
            body = DeletedRef(id=ref)
        elif isinstance(payload, User):
            body = payload.masked()
        else:
            body = copy.deepcopy(payload)

        op = SyncOperation(
            id=self.ids.next_id("sync_operation"),
            timestamp=now_iso(),
            collection=collection,
            action=action,
            payload=body,
        )
        self.data.sync_queue.append(op)
        return op

    def list_operations(self) -> List[SyncOperation]:
        return [copy.deepcopy(op) for op in self.data.sync_queue]

    def pending_count(self) -> int:
        return len(self.data.sync_queue)

    def clear(self, ids: Iterable[str]) -> int:
        """Remove acknowledged operations; returns how many were removed."""
        id_set = set(ids)
        before = len(self.data.sync_queue)
        self.data.sync_queue = [op for op in self.data.sync_queue if op.id not in id_set]
        return before - len(self.data.sync_queue)
