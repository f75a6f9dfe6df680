from __future__ import annotations

"""
Customers and suppliers, and their outstanding balances.

`outstanding_balance` is never recomputed from history: invoices add
(total - paid), payments subtract their amount, and deleting an invoice
reverses its adjustment.
"""

import logging
from typing import Generic, List, Optional, Type, TypeVar

from ...utils.validators import non_empty
from ..errors import NotFoundError, PartyInUse, ValidationError
from ..models import ClinicData, Customer, Supplier, clone_records
from .counters import IdAllocator
from .sync_queue_repo import SyncQueueRepo

_log = logging.getLogger(__name__)

P = TypeVar("P", Customer, Supplier)


class _PartiesRepo(Generic[P]):
    record_cls: Type[P]
    entity: str          # counter name
    collection: str      # document/sync collection name
    label: str           # for messages
    invoice_field: str   # Invoice attribute pointing at this party

    def __init__(self, data: ClinicData, ids: IdAllocator, sync: SyncQueueRepo):
        self.data = data
        self.ids = ids
        self.sync = sync

    # ---- Internal helpers -------------------------------------------------

    def _records(self) -> List[P]:
        return getattr(self.data, self.collection)

    @staticmethod
    def _normalize_text(s: str | None) -> str:
        return (s or "").strip()

    def _find(self, party_id: str) -> Optional[P]:
        return next((p for p in self._records() if p.id == party_id), None)

    # ---- Queries ----------------------------------------------------------

    def list(self) -> List[P]:
        return clone_records(self._records())

    def get(self, party_id: str) -> Optional[P]:
        p = self._find(party_id)
        return p.copy() if p else None

    def require(self, party_id: str) -> P:
        """Live record or NotFoundError."""
        p = self._find(party_id)
        if p is None:
            raise NotFoundError(f"{self.label} {party_id} not found.")
        return p

    def search(self, term: str) -> List[P]:
        t = (term or "").strip().lower()
        if not t:
            return []
        return [
            p.copy() for p in self._records()
            if t in p.name.lower() or t in p.id.lower() or (term.strip() in (p.phone or ""))
        ]

    # ---- Mutations --------------------------------------------------------

    def save(
        self,
        name: str,
        phone: str = "",
        address: str = "",
        party_id: str | None = None,
    ) -> str:
        """
        Create (no id) or update contact fields (with id). The balance is
        never taken from the caller; new parties start at 0.
        """
        if not non_empty(name):
            raise ValidationError("Name cannot be empty.")

        if party_id:
            p = self.require(party_id)
            p.name = self._normalize_text(name)
            p.phone = self._normalize_text(phone)
            p.address = self._normalize_text(address)
            self.sync.log(self.collection, "update", p)
            return p.id

        new = self.record_cls(
            id=self.ids.next_id(self.entity),
            name=self._normalize_text(name),
            phone=self._normalize_text(phone),
            address=self._normalize_text(address),
            outstanding_balance=0.0,
        )
        self._records().append(new)
        self.sync.log(self.collection, "create", new)
        _log.info("Created %s %s (%s)", self.label.lower(), new.id, new.name)
        return new.id

    def delete(self, party_id: str) -> None:
        """
        Refused while any invoice references the party, or while its
        balance is not settled.
        """
        p = self.require(party_id)
        if any(getattr(inv, self.invoice_field) == party_id for inv in self.data.invoices):
            raise PartyInUse(
                f"Cannot delete {self.label.lower()} with existing invoices. "
                "Please delete their invoices first."
            )
        if p.outstanding_balance != 0:
            raise PartyInUse(
                f"Cannot delete {self.label.lower()} with an outstanding balance "
                f"of {p.outstanding_balance:.2f}."
            )
        self.sync.log(self.collection, "delete", party_id)
        setattr(self.data, self.collection, [r for r in self._records() if r.id != party_id])

    def adjust_balance(self, party_id: str, delta: float) -> float:
        """Add `delta` to the outstanding balance; returns the new balance."""
        p = self.require(party_id)
        p.outstanding_balance += delta
        return p.outstanding_balance


class CustomersRepo(_PartiesRepo[Customer]):
    record_cls = Customer
    entity = "customer"
    collection = "customers"
    label = "Customer"
    invoice_field = "customer_id"


class SuppliersRepo(_PartiesRepo[Supplier]):
    record_cls = Supplier
    entity = "supplier"
    collection = "suppliers"
    label = "Supplier"
    invoice_field = "supplier_id"
