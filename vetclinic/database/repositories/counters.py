"""
Identifier allocation.

Every entity has a monotonic counter in `ClinicData.counters`; ids are the
counter value behind a human-readable prefix and are never reused.
"""

from __future__ import annotations

from ...constants import INVOICE_PREFIXES
from ..errors import ValidationError
from ..models import ClinicData

# entity -> (counter field, id prefix)
_ENTITY_PREFIXES: dict[str, tuple[str, str]] = {
    "customer": ("customer", "cus"),
    "supplier": ("supplier", "sup"),
    "payment": ("payment", "pay"),
    "expense": ("expense", "exp"),
    "user": ("user", "user"),
    "transaction": ("transaction", "trans#"),
    "sync_operation": ("sync_operation", "sync"),
}


class IdAllocator:
    def __init__(self, data: ClinicData):
        self.data = data

    def next_id(self, entity: str) -> str:
        """Reserve the next id for `entity` ('customer', 'transaction', ...)."""
        try:
            counter, prefix = _ENTITY_PREFIXES[entity]
        except KeyError:
            raise ValidationError(f"Unknown entity for id allocation: {entity}") from None
        return f"{prefix}{self._bump(counter)}"

    def next_invoice_id(self, invoice_type: str) -> str:
        """Invoice types share one counter: sl#1, pur#2, trt#3, ..."""
        prefix = INVOICE_PREFIXES.get(invoice_type)
        if prefix is None:
            raise ValidationError(f"Unknown invoice type: {invoice_type}")
        return f"{prefix}{self._bump('invoice')}"

    def _bump(self, counter: str) -> int:
        value = int(getattr(self.data.counters, counter))
        setattr(self.data.counters, counter, value + 1)
        return value
