from __future__ import annotations

from typing import Optional

from ...constants import STATUS_CREDIT, STATUS_FULLY_PAID, STATUS_PARTIALLY_PAID

# ---------- Canonical set & order ----------
VALID_STATES: tuple[str, ...] = (STATUS_FULLY_PAID, STATUS_PARTIALLY_PAID, STATUS_CREDIT)
STATE_ORDER: dict[str, int] = {s: i for i, s in enumerate(VALID_STATES)}

# ---------- Descriptions (UI copy / tooltips) ----------
DESCRIPTIONS = {
    STATUS_FULLY_PAID: "Settled in full at the time of invoicing.",
    STATUS_PARTIALLY_PAID: "Part paid; the remainder is carried on the party balance.",
    STATUS_CREDIT: "Nothing paid; the whole total is carried on the party balance.",
}


# ---------- API ----------

def derive_status(total_amount: float, amount_paid: float, has_items: bool = True) -> str:
    """
    Payment status for an invoice header.

    - Fully Paid: nothing is owed (total <= 0 on an invoice with lines) or the
      paid amount covers the total.
    - Partially Paid: something was paid but less than the total.
    - Credit: nothing paid.
    """
    if total_amount <= 0 and has_items:
        return STATUS_FULLY_PAID
    if amount_paid >= total_amount:
        return STATUS_FULLY_PAID
    if amount_paid > 0:
        return STATUS_PARTIALLY_PAID
    return STATUS_CREDIT


def is_valid(state: Optional[str]) -> bool:
    return state in VALID_STATES


def description(state: str) -> str:
    """Short human description for tooltips; empty string if unknown."""
    return DESCRIPTIONS.get(state, "")


def sort_key(state: str) -> int:
    """Stable sort key using STATE_ORDER; unknown states sort after known ones."""
    return STATE_ORDER.get(state, 999)
