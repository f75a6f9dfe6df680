"""
utils/payments/calculations.py

Pure helpers for invoice/payment money math shared by the invoice processor,
the cash ledger and the reports.

Do not touch the document here. Only compute numbers; formatting belongs in the UI.
"""
from __future__ import annotations

from typing import Iterable, Tuple

__all__ = [
    "clamp_non_negative",
    "balance_change",
    "split_treatment_payment",
    "sale_cost",
    "treatment_cost",
    "vet_fee",
]


# -----------------------------
# Core utilities
# -----------------------------

def clamp_non_negative(x: float) -> float:
    """Return x if x > 0, else 0.0."""
    return x if x > 0.0 else 0.0


def balance_change(total_amount: float, amount_paid: float, multiplier: int = 1) -> float:
    """
    Amount by which the party's outstanding balance moves for an invoice:
    (total - paid) * multiplier, +1 on create and -1 on delete. Not clamped:
    overpayment leaves the party in credit.
    """
    return (float(total_amount) - float(amount_paid)) * multiplier


# -----------------------------
# Treatment payments
# -----------------------------

def split_treatment_payment(amount_paid: float, medicine_charged: float) -> Tuple[float, float]:
    """
    Split a treatment payment between the two cash columns.

    The clinic receives up to the charged medicine amount (the invoice
    subtotal); anything above it is the vet's fee and goes to the owner.

    Returns:
        (clinic_amount, owner_amount)
    """
    to_clinic = min(float(amount_paid), clamp_non_negative(float(medicine_charged)))
    return to_clinic, float(amount_paid) - to_clinic


# -----------------------------
# Cost of goods
# -----------------------------

def sale_cost(items: Iterable) -> float:
    """Sale lines carry a per-unit cost basis: cost = sum(unit cost * quantity)."""
    return sum((it.purchase_unit_price or 0.0) * it.quantity for it in items)


def treatment_cost(items: Iterable, other_expenses: float | None) -> float:
    """Treatment lines already carry their total cost; add the other expenses."""
    return sum((it.purchase_unit_price or 0.0) for it in items) + float(other_expenses or 0.0)


def vet_fee(charged_amount: float | None, items: Iterable, other_expenses: float | None) -> float:
    """Margin kept by the vet: charged - (medicine cost + other expenses)."""
    return float(charged_amount or 0.0) - treatment_cost(items, other_expenses)
