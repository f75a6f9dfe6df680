from __future__ import annotations

"""
Dual-column cash ledger (clinic account / owner's pocket).

Entries are appended by invoice payments, standalone payments, expenses and
manual transfers. Running balances are never hand-set: they are rebuilt by
`recompute_running_balances()`, which the persistence boundary calls after
every mutation.

Ordering: date ascending, then the numeric suffix of the 'trans#N' id, so
same-day entries keep the order in which they were recorded.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ...utils.helpers import id_suffix, parse_datetime
from ...utils.validators import is_iso_date, is_strictly_positive_number
from ..errors import NotFoundError, ReferentialIntegrityError, ValidationError
from ..models import AccountTransaction, ClinicData, clone_records
from .counters import IdAllocator
from .sync_queue_repo import SyncQueueRepo

_log = logging.getLogger(__name__)

CLINIC_TO_OWNER = "clinicToOwner"
OWNER_TO_CLINIC = "ownerToClinic"
PERSONAL_SPENDING = "personalSpending"
MANUAL_KINDS: tuple[str, ...] = (CLINIC_TO_OWNER, OWNER_TO_CLINIC, PERSONAL_SPENDING)


@dataclass
class Balances:
    clinic_balance: float = 0.0
    owner_balance: float = 0.0


def chronological_key(t: AccountTransaction):
    return (parse_datetime(t.date), id_suffix(t.id))


def recompute_running_balances(transactions: List[AccountTransaction]) -> List[AccountTransaction]:
    """
    Sort `transactions` in place chronologically and rewrite every running
    balance from zero. Returns the same list for chaining.
    """
    transactions.sort(key=chronological_key)
    clinic = 0.0
    owner = 0.0
    for t in transactions:
        clinic += t.clinic_amount
        owner += t.owner_amount
        t.clinic_balance = clinic
        t.owner_balance = owner
    return transactions


def signed_amounts(kind: str, amount: float) -> Tuple[float, float]:
    """
    (clinic_amount, owner_amount) for a manual transfer kind:
      clinicToOwner    -> (-amount, +amount)
      ownerToClinic    -> (+amount, -amount)
      personalSpending -> (0, -amount)
    """
    a = float(amount)
    if kind == CLINIC_TO_OWNER:
        return -a, a
    if kind == OWNER_TO_CLINIC:
        return a, -a
    if kind == PERSONAL_SPENDING:
        return 0.0, -a
    raise ValidationError(f"Unknown transaction type: {kind}")


def infer_kind(t: AccountTransaction) -> str:
    """Kind of a stored manual entry, read back from its signs."""
    if t.clinic_amount == 0 and t.owner_amount < 0:
        return PERSONAL_SPENDING
    if t.clinic_amount < 0 and t.owner_amount > 0:
        return CLINIC_TO_OWNER
    return OWNER_TO_CLINIC


class AccountsRepo:
    def __init__(self, data: ClinicData, ids: IdAllocator, sync: SyncQueueRepo):
        self.data = data
        self.ids = ids
        self.sync = sync

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_transactions(self) -> List[AccountTransaction]:
        """Chronological copies with freshly computed running balances."""
        return recompute_running_balances(clone_records(self.data.account_transactions))

    def latest_balances(self) -> Balances:
        ordered = self.list_transactions()
        if not ordered:
            return Balances()
        last = ordered[-1]
        return Balances(clinic_balance=last.clinic_balance, owner_balance=last.owner_balance)

    def by_reference(self, reference_id: str) -> List[AccountTransaction]:
        return [t for t in self.data.account_transactions if t.reference_id == reference_id]

    # ------------------------------------------------------------------
    # System entries (invoices, payments, expenses)
    # ------------------------------------------------------------------
    def add_entry(
        self,
        *,
        date: str,
        description: str,
        clinic_amount: float,
        owner_amount: float = 0.0,
        reference_id: Optional[str] = None,
        is_manual: bool = False,
    ) -> AccountTransaction:
        t = AccountTransaction(
            id=self.ids.next_id("transaction"),
            date=date,
            description=description,
            clinic_amount=float(clinic_amount),
            owner_amount=float(owner_amount),
            reference_id=reference_id,
            is_manual=is_manual,
        )
        self.data.account_transactions.append(t)
        return t

    def remove_by_reference(self, reference_id: str) -> int:
        before = len(self.data.account_transactions)
        self.data.account_transactions = [
            t for t in self.data.account_transactions if t.reference_id != reference_id
        ]
        return before - len(self.data.account_transactions)

    # ------------------------------------------------------------------
    # Manual entries
    # ------------------------------------------------------------------
    def save_manual(
        self,
        *,
        kind: Optional[str],
        amount: float,
        date: str,
        description: str = "",
        transaction_id: Optional[str] = None,
    ) -> str:
        """
        Create a manual transfer, or edit amount/date/description of an
        existing one. The kind of an existing entry cannot be changed.
        """
        if not is_strictly_positive_number(amount):
            raise ValidationError("Amount must be greater than zero.")
        if not is_iso_date(date):
            raise ValidationError("A valid date is required.")

        if transaction_id:
            t = self.data.find_transaction(transaction_id)
            if t is None:
                raise NotFoundError(f"Transaction {transaction_id} not found.")
            if not t.is_manual:
                raise ReferentialIntegrityError(
                    "Only manual transactions can be edited here; edit the source invoice, "
                    "payment or expense instead."
                )
            stored_kind = infer_kind(t)
            if kind and kind != stored_kind:
                raise ValidationError("Transaction type cannot be changed.")
            t.clinic_amount, t.owner_amount = signed_amounts(stored_kind, amount)
            t.date = date
            t.description = description.strip()
            self.sync.log("accountTransactions", "update", t)
            return t.id

        if kind not in MANUAL_KINDS:
            raise ValidationError(f"Unknown transaction type: {kind}")
        clinic_amount, owner_amount = signed_amounts(kind, amount)
        t = self.add_entry(
            date=date,
            description=description.strip(),
            clinic_amount=clinic_amount,
            owner_amount=owner_amount,
            is_manual=True,
        )
        self.sync.log("accountTransactions", "create", t)
        _log.info("Manual %s of %.2f recorded as %s", kind, float(amount), t.id)
        return t.id

    def delete_manual(self, transaction_id: str) -> None:
        t = self.data.find_transaction(transaction_id)
        if t is None:
            raise NotFoundError(f"Transaction {transaction_id} not found.")
        if not t.is_manual:
            raise ReferentialIntegrityError(
                "This transaction was generated by an invoice, payment or expense; "
                "delete the source record instead."
            )
        self.sync.log("accountTransactions", "delete", transaction_id)
        self.data.account_transactions = [
            x for x in self.data.account_transactions if x.id != transaction_id
        ]


def totals(transactions: Iterable[AccountTransaction]) -> Balances:
    """Column sums, independent of ordering."""
    b = Balances()
    for t in transactions:
        b.clinic_balance += t.clinic_amount
        b.owner_balance += t.owner_amount
    return b
