from __future__ import annotations

"""
Repository for clinic expenses.

Each expense owns exactly one cash-ledger entry (clinic -amount, referenceId
= expense id, description "Expense: <category> - <description>"). Updating
the expense rewrites that entry; deleting the expense removes it.
"""

import logging
from typing import List, Optional

from ...utils.helpers import is_within_date_range
from ...utils.validators import is_iso_date, is_strictly_positive_number, non_empty
from ..errors import NotFoundError, ValidationError
from ..models import ClinicData, Expense, clone_records
from .accounts_repo import AccountsRepo
from .counters import IdAllocator
from .sync_queue_repo import SyncQueueRepo

_log = logging.getLogger(__name__)


def ledger_description(category: str, description: str) -> str:
    return f"Expense: {category} - {description}"


class ExpensesRepo:
    """
    Create / update / delete expenses and keep their ledger entry in step.
    Amounts are positive here; the ledger entry carries the negative sign.
    """

    def __init__(self, data: ClinicData, ids: IdAllocator, sync: SyncQueueRepo, accounts: AccountsRepo):
        self.data = data
        self.ids = ids
        self.sync = sync
        self.accounts = accounts

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_expenses(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Expense]:
        """Expenses in range, most recent first."""
        rows = [e for e in self.data.expenses if is_within_date_range(e.date, start_date, end_date)]
        rows.sort(key=lambda e: e.date, reverse=True)
        return clone_records(rows)

    def total_by_category(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> dict:
        """Sum of amounts per category in range."""
        out: dict = {}
        for e in self.data.expenses:
            if is_within_date_range(e.date, start_date, end_date):
                out[e.category] = out.get(e.category, 0.0) + e.amount
        return out

    def _find(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self.data.expenses if e.id == expense_id), None)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(date: str, category: str, amount: float) -> None:
        if not non_empty(category):
            raise ValidationError("Category cannot be empty.")
        if not is_strictly_positive_number(amount):
            raise ValidationError("Expense amount must be greater than zero.")
        if not is_iso_date(date):
            raise ValidationError("A valid expense date is required.")

    def save(
        self,
        *,
        date: str,
        category: str,
        description: str,
        amount: float,
        expense_id: Optional[str] = None,
    ) -> str:
        """Create (no id) or update (with id); returns the expense id."""
        self._validate(date, category, amount)
        category = category.strip()
        description = (description or "").strip()
        amount = float(amount)

        if expense_id:
            e = self._find(expense_id)
            if e is None:
                raise NotFoundError(f"Expense {expense_id} not found.")
            e.date = date
            e.category = category
            e.description = description
            e.amount = amount
            self.sync.log("expenses", "update", e)

            linked = self.accounts.by_reference(expense_id)
            if linked:
                t = linked[0]
                t.clinic_amount = -amount
                t.description = ledger_description(category, description)
                t.date = date
            else:
                self.accounts.add_entry(
                    date=date,
                    description=ledger_description(category, description),
                    clinic_amount=-amount,
                    reference_id=expense_id,
                )
            return e.id

        e = Expense(
            id=self.ids.next_id("expense"),
            date=date,
            category=category,
            description=description,
            amount=amount,
        )
        self.data.expenses.append(e)
        self.sync.log("expenses", "create", e)
        self.accounts.add_entry(
            date=date,
            description=ledger_description(category, description),
            clinic_amount=-amount,
            reference_id=e.id,
        )
        _log.info("Expense %s recorded: %s %.2f", e.id, category, amount)
        return e.id

    def delete(self, expense_id: str) -> None:
        if self._find(expense_id) is None:
            raise NotFoundError(f"Expense {expense_id} not found.")
        self.sync.log("expenses", "delete", expense_id)
        self.data.expenses = [e for e in self.data.expenses if e.id != expense_id]
        self.accounts.remove_by_reference(expense_id)
