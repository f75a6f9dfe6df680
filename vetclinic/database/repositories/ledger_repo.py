from __future__ import annotations

"""
Per-party history and statement ledgers.

Customer ledger: sale/treatment totals are debits; the amount paid at
invoicing time and received payments are credits.
Supplier ledger: purchase totals are credits; the amount paid at invoicing
time and payments made are debits.

An invoice with both a total and an up-front payment yields two lines (the
charge first, then the payment). The running balance starts at 0 for the
selected range; it is a statement view, not the party's outstanding balance.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from ...utils.helpers import is_within_date_range, parse_datetime
from ..errors import NotFoundError
from ..models import ClinicData, Invoice, Payment


@dataclass
class PartyHistory:
    invoices: List[Invoice] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)


@dataclass
class LedgerEntry:
    id: str
    date: str
    description: str
    debit: float = 0.0
    credit: float = 0.0
    balance: float = 0.0


class LedgerRepo:
    def __init__(self, data: ClinicData):
        self.data = data

    # ---------- History ----------
    def _history(
        self,
        party_id: str,
        invoice_field: str,
        start_date: Optional[str],
        end_date: Optional[str],
    ) -> PartyHistory:
        return PartyHistory(
            invoices=[
                i.copy() for i in self.data.invoices
                if getattr(i, invoice_field) == party_id
                and is_within_date_range(i.date, start_date, end_date)
            ],
            payments=[
                p.copy() for p in self.data.payments
                if p.party_id == party_id and is_within_date_range(p.date, start_date, end_date)
            ],
        )

    def customer_history(
        self, customer_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> PartyHistory:
        return self._history(customer_id, "customer_id", start_date, end_date)

    def supplier_history(
        self, supplier_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> PartyHistory:
        return self._history(supplier_id, "supplier_id", start_date, end_date)

    # ---------- Ledgers ----------
    @staticmethod
    def _chronological(history: PartyHistory) -> List[Union[Invoice, Payment]]:
        rows: List[Union[Invoice, Payment]] = [*history.invoices, *history.payments]
        # stable: invoices before payments on the same instant
        rows.sort(key=lambda r: parse_datetime(r.date))
        return rows

    def customer_ledger(
        self, customer_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> List[LedgerEntry]:
        if self.data.find_customer(customer_id) is None:
            raise NotFoundError(f"Customer {customer_id} not found.")
        ledger: List[LedgerEntry] = []
        balance = 0.0
        for row in self._chronological(self.customer_history(customer_id, start_date, end_date)):
            debit = credit = 0.0
            if isinstance(row, Invoice):
                if row.type not in ("sale", "treatment"):
                    continue
                debit, credit = row.total_amount, row.amount_paid
                description = f"Invoice #{row.id}"
            elif row.type == "receive":
                credit = row.amount
                description = f"Payment Received (ID: {row.id})"
            else:
                continue
            if debit > 0:
                balance += debit
                ledger.append(LedgerEntry(row.id, row.date, description, debit=debit, balance=balance))
            if credit > 0:
                balance -= credit
                ledger.append(LedgerEntry(row.id, row.date, description, credit=credit, balance=balance))
        return ledger

    def supplier_ledger(
        self, supplier_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> List[LedgerEntry]:
        if self.data.find_supplier(supplier_id) is None:
            raise NotFoundError(f"Supplier {supplier_id} not found.")
        ledger: List[LedgerEntry] = []
        balance = 0.0
        for row in self._chronological(self.supplier_history(supplier_id, start_date, end_date)):
            debit = credit = 0.0
            if isinstance(row, Invoice):
                if row.type != "purchase":
                    continue
                credit, debit = row.total_amount, row.amount_paid
                description = f"Invoice #{row.id}"
            elif row.type == "pay":
                debit = row.amount
                description = f"Payment Made (ID: {row.id})"
            else:
                continue
            if credit > 0:
                balance += credit
                ledger.append(LedgerEntry(row.id, row.date, description, credit=credit, balance=balance))
            if debit > 0:
                balance -= debit
                ledger.append(LedgerEntry(row.id, row.date, description, debit=debit, balance=balance))
        return ledger
