from __future__ import annotations

"""
Standalone payments against a party balance.

`receive` = money in from a customer (clinic +amount);
`pay`     = money out to a supplier (clinic -amount).
Either way the party's outstanding balance goes down by the amount, and one
cash-ledger entry referencing the payment id is written.

Payments are append-only: there is no edit or delete path.
"""

import logging
from typing import List, Optional

from ...utils.helpers import is_within_date_range
from ...utils.validators import is_iso_date, is_strictly_positive_number
from ..errors import NotFoundError, ValidationError
from ..models import PAYMENT_TYPES, ClinicData, Payment, clone_records
from .accounts_repo import AccountsRepo
from .counters import IdAllocator
from .sync_queue_repo import SyncQueueRepo

_log = logging.getLogger(__name__)


class PaymentsRepo:
    def __init__(
        self,
        data: ClinicData,
        ids: IdAllocator,
        sync: SyncQueueRepo,
        accounts: AccountsRepo,
    ):
        self.data = data
        self.ids = ids
        self.sync = sync
        self.accounts = accounts

    def list_payments(self) -> List[Payment]:
        return clone_records(self.data.payments)

    def for_party(
        self,
        party_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Payment]:
        return [
            p.copy() for p in self.data.payments
            if p.party_id == party_id and is_within_date_range(p.date, start_date, end_date)
        ]

    def create(self, *, type: str, party_id: str, amount: float, date: str) -> str:
        """
        Record a payment; returns the new 'payN' id.

        Raises ValidationError for an unknown type, a non-positive amount or a
        missing date, and NotFoundError when the party does not exist.
        """
        if type not in PAYMENT_TYPES:
            raise ValidationError(f"Unknown payment type: {type}")
        if not is_strictly_positive_number(amount):
            raise ValidationError("Payment amount must be greater than zero.")
        if not is_iso_date(date):
            raise ValidationError("A valid payment date is required.")

        party = self.data.find_party(party_id)
        if party is None:
            raise NotFoundError(f"Party {party_id} not found.")

        amount = float(amount)
        payment = Payment(
            id=self.ids.next_id("payment"),
            type=type,
            party_id=party_id,
            amount=amount,
            date=date,
        )
        self.data.payments.append(payment)
        self.sync.log("payments", "create", payment)

        party.outstanding_balance -= amount

        if type == "receive":
            clinic_amount = amount
            description = f"Payment received from {party.name}"
        else:
            clinic_amount = -amount
            description = f"Payment made to {party.name}"
        self.accounts.add_entry(
            date=date,
            description=description,
            clinic_amount=clinic_amount,
            reference_id=payment.id,
        )
        _log.info("Payment %s (%s %.2f) for %s", payment.id, type, amount, party_id)
        return payment.id
