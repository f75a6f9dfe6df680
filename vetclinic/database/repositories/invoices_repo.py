from __future__ import annotations

"""
Invoice processor: sale, purchase and treatment invoices.

An invoice is created once and can only be deleted afterwards; correcting an
invoice means delete + recreate. Creating one touches three ledgers at once:

- stock: purchases add a batch, sales consume batches FIFO, treatments draw
  loose units and open whole packing units when loose stock runs out;
- the party balance: += (total - paid);
- the cash ledger: one entry for the amount paid at invoicing time.

Deleting reverses all three. Sale/treatment stock reversal is best-effort
(one synthetic batch / loose units back), not an exact inverse.

Every referenced product and party is resolved before anything is mutated;
the caller's store transaction restores the document if anything still
fails half-way.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ...utils.payments.calculations import balance_change, split_treatment_payment
from ...utils.payments.status import derive_status
from ...utils.validators import (
    is_iso_date,
    is_non_negative_number,
    is_strictly_positive_number,
)
from ..errors import NotFoundError, ValidationError
from ..models import (
    INVOICE_TYPES,
    ClinicData,
    Invoice,
    InvoiceItem,
    Product,
    StockBatch,
    clone_records,
)
from .accounts_repo import AccountsRepo
from .counters import IdAllocator
from .parties_repo import CustomersRepo, SuppliersRepo
from .products_repo import ProductsRepo
from .stock_ledger import StockLedger
from .sync_queue_repo import SyncQueueRepo

_log = logging.getLogger(__name__)


@dataclass
class InvoiceHeader:
    type: str
    date: str
    customer_id: Optional[str] = None
    supplier_id: Optional[str] = None
    discount: float = 0.0
    other_expenses: float = 0.0
    charged_amount: float = 0.0
    amount_paid: float = 0.0


class InvoicesRepo:
    def __init__(
        self,
        data: ClinicData,
        ids: IdAllocator,
        sync: SyncQueueRepo,
        stock: StockLedger,
        products: ProductsRepo,
        customers: CustomersRepo,
        suppliers: SuppliersRepo,
        accounts: AccountsRepo,
    ):
        self.data = data
        self.ids = ids
        self.sync = sync
        self.stock = stock
        self.products = products
        self.customers = customers
        self.suppliers = suppliers
        self.accounts = accounts

    # ---------- Query ----------
    def list_invoices(self) -> List[Invoice]:
        return clone_records(self.data.invoices)

    def get(self, invoice_id: str) -> Optional[Invoice]:
        inv = self.data.find_invoice(invoice_id)
        return inv.copy() if inv else None

    def require(self, invoice_id: str) -> Invoice:
        inv = self.data.find_invoice(invoice_id)
        if inv is None:
            raise NotFoundError(f"Invoice {invoice_id} not found.")
        return inv

    # ---------- Validation ----------
    def _validate(self, header: InvoiceHeader, items: List[InvoiceItem]) -> None:
        if header.type not in INVOICE_TYPES:
            raise ValidationError(f"Unknown invoice type: {header.type}")
        if not is_iso_date(header.date):
            raise ValidationError("A valid invoice date is required.")

        if header.type == "purchase":
            if not header.supplier_id:
                raise ValidationError("Please select a Supplier.")
            if header.customer_id:
                raise ValidationError("A purchase invoice cannot reference a customer.")
            self.suppliers.require(header.supplier_id)
        else:
            if not header.customer_id:
                raise ValidationError("Please select a Customer.")
            if header.supplier_id:
                raise ValidationError(f"A {header.type} invoice cannot reference a supplier.")
            self.customers.require(header.customer_id)

        if not items:
            if header.type != "treatment":
                raise ValidationError("Please add at least one item.")
            if not is_strictly_positive_number(header.charged_amount):
                raise ValidationError("Please add items or enter a charged amount.")

        for it in items:
            if not is_strictly_positive_number(it.quantity):
                raise ValidationError(f"Quantity for {it.product_id} must be greater than zero.")
            if not is_non_negative_number(it.unit_price):
                raise ValidationError(f"Unit price for {it.product_id} must be a non-negative number.")
            # all-or-nothing: unknown products fail before any stock moves
            self.products.require(it.product_id)

        for label, value in (
            ("Amount paid", header.amount_paid),
            ("Discount", header.discount),
            ("Other expenses", header.other_expenses),
            ("Charged amount", header.charged_amount),
        ):
            if not is_non_negative_number(value or 0):
                raise ValidationError(f"{label} must be a non-negative number.")

    # ---------- Create ----------
    def create(self, header: InvoiceHeader, items: Iterable[InvoiceItem]) -> str:
        """
        Record a new invoice and apply it to stock, the party balance and
        the cash ledger. Returns the new invoice id.
        """
        items_list = [InvoiceItem(**{**vars(it)}) for it in items]
        self._validate(header, items_list)

        # 1) Line totals and header totals
        for it in items_list:
            it.quantity = float(it.quantity)
            it.unit_price = float(it.unit_price)
            it.total = it.quantity * it.unit_price
            it.purchase_unit_price = None
            if not it.product_name:
                it.product_name = self.products.require(it.product_id).name
        subtotal = sum(it.total for it in items_list)

        if header.type == "treatment":
            discount = 0.0
            total_amount = float(header.charged_amount or 0.0)
        else:
            discount = float(header.discount or 0.0)
            total_amount = subtotal - discount
        amount_paid = float(header.amount_paid or 0.0)

        invoice = Invoice(
            id=self.ids.next_invoice_id(header.type),
            type=header.type,
            date=header.date,
            items=items_list,
            customer_id=header.customer_id if header.type != "purchase" else None,
            supplier_id=header.supplier_id if header.type == "purchase" else None,
            subtotal=subtotal,
            discount=discount,
            other_expenses=float(header.other_expenses or 0.0) if header.type == "treatment" else None,
            charged_amount=total_amount if header.type == "treatment" else None,
            total_amount=total_amount,
            amount_paid=amount_paid,
            payment_status=derive_status(total_amount, amount_paid, has_items=bool(items_list)),
        )

        # 2) Stock and party balance
        self.apply(invoice, multiplier=1)

        # 3) Header
        self.data.invoices.append(invoice)
        self.sync.log("invoices", "create", invoice)

        # 4) Cash received / paid at invoicing time
        if amount_paid > 0:
            self._record_payment_at_invoice(invoice)

        _log.info(
            "Created %s invoice %s: total=%.2f paid=%.2f status=%s",
            invoice.type, invoice.id, invoice.total_amount, invoice.amount_paid, invoice.payment_status,
        )
        return invoice.id

    def _record_payment_at_invoice(self, invoice: Invoice) -> None:
        party = self.data.find_party(invoice.party_id) if invoice.party_id else None
        party_name = party.name if party else "N/A"
        owner_amount = 0.0

        if invoice.type == "treatment":
            clinic_amount, owner_amount = split_treatment_payment(invoice.amount_paid, invoice.subtotal)
            description = f"Payment for Treatment #{invoice.id} from {party_name}"
        elif invoice.type == "sale":
            clinic_amount = invoice.amount_paid
            description = f"Payment for Sale #{invoice.id} from {party_name}"
        else:
            clinic_amount = -invoice.amount_paid
            description = f"Payment for Purchase #{invoice.id} to {party_name}"

        if clinic_amount != 0 or owner_amount != 0:
            self.accounts.add_entry(
                date=invoice.date,
                description=description,
                clinic_amount=clinic_amount,
                owner_amount=owner_amount,
                reference_id=invoice.id,
            )

    # ---------- Delete ----------
    def delete(self, invoice_id: str) -> None:
        """
        Reverse an invoice: stock, party balance and its cash entries.
        """
        invoice = self.require(invoice_id)
        for it in invoice.items:
            self.products.require(it.product_id)

        self.sync.log("invoices", "delete", invoice_id)
        self.apply(invoice, multiplier=-1)
        self.data.invoices = [i for i in self.data.invoices if i.id != invoice_id]
        removed = self.accounts.remove_by_reference(invoice_id)
        _log.info("Deleted invoice %s (%d cash entries removed)", invoice_id, removed)

    # ---------- Stock + balance application ----------
    def apply(self, invoice: Invoice, multiplier: int) -> None:
        """
        Apply (+1) or reverse (-1) an invoice against stock batches and the
        linked party's outstanding balance.
        """
        for item in invoice.items:
            product = self.products.require(item.product_id)
            self.stock.sort_batches(product)
            if invoice.type == "purchase":
                self._apply_purchase_line(product, invoice, item, multiplier)
            elif invoice.type == "sale":
                self._apply_sale_line(product, invoice, item, multiplier)
            else:
                self._apply_treatment_line(product, invoice, item, multiplier)

        change = balance_change(invoice.total_amount, invoice.amount_paid, multiplier)
        if invoice.customer_id:
            self.customers.adjust_balance(invoice.customer_id, change)
        elif invoice.supplier_id:
            self.suppliers.adjust_balance(invoice.supplier_id, change)

    def _apply_purchase_line(self, product: Product, invoice: Invoice, item: InvoiceItem, multiplier: int) -> None:
        if multiplier > 0:
            self.stock.add(product, StockBatch(
                quantity=item.quantity,
                purchase_price=item.unit_price,
                invoice_id=invoice.id,
                date=invoice.date,
            ))
            product.latest_purchase_price = item.unit_price
        else:
            self.stock.reverse_purchase(product, invoice.id)

    def _apply_sale_line(self, product: Product, invoice: Invoice, item: InvoiceItem, multiplier: int) -> None:
        if multiplier > 0:
            result = self.stock.consume(product, item.quantity)
            if item.quantity > 0:
                # per-unit cost basis
                item.purchase_unit_price = result.total_cost / item.quantity
        else:
            self.stock.restore(product, invoice.id, item.quantity, item.purchase_unit_price)

    def _apply_treatment_line(self, product: Product, invoice: Invoice, item: InvoiceItem, multiplier: int) -> None:
        if multiplier > 0:
            draw = self.stock.draw_loose(product, item.quantity)
            if draw is not None:
                # total line cost, not a unit price
                item.purchase_unit_price = item.quantity * draw.cost_per_loose_unit
        else:
            product.stock_loose += item.quantity
