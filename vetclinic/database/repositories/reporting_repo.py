from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from ...constants import (
    DASHBOARD_EXPIRY_ALERT_DAYS,
    INVENTORY_NEAR_EXPIRY_MONTHS,
    TOP_SELLER_COUNT,
)
from ...utils.helpers import add_months, is_within_date_range, parse_datetime
from ...utils.payments.calculations import sale_cost, treatment_cost, vet_fee
from ..models import ClinicData, Customer, Invoice, Product, Supplier


# ---------------------------------------------------------------------------
# Row types
# ---------------------------------------------------------------------------

@dataclass
class SaleProfitLine:
    invoice_id: str
    date: str
    total: float
    cost: float
    profit: float


@dataclass
class TreatmentProfitLine:
    invoice_id: str
    date: str
    charged: float
    cost: float
    profit: float


@dataclass
class ProfitLossReport:
    sales: List[SaleProfitLine] = field(default_factory=list)
    treatments: List[TreatmentProfitLine] = field(default_factory=list)
    total_sales_profit: float = 0.0
    total_treatment_profit: float = 0.0
    grand_total_profit: float = 0.0


@dataclass
class InvoiceDetails:
    invoice: Invoice
    customer: Optional[Customer] = None
    supplier: Optional[Supplier] = None
    vet_fee: Optional[float] = None


@dataclass
class InventoryReportItem:
    product: Product
    stock_vials: float
    sold_qty: float
    is_low_stock: bool
    is_near_expiry: bool
    is_top_seller: bool


@dataclass
class PartyReportItem:
    id: str
    name: str
    phone: str
    outstanding_balance: float
    total_business: float


@dataclass
class PaymentReportRow:
    id: str
    type: str
    party_id: str
    party_name: str
    amount: float
    date: str


@dataclass
class DashboardAlerts:
    low_stock: List[Product] = field(default_factory=list)
    expiring: List[Product] = field(default_factory=list)


@dataclass
class SearchResults:
    products: List[Product] = field(default_factory=list)
    customers: List[Customer] = field(default_factory=list)
    suppliers: List[Supplier] = field(default_factory=list)
    invoices: List[Invoice] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.products or self.customers or self.suppliers or self.invoices)


def _parse_expiry(value: str) -> Optional[datetime]:
    """Expiry as local midnight; None when blank or unparseable (never 'near expiry')."""
    if not value:
        return None
    try:
        return parse_datetime(value)
    except ValueError:
        return None


def _start_of_day(today: Optional[date]) -> datetime:
    return datetime.combine(today or date.today(), datetime.min.time())


class ReportingRepo:
    """
    Read-only projections over the clinic document.

    Nothing here mutates state or is cached; every call recomputes from
    invoices/payments/products. Date ranges are inclusive calendar days
    (start at 00:00:00, end at 23:59:59.999 local); either bound may be
    omitted.

    Cost basis conventions (from the stock ledger):
      - sale lines carry a per-unit purchaseUnitPrice, so cost = price * qty;
      - treatment lines carry the line TOTAL, so cost = sum(price) plus the
        invoice's other expenses.
    """

    def __init__(self, data: ClinicData) -> None:
        self.data = data

    # ----------------------------------------------------------------------
    # ---------------------------- PROFIT / LOSS ---------------------------
    # ----------------------------------------------------------------------

    def profit_loss(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> ProfitLossReport:
        report = ProfitLossReport()
        for inv in self.data.invoices:
            if not is_within_date_range(inv.date, start_date, end_date):
                continue
            if inv.type == "sale":
                total = inv.subtotal - inv.discount
                cost = sale_cost(inv.items)
                profit = total - cost
                report.sales.append(SaleProfitLine(inv.id, inv.date, total, cost, profit))
                report.total_sales_profit += profit
            elif inv.type == "treatment":
                charged = inv.charged_amount or 0.0
                cost = treatment_cost(inv.items, inv.other_expenses)
                profit = charged - cost
                report.treatments.append(TreatmentProfitLine(inv.id, inv.date, charged, cost, profit))
                report.total_treatment_profit += profit
        report.grand_total_profit = report.total_sales_profit + report.total_treatment_profit
        return report

    def invoice_details(self, invoice_id: str) -> Optional[InvoiceDetails]:
        """Invoice with its party; treatments also get the vet's fee."""
        inv = self.data.find_invoice(invoice_id)
        if inv is None:
            return None
        details = InvoiceDetails(invoice=inv.copy())
        if inv.customer_id:
            c = self.data.find_customer(inv.customer_id)
            details.customer = c.copy() if c else None
        if inv.supplier_id:
            s = self.data.find_supplier(inv.supplier_id)
            details.supplier = s.copy() if s else None
        if inv.type == "treatment":
            details.vet_fee = vet_fee(inv.charged_amount, inv.items, inv.other_expenses)
        return details

    # ----------------------------------------------------------------------
    # ------------------------------ INVENTORY -----------------------------
    # ----------------------------------------------------------------------

    def sold_quantities(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> Dict[str, float]:
        """Whole units sold per product on sale invoices in range (treatments excluded)."""
        sold: Dict[str, float] = {}
        for inv in self.data.invoices:
            if inv.type != "sale" or not is_within_date_range(inv.date, start_date, end_date):
                continue
            for it in inv.items:
                sold[it.product_id] = sold.get(it.product_id, 0.0) + it.quantity
        return sold

    def inventory(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        *,
        today: Optional[date] = None,
    ) -> List[InventoryReportItem]:
        sold = self.sold_quantities(start_date, end_date)
        ranked = sorted(sold.items(), key=lambda kv: kv[1], reverse=True)
        top_ids = {pid for pid, _ in ranked[:TOP_SELLER_COUNT]}
        near_expiry_cutoff = add_months(_start_of_day(today), INVENTORY_NEAR_EXPIRY_MONTHS)

        rows: List[InventoryReportItem] = []
        for p in self.data.products:
            vials = p.stock_vials
            if not (vials > 0 or p.stock_loose > 0):
                continue
            expiry = _parse_expiry(p.expiry_date)
            rows.append(InventoryReportItem(
                product=p.copy(),
                stock_vials=vials,
                sold_qty=sold.get(p.id, 0.0),
                is_low_stock=vials <= p.low_stock_alert,
                is_near_expiry=expiry is not None and expiry < near_expiry_cutoff,
                is_top_seller=p.id in top_ids,
            ))
        return rows

    def dashboard_alerts(self, *, today: Optional[date] = None) -> DashboardAlerts:
        """
        Low stock (whole units <= alert level) and products expiring between
        today and today + 30 days, both inclusive.
        """
        start = _start_of_day(today)
        alert_until = start + timedelta(days=DASHBOARD_EXPIRY_ALERT_DAYS)
        alerts = DashboardAlerts()
        for p in self.data.products:
            if p.stock_vials <= p.low_stock_alert:
                alerts.low_stock.append(p.copy())
            expiry = _parse_expiry(p.expiry_date)
            if expiry is not None and start <= expiry <= alert_until:
                alerts.expiring.append(p.copy())
        return alerts

    # ----------------------------------------------------------------------
    # ---------------------------- PARTIES / CASH --------------------------
    # ----------------------------------------------------------------------

    def _party_report(self, parties, invoice_field: str, start_date, end_date) -> List[PartyReportItem]:
        business: Dict[str, float] = {}
        for inv in self.data.invoices:
            pid = getattr(inv, invoice_field)
            if pid and is_within_date_range(inv.date, start_date, end_date):
                business[pid] = business.get(pid, 0.0) + inv.total_amount
        return [
            PartyReportItem(
                id=p.id,
                name=p.name,
                phone=p.phone,
                outstanding_balance=p.outstanding_balance,
                total_business=business.get(p.id, 0.0),
            )
            for p in parties
        ]

    def customers(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[PartyReportItem]:
        return self._party_report(self.data.customers, "customer_id", start_date, end_date)

    def suppliers(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[PartyReportItem]:
        return self._party_report(self.data.suppliers, "supplier_id", start_date, end_date)

    def payments(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[PaymentReportRow]:
        names = {c.id: c.name for c in self.data.customers}
        for s in self.data.suppliers:
            names.setdefault(s.id, s.name)
        return [
            PaymentReportRow(
                id=p.id,
                type=p.type,
                party_id=p.party_id,
                party_name=names.get(p.party_id, "N/A"),
                amount=p.amount,
                date=p.date,
            )
            for p in self.data.payments
            if is_within_date_range(p.date, start_date, end_date)
        ]

    # ----------------------------------------------------------------------
    # ------------------------------- SEARCH -------------------------------
    # ----------------------------------------------------------------------

    def search(self, query: str) -> SearchResults:
        """
        Case-insensitive substring search. Phones match the raw query;
        invoices match on id or on the linked party's name.
        """
        q = (query or "").strip()
        out = SearchResults()
        if not q:
            return out
        needle = q.lower()

        out.products = [
            p.copy() for p in self.data.products
            if needle in p.name.lower() or needle in p.id.lower()
        ]
        out.customers = [
            c.copy() for c in self.data.customers
            if needle in c.name.lower() or needle in c.id.lower() or q in (c.phone or "")
        ]
        out.suppliers = [
            s.copy() for s in self.data.suppliers
            if needle in s.name.lower() or needle in s.id.lower() or q in (s.phone or "")
        ]
        for inv in self.data.invoices:
            party = self.data.find_party(inv.party_id) if inv.party_id else None
            party_name = party.name.lower() if party else ""
            if needle in inv.id.lower() or (party_name and needle in party_name):
                out.invoices.append(inv.copy())
        return out
