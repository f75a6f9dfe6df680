# database/repositories/__init__.py
"""
Repository layer public API.

Every repo works on the live `ClinicData` document handed to it; none of
them persists. The store's transaction() wraps each mutation.

Usage:
    from vetclinic.database.repositories import (
        # Identifiers / sync
        IdAllocator, SyncQueueRepo,
        # Stock
        StockLedger, ConsumeResult, LooseDraw, parse_packing_size,
        # Catalogue and parties
        ProductsRepo, CustomersRepo, SuppliersRepo,
        # Invoices / cash
        InvoicesRepo, InvoiceHeader, PaymentsRepo, ExpensesRepo, AccountsRepo,
        # Users / settings
        UsersRepo, SettingsRepo,
        # Read-only projections
        LedgerRepo, ReportingRepo,
    )
"""

# ---------------- Identifiers / sync ----------------
from .counters import IdAllocator
from .sync_queue_repo import SyncQueueRepo

# ---------------- Stock ----------------
from .stock_ledger import (
    ConsumeResult,
    LooseDraw,
    StockLedger,
    parse_packing_size,
)

# ---------------- Products / parties ----------------
from .products_repo import ProductHistoryEntry, ProductsRepo
from .parties_repo import CustomersRepo, SuppliersRepo

# ---------------- Cash ledger ----------------
from .accounts_repo import (
    CLINIC_TO_OWNER,
    MANUAL_KINDS,
    OWNER_TO_CLINIC,
    PERSONAL_SPENDING,
    AccountsRepo,
    Balances,
    recompute_running_balances,
)

# ---------------- Invoices / payments / expenses ----------------
from .invoices_repo import InvoiceHeader, InvoicesRepo
from .payments_repo import PaymentsRepo
from .expenses_repo import ExpensesRepo

# ---------------- Users / settings ----------------
from .users_repo import UsersRepo
from .settings_repo import SettingsRepo

# ---------------- Projections ----------------
from .ledger_repo import LedgerEntry, LedgerRepo, PartyHistory
from .reporting_repo import (
    DashboardAlerts,
    InventoryReportItem,
    InvoiceDetails,
    PartyReportItem,
    PaymentReportRow,
    ProfitLossReport,
    ReportingRepo,
    SearchResults,
)

__all__ = [
    "IdAllocator", "SyncQueueRepo",
    "ConsumeResult", "LooseDraw", "StockLedger", "parse_packing_size",
    "ProductHistoryEntry", "ProductsRepo", "CustomersRepo", "SuppliersRepo",
    "CLINIC_TO_OWNER", "MANUAL_KINDS", "OWNER_TO_CLINIC", "PERSONAL_SPENDING",
    "AccountsRepo", "Balances", "recompute_running_balances",
    "InvoiceHeader", "InvoicesRepo", "PaymentsRepo", "ExpensesRepo",
    "UsersRepo", "SettingsRepo",
    "LedgerEntry", "LedgerRepo", "PartyHistory",
    "DashboardAlerts", "InventoryReportItem", "InvoiceDetails", "PartyReportItem",
    "PaymentReportRow", "ProfitLossReport", "ReportingRepo", "SearchResults",
]
