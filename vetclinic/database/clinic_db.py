from __future__ import annotations

"""
ClinicDB: the single entry point the rest of the application talks to.

Every mutating call runs inside one store transaction (all-or-nothing, then
running balances are recomputed and the document persisted) and, once the
lock is released, announces the touched collection on the event bus. Read
calls return copies, never live records.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, TypeVar

from ..modules.event_bus import ALL_COLLECTIONS, EventBus, get_event_bus
from .models import (
    AccountTransaction,
    ClinicSettings,
    Customer,
    Expense,
    Invoice,
    InvoiceItem,
    Payment,
    Product,
    Supplier,
    SyncOperation,
    User,
)
from .repositories import (
    AccountsRepo,
    Balances,
    CustomersRepo,
    DashboardAlerts,
    ExpensesRepo,
    IdAllocator,
    InventoryReportItem,
    InvoiceDetails,
    InvoiceHeader,
    InvoicesRepo,
    LedgerEntry,
    LedgerRepo,
    PartyHistory,
    PartyReportItem,
    PaymentReportRow,
    PaymentsRepo,
    ProductsRepo,
    ProfitLossReport,
    ReportingRepo,
    SearchResults,
    SettingsRepo,
    StockLedger,
    SuppliersRepo,
    SyncQueueRepo,
    UsersRepo,
)
from .store import DocumentStore

_log = logging.getLogger(__name__)

T = TypeVar("T")


class ClinicDB:
    def __init__(
        self,
        db_path: str | Path | None = None,
        *,
        store: Optional[DocumentStore] = None,
        bus: Optional[EventBus] = None,
    ):
        self.store = store or DocumentStore(db_path)
        self.bus = bus or get_event_bus()
        self.store.load()

        data = self.store.data
        self.ids = IdAllocator(data)
        self.sync = SyncQueueRepo(data, self.ids)
        self.stock = StockLedger()
        self.products = ProductsRepo(data, self.sync)
        self.customers = CustomersRepo(data, self.ids, self.sync)
        self.suppliers = SuppliersRepo(data, self.ids, self.sync)
        self.accounts = AccountsRepo(data, self.ids, self.sync)
        self.invoices = InvoicesRepo(
            data, self.ids, self.sync, self.stock,
            self.products, self.customers, self.suppliers, self.accounts,
        )
        self.payments = PaymentsRepo(data, self.ids, self.sync, self.accounts)
        self.expenses = ExpensesRepo(data, self.ids, self.sync, self.accounts)
        self.users = UsersRepo(data, self.ids, self.sync)
        self.settings = SettingsRepo(data, self.sync)
        self.ledgers = LedgerRepo(data)
        self.reports = ReportingRepo(data)

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------

    def _mutate(self, collection: str, fn: Callable[..., T], *args, **kwargs) -> T:
        with self.store.transaction():
            result = fn(*args, **kwargs)
        self.bus.data_changed.emit(collection)
        return result

    def _read(self, fn: Callable[..., T], *args, **kwargs) -> T:
        with self.store.lock:
            return fn(*args, **kwargs)

    def close(self) -> None:
        self.store.close()

    # ------------------------------------------------------------------
    # getters
    # ------------------------------------------------------------------

    def get_products(self) -> List[Product]:
        return self._read(self.products.list_products)

    def get_customers(self) -> List[Customer]:
        return self._read(self.customers.list)

    def get_suppliers(self) -> List[Supplier]:
        return self._read(self.suppliers.list)

    def get_invoices(self) -> List[Invoice]:
        return self._read(self.invoices.list_invoices)

    def get_payments(self) -> List[Payment]:
        return self._read(self.payments.list_payments)

    def get_expenses(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[Expense]:
        return self._read(self.expenses.list_expenses, start_date, end_date)

    def get_users(self) -> List[User]:
        return self._read(self.users.list_users)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._read(self.users.get_user_by_username, username)

    def get_clinic_settings(self) -> ClinicSettings:
        return self._read(self.settings.get)

    # ------------------------------------------------------------------
    # savers
    # ------------------------------------------------------------------

    def save_product(self, product: Product, is_editing: bool, initial_stock: float = 0) -> str:
        return self._mutate("products", self.products.save, product, is_editing, initial_stock)

    def save_customer(self, name: str, phone: str = "", address: str = "", customer_id: Optional[str] = None) -> str:
        return self._mutate("customers", self.customers.save, name, phone, address, customer_id)

    def save_supplier(self, name: str, phone: str = "", address: str = "", supplier_id: Optional[str] = None) -> str:
        return self._mutate("suppliers", self.suppliers.save, name, phone, address, supplier_id)

    def save_invoice(self, header: InvoiceHeader, items: Iterable[InvoiceItem]) -> str:
        return self._mutate("invoices", self.invoices.create, header, list(items))

    def save_payment(self, *, type: str, party_id: str, amount: float, date: str) -> str:
        return self._mutate("payments", self.payments.create, type=type, party_id=party_id, amount=amount, date=date)

    def save_expense(
        self,
        *,
        date: str,
        category: str,
        description: str,
        amount: float,
        expense_id: Optional[str] = None,
    ) -> str:
        return self._mutate(
            "expenses", self.expenses.save,
            date=date, category=category, description=description, amount=amount, expense_id=expense_id,
        )

    def save_manual_transaction(
        self,
        *,
        kind: Optional[str],
        amount: float,
        date: str,
        description: str = "",
        transaction_id: Optional[str] = None,
    ) -> str:
        return self._mutate(
            "accountTransactions", self.accounts.save_manual,
            kind=kind, amount=amount, date=date, description=description, transaction_id=transaction_id,
        )

    def save_user(
        self,
        *,
        username: str,
        role: str = "staff",
        password: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> str:
        return self._mutate("users", self.users.save, username=username, role=role, password=password, user_id=user_id)

    def save_clinic_settings(self, settings: ClinicSettings) -> None:
        self._mutate("clinicSettings", self.settings.save, settings)

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Verify credentials; a legacy password hash is upgraded and persisted on success."""
        with self.store.transaction():
            return self.users.authenticate(username, password)

    # ------------------------------------------------------------------
    # deleters
    # ------------------------------------------------------------------

    def delete_product(self, product_id: str) -> None:
        self._mutate("products", self.products.delete, product_id)

    def delete_customer(self, customer_id: str) -> None:
        self._mutate("customers", self.customers.delete, customer_id)

    def delete_supplier(self, supplier_id: str) -> None:
        self._mutate("suppliers", self.suppliers.delete, supplier_id)

    def delete_invoice(self, invoice_id: str) -> None:
        self._mutate("invoices", self.invoices.delete, invoice_id)

    def delete_expense(self, expense_id: str) -> None:
        self._mutate("expenses", self.expenses.delete, expense_id)

    def delete_manual_transaction(self, transaction_id: str) -> None:
        self._mutate("accountTransactions", self.accounts.delete_manual, transaction_id)

    def delete_user(self, user_id: str) -> None:
        self._mutate("users", self.users.delete, user_id)

    # ------------------------------------------------------------------
    # details / history / ledgers
    # ------------------------------------------------------------------

    def get_invoice_details(self, invoice_id: str) -> Optional[InvoiceDetails]:
        return self._read(self.reports.invoice_details, invoice_id)

    def get_product_history(self, product_id: str) -> dict:
        return self._read(self.products.history, product_id)

    def get_customer_history(
        self, customer_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> PartyHistory:
        return self._read(self.ledgers.customer_history, customer_id, start_date, end_date)

    def get_supplier_history(
        self, supplier_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> PartyHistory:
        return self._read(self.ledgers.supplier_history, supplier_id, start_date, end_date)

    def get_customer_ledger(
        self, customer_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> List[LedgerEntry]:
        return self._read(self.ledgers.customer_ledger, customer_id, start_date, end_date)

    def get_supplier_ledger(
        self, supplier_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> List[LedgerEntry]:
        return self._read(self.ledgers.supplier_ledger, supplier_id, start_date, end_date)

    def get_account_transactions(self) -> List[AccountTransaction]:
        return self._read(self.accounts.list_transactions)

    def get_latest_balances(self) -> Balances:
        return self._read(self.accounts.latest_balances)

    # ------------------------------------------------------------------
    # reports
    # ------------------------------------------------------------------

    def get_profit_loss_report(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> ProfitLossReport:
        return self._read(self.reports.profit_loss, start_date, end_date)

    def get_inventory_report(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[InventoryReportItem]:
        return self._read(self.reports.inventory, start_date, end_date)

    def get_customers_report(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[PartyReportItem]:
        return self._read(self.reports.customers, start_date, end_date)

    def get_suppliers_report(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[PartyReportItem]:
        return self._read(self.reports.suppliers, start_date, end_date)

    def get_payments_report(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[PaymentReportRow]:
        return self._read(self.reports.payments, start_date, end_date)

    def get_dashboard_alerts(self) -> DashboardAlerts:
        return self._read(self.reports.dashboard_alerts)

    def search(self, query: str) -> SearchResults:
        return self._read(self.reports.search, query)

    # ------------------------------------------------------------------
    # sync queue
    # ------------------------------------------------------------------

    def get_sync_queue(self) -> List[SyncOperation]:
        return self._read(self.sync.list_operations)

    def clear_sync_operations(self, ids: Iterable[str]) -> int:
        with self.store.transaction():
            return self.sync.clear(list(ids))

    # ------------------------------------------------------------------
    # data management
    # ------------------------------------------------------------------

    def export_data(self) -> str:
        return self.store.export_json()

    def import_data(self, text: str) -> None:
        """Replace everything with an exported document (DataCorruption if invalid)."""
        self.store.import_json(text)
        self.bus.data_changed.emit(ALL_COLLECTIONS)
        _log.info("Data imported; all views should reload")
