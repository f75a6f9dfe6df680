"""
Records of the clinic document.

The whole application state is one `ClinicData` document. Every record is a
dataclass; `to_dict()` / `from_dict()` translate to the persisted JSON shape,
which keeps the camelCase keys of the exported document (`stockLoose`,
`outstandingBalance`, `accountTransactions`, ...) so exports stay
interchangeable with older backups.

Conventions:
- Dates are ISO strings ('YYYY-MM-DD' or full timestamps).
- Amounts/quantities are floats.
- Optional fields that are None are left out of the JSON.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Optional, Union

from ..constants import DEFAULT_CLINIC_NAME, STATUS_CREDIT

INVOICE_TYPES = ("sale", "purchase", "treatment")
PAYMENT_TYPES = ("receive", "pay")
USER_ROLES = ("admin", "staff")
SYNC_ACTIONS = ("create", "update", "delete")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


class JsonRecord:
    """Mixin: dataclass <-> JSON dict with camelCase keys and nested record lists."""

    # field name -> record class, for list fields holding nested records
    _nested: ClassVar[Dict[str, type]] = {}
    # field name -> explicit JSON key, when camelCase does not apply
    _json_keys: ClassVar[Dict[str, str]] = {}

    @classmethod
    def _key(cls, name: str) -> str:
        return cls._json_keys.get(name, _camel(name))

    def to_dict(self) -> dict:
        out: dict = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name in self._nested:
                value = [v.to_dict() for v in value]
            elif isinstance(value, JsonRecord):
                value = value.to_dict()
            out[self._key(f.name)] = copy.deepcopy(value)
        return out

    @classmethod
    def from_dict(cls, data: dict):
        if not isinstance(data, dict):
            raise ValueError(f"{cls.__name__} must be a JSON object, got {type(data).__name__}.")
        kwargs: dict = {}
        for f in fields(cls):  # type: ignore[arg-type]
            key = cls._key(f.name)
            if key not in data:
                continue
            value = data[key]
            if f.name in cls._nested:
                if not isinstance(value, list):
                    raise ValueError(f"{cls.__name__}.{key} must be a list.")
                value = [cls._nested[f.name].from_dict(v) for v in value]
            kwargs[f.name] = value
        return cls(**kwargs)

    def copy(self):
        return copy.deepcopy(self)


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

@dataclass
class StockBatch(JsonRecord):
    quantity: float
    purchase_price: float
    invoice_id: str
    date: str


@dataclass
class Product(JsonRecord):
    id: str
    name: str
    location: str = ""
    packing_unit: str = ""
    loose_unit: str = ""
    stock_loose: float = 0.0
    latest_purchase_price: float = 0.0
    sale_price: float = 0.0
    expiry_date: str = ""
    low_stock_alert: float = 0
    batches: List[StockBatch] = field(default_factory=list)

    _nested: ClassVar[Dict[str, type]] = {"batches": StockBatch}

    @property
    def stock_vials(self) -> float:
        """Whole packing units on hand; derived from batches, never stored."""
        return sum(b.quantity for b in self.batches)


# ---------------------------------------------------------------------------
# Parties
# ---------------------------------------------------------------------------

@dataclass
class _Party(JsonRecord):
    id: str
    name: str
    phone: str = ""
    address: str = ""
    outstanding_balance: float = 0.0


@dataclass
class Customer(_Party):
    pass


@dataclass
class Supplier(_Party):
    pass


# ---------------------------------------------------------------------------
# Invoices, payments, expenses
# ---------------------------------------------------------------------------

@dataclass
class InvoiceItem(JsonRecord):
    product_id: str
    quantity: float
    unit_price: float
    product_name: str = ""
    total: float = 0.0
    # set only by stock consumption: per-unit cost for sale lines,
    # total line cost for treatment lines
    purchase_unit_price: Optional[float] = None


@dataclass
class Invoice(JsonRecord):
    id: str
    type: str
    date: str
    items: List[InvoiceItem] = field(default_factory=list)
    customer_id: Optional[str] = None
    supplier_id: Optional[str] = None
    subtotal: float = 0.0
    discount: float = 0.0
    other_expenses: Optional[float] = None
    charged_amount: Optional[float] = None
    total_amount: float = 0.0
    amount_paid: float = 0.0
    payment_status: str = STATUS_CREDIT

    _nested: ClassVar[Dict[str, type]] = {"items": InvoiceItem}

    @property
    def party_id(self) -> Optional[str]:
        return self.customer_id or self.supplier_id


@dataclass
class Payment(JsonRecord):
    id: str
    type: str
    party_id: str
    amount: float
    date: str


@dataclass
class Expense(JsonRecord):
    id: str
    date: str
    category: str
    description: str
    amount: float


# ---------------------------------------------------------------------------
# Users / settings
# ---------------------------------------------------------------------------

@dataclass
class User(JsonRecord):
    id: str
    username: str
    password: Optional[str] = None
    role: str = "staff"

    def masked(self) -> "User":
        return User(id=self.id, username=self.username, password="***", role=self.role)


@dataclass
class ClinicSettings(JsonRecord):
    name: str = DEFAULT_CLINIC_NAME
    logo: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    def to_dict(self) -> dict:
        out = super().to_dict()
        out.setdefault("logo", None)
        return out


# ---------------------------------------------------------------------------
# Cash ledger
# ---------------------------------------------------------------------------

@dataclass
class AccountTransaction(JsonRecord):
    id: str
    date: str
    description: str
    clinic_amount: float = 0.0
    owner_amount: float = 0.0
    clinic_balance: float = 0.0
    owner_balance: float = 0.0
    reference_id: Optional[str] = None
    is_manual: bool = False


# ---------------------------------------------------------------------------
# Sync queue (tagged union payloads)
# ---------------------------------------------------------------------------

@dataclass
class DeletedRef(JsonRecord):
    id: str


SyncPayload = Union[
    Product, Customer, Supplier, Invoice, Payment, Expense, User,
    ClinicSettings, AccountTransaction, DeletedRef,
]

# collection tag -> record class carried by create/update operations
SYNC_COLLECTIONS: Dict[str, type] = {
    "products": Product,
    "customers": Customer,
    "suppliers": Supplier,
    "invoices": Invoice,
    "payments": Payment,
    "expenses": Expense,
    "users": User,
    "clinicSettings": ClinicSettings,
    "accountTransactions": AccountTransaction,
}


@dataclass
class SyncOperation(JsonRecord):
    id: str
    timestamp: str
    collection: str
    action: str
    payload: SyncPayload

    def __post_init__(self):
        if self.collection not in SYNC_COLLECTIONS:
            raise ValueError(f"Unknown sync collection: {self.collection!r}")
        if self.action not in SYNC_ACTIONS:
            raise ValueError(f"Unknown sync action: {self.action!r}")
        expected = DeletedRef if self.action == "delete" else SYNC_COLLECTIONS[self.collection]
        if not isinstance(self.payload, expected):
            raise ValueError(
                f"Sync payload for {self.action} on {self.collection} must be {expected.__name__}."
            )

    @classmethod
    def from_dict(cls, data: dict) -> "SyncOperation":
        if not isinstance(data, dict):
            raise ValueError("SyncOperation must be a JSON object.")
        collection = data.get("collection")
        action = data.get("action")
        if collection not in SYNC_COLLECTIONS:
            raise ValueError(f"Unknown sync collection: {collection!r}")
        payload_cls = DeletedRef if action == "delete" else SYNC_COLLECTIONS[collection]
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            collection=collection,
            action=action,
            payload=payload_cls.from_dict(data.get("payload") or {}),
        )


# ---------------------------------------------------------------------------
# The document
# ---------------------------------------------------------------------------

@dataclass
class Counters(JsonRecord):
    customer: int = 1
    supplier: int = 1
    invoice: int = 1
    payment: int = 1
    expense: int = 1
    user: int = 1
    transaction: int = 1
    sync_operation: int = 1

    _json_keys: ClassVar[Dict[str, str]] = {"sync_operation": "sync_operation"}


@dataclass
class ClinicData(JsonRecord):
    """The single application-state document persisted as one blob."""
    products: List[Product] = field(default_factory=list)
    customers: List[Customer] = field(default_factory=list)
    suppliers: List[Supplier] = field(default_factory=list)
    invoices: List[Invoice] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    users: List[User] = field(default_factory=list)
    clinic_settings: ClinicSettings = field(default_factory=ClinicSettings)
    account_transactions: List[AccountTransaction] = field(default_factory=list)
    sync_queue: List[SyncOperation] = field(default_factory=list)
    counters: Counters = field(default_factory=Counters)

    _nested: ClassVar[Dict[str, type]] = {
        "products": Product,
        "customers": Customer,
        "suppliers": Supplier,
        "invoices": Invoice,
        "payments": Payment,
        "expenses": Expense,
        "users": User,
        "account_transactions": AccountTransaction,
        "sync_queue": SyncOperation,
    }
    _json_keys: ClassVar[Dict[str, str]] = {"sync_queue": "sync_queue"}

    @classmethod
    def from_dict(cls, data: dict) -> "ClinicData":
        doc = super().from_dict(data)
        if isinstance(doc.clinic_settings, dict):
            doc.clinic_settings = ClinicSettings.from_dict(doc.clinic_settings)
        elif doc.clinic_settings is None:
            doc.clinic_settings = ClinicSettings()
        elif not isinstance(doc.clinic_settings, ClinicSettings):
            raise ValueError("clinicSettings must be a JSON object.")
        if isinstance(doc.counters, dict):
            doc.counters = Counters.from_dict(doc.counters)
        return doc

    # ---- lookups ----------------------------------------------------------

    def find_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    def find_customer(self, customer_id: str) -> Optional[Customer]:
        return next((c for c in self.customers if c.id == customer_id), None)

    def find_supplier(self, supplier_id: str) -> Optional[Supplier]:
        return next((s for s in self.suppliers if s.id == supplier_id), None)

    def find_party(self, party_id: str) -> Optional[_Party]:
        return self.find_customer(party_id) or self.find_supplier(party_id)

    def find_invoice(self, invoice_id: str) -> Optional[Invoice]:
        return next((i for i in self.invoices if i.id == invoice_id), None)

    def find_transaction(self, transaction_id: str) -> Optional[AccountTransaction]:
        return next((t for t in self.account_transactions if t.id == transaction_id), None)


def clone_records(records: List[Any]) -> List[Any]:
    """Deep copies for read APIs, so callers never mutate the live document."""
    return [copy.deepcopy(r) for r in records]
