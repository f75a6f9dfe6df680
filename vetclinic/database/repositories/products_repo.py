from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ...constants import BATCH_ORIGIN_INITIAL
from ...utils.helpers import now_iso
from ...utils.validators import is_non_negative_number, non_empty
from ..errors import ProductNotFound, ReferentialIntegrityError, ValidationError
from ..models import ClinicData, Product, StockBatch, clone_records
from .sync_queue_repo import SyncQueueRepo

_log = logging.getLogger(__name__)

# fields an edit may change; batches and the id never change through save
_EDITABLE_FIELDS = (
    "name",
    "location",
    "packing_unit",
    "loose_unit",
    "sale_price",
    "expiry_date",
    "low_stock_alert",
    "latest_purchase_price",
    "stock_loose",
)


@dataclass
class ProductHistoryEntry:
    date: str
    invoice_id: str
    type: str
    party_name: str
    quantity: float
    unit_price: float
    total: float


class ProductsRepo:
    def __init__(self, data: ClinicData, sync: SyncQueueRepo):
        self.data = data
        self.sync = sync

    # ---------- Query ----------
    def list_products(self) -> List[Product]:
        """Copies of all products; `stock_vials` is derived from batches on read."""
        return clone_records(self.data.products)

    def get(self, product_id: str) -> Optional[Product]:
        p = self.data.find_product(product_id)
        return p.copy() if p else None

    def require(self, product_id: str) -> Product:
        p = self.data.find_product(product_id)
        if p is None:
            raise ProductNotFound(product_id)
        return p

    def search(self, term: str) -> List[Product]:
        t = (term or "").strip().lower()
        if not t:
            return []
        return [p.copy() for p in self.data.products if t in p.name.lower() or t in p.id.lower()]

    def is_referenced(self, product_id: str) -> bool:
        return any(
            item.product_id == product_id
            for inv in self.data.invoices
            for item in inv.items
        )

    def history(self, product_id: str) -> dict:
        """
        Per-product movement lines split into purchases and sales (sale and
        treatment lines both count as outgoing).
        """
        out: dict = {"purchases": [], "sales": []}
        for inv in self.data.invoices:
            item = next((i for i in inv.items if i.product_id == product_id), None)
            if item is None:
                continue
            party = self.data.find_party(inv.party_id) if inv.party_id else None
            entry = ProductHistoryEntry(
                date=inv.date,
                invoice_id=inv.id,
                type=inv.type,
                party_name=party.name if party else "N/A",
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total,
            )
            out["purchases" if inv.type == "purchase" else "sales"].append(entry)
        return out

    # ---------- Create / Update ----------
    @staticmethod
    def _validate(product: Product) -> None:
        if not non_empty(product.id):
            raise ValidationError("Product code cannot be empty.")
        if not non_empty(product.name):
            raise ValidationError("Product name cannot be empty.")
        for label, value in (
            ("Sale price", product.sale_price),
            ("Purchase price", product.latest_purchase_price),
            ("Low stock alert", product.low_stock_alert),
            ("Loose stock", product.stock_loose),
        ):
            if not is_non_negative_number(value):
                raise ValidationError(f"{label} must be a non-negative number.")
        for name in ("sale_price", "latest_purchase_price", "low_stock_alert", "stock_loose"):
            setattr(product, name, float(getattr(product, name)))

    def save(self, product: Product, is_editing: bool, initial_stock: float = 0) -> str:
        """
        Create or edit a product.

        - Create fails if the code exists; a positive `initial_stock` opens
          one 'initial' batch at the latest purchase price.
        - Edit fails if the code is unknown and never touches batches.
        """
        self._validate(product)
        existing = self.data.find_product(product.id)
        if existing and not is_editing:
            raise ValidationError(f"Product with code {product.id} already exists.")
        if not existing and is_editing:
            raise ProductNotFound(product.id)

        if existing is not None:
            for name in _EDITABLE_FIELDS:
                setattr(existing, name, getattr(product, name))
            self.sync.log("products", "update", existing)
            return existing.id

        if initial_stock and not is_non_negative_number(initial_stock):
            raise ValidationError("Initial stock must be a non-negative number.")
        new = product.copy()
        new.batches = []
        if initial_stock and float(initial_stock) > 0:
            new.batches.append(StockBatch(
                quantity=float(initial_stock),
                purchase_price=new.latest_purchase_price,
                invoice_id=BATCH_ORIGIN_INITIAL,
                date=now_iso(),
            ))
        self.data.products.append(new)
        self.sync.log("products", "create", new)
        _log.info("Created product %s (%s) with %s initial units", new.id, new.name, new.stock_vials)
        return new.id

    def delete(self, product_id: str) -> None:
        self.require(product_id)
        if self.is_referenced(product_id):
            raise ReferentialIntegrityError(
                "Cannot delete product because it is used in one or more invoices. "
                "Please delete the relevant invoices first."
            )
        self.sync.log("products", "delete", product_id)
        self.data.products = [p for p in self.data.products if p.id != product_id]
