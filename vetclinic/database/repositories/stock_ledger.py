from __future__ import annotations

"""
FIFO stock batch ledger.

A product's whole-unit stock is the list of purchase batches it still holds.
Sales and treatments consume the oldest batches first; the cost of what was
taken is the cost of goods for the invoice line.

Conventions:
- Batches are ordered by acquisition date; same-date batches keep their
  insertion order (Python's sort is stable).
- Consuming more than the batches hold is NOT an error: the shortfall is
  simply left uncosted and a warning is logged.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from ...constants import BATCH_ORIGIN_REVERT_PREFIX
from ...utils.helpers import leading_number, now_iso, parse_datetime
from ..models import Product, StockBatch

_log = logging.getLogger(__name__)


@dataclass
class ConsumeResult:
    consumed: float
    total_cost: float
    remaining_batches: List[StockBatch] = field(default_factory=list)

    @property
    def unit_cost(self) -> float:
        return self.total_cost / self.consumed if self.consumed > 0 else 0.0


@dataclass
class LooseDraw:
    """Outcome of drawing loose units (e.g. ml) for a treatment line."""
    units_opened: int
    loose_opened: float
    cost_of_opened: float

    @property
    def cost_per_loose_unit(self) -> float:
        return self.cost_of_opened / self.loose_opened if self.loose_opened > 0 else 0.0


def parse_packing_size(packing_unit: Optional[str]) -> float:
    """Loose units per packing unit: "100ml Vial" -> 100, "10 tabs" -> 10, "Bottle" -> 1."""
    return leading_number(packing_unit, default=1.0)


class StockLedger:
    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------
    @staticmethod
    def sort_batches(product: Product) -> None:
        product.batches.sort(key=lambda b: parse_datetime(b.date))

    # ------------------------------------------------------------------
    # FIFO consumption
    # ------------------------------------------------------------------
    def consume(self, product: Product, requested: float) -> ConsumeResult:
        """
        Take `requested` whole units from the oldest batches.

        Partially used batches keep their remainder; emptied batches are
        dropped. The product's batch list is replaced with the remainder.
        """
        self.sort_batches(product)
        need = float(requested)
        cost = 0.0
        consumed = 0.0
        remaining: List[StockBatch] = []

        for batch in product.batches:
            if need <= 0:
                remaining.append(batch)
                continue
            take = min(need, batch.quantity)
            cost += take * batch.purchase_price
            consumed += take
            need -= take
            if batch.quantity > take:
                remaining.append(StockBatch(
                    quantity=batch.quantity - take,
                    purchase_price=batch.purchase_price,
                    invoice_id=batch.invoice_id,
                    date=batch.date,
                ))

        if need > 0:
            _log.warning(
                "Insufficient stock for %s: requested %s, only %s available in batches; "
                "shortfall left uncosted.",
                product.id, requested, consumed,
            )

        product.batches = remaining
        return ConsumeResult(consumed=consumed, total_cost=cost, remaining_batches=list(remaining))

    def draw_loose(self, product: Product, loose_quantity: float) -> Optional[LooseDraw]:
        """
        Dispense `loose_quantity` loose units. When loose stock runs negative,
        open enough whole packing units (FIFO) to cover the shortfall and add
        everything they contain to loose stock.

        Returns None when no packing unit had to be opened.
        """
        product.stock_loose -= loose_quantity
        packing_size = parse_packing_size(product.packing_unit)
        if packing_size <= 0 or product.stock_loose >= 0:
            return None

        shortfall = -product.stock_loose
        units_needed = math.ceil(shortfall / packing_size)
        result = self.consume(product, units_needed)

        loose_opened = units_needed * packing_size
        product.stock_loose += loose_opened
        return LooseDraw(
            units_opened=units_needed,
            loose_opened=loose_opened,
            cost_of_opened=result.total_cost,
        )

    # ------------------------------------------------------------------
    # Additions / reversals
    # ------------------------------------------------------------------
    def add(self, product: Product, batch: StockBatch) -> None:
        product.batches.append(batch)

    def reverse_purchase(self, product: Product, invoice_id: str) -> float:
        """Drop every batch created by `invoice_id`; returns the quantity removed."""
        removed = sum(b.quantity for b in product.batches if b.invoice_id == invoice_id)
        product.batches = [b for b in product.batches if b.invoice_id != invoice_id]
        return removed

    def restore(
        self,
        product: Product,
        invoice_id: str,
        quantity: float,
        unit_cost: Optional[float],
    ) -> StockBatch:
        """
        Put consumed units back as ONE synthetic batch at the head of the
        list. The original batch layout is not reconstructed.
        """
        price = unit_cost if unit_cost else product.latest_purchase_price
        batch = StockBatch(
            quantity=quantity,
            purchase_price=price,
            invoice_id=f"{BATCH_ORIGIN_REVERT_PREFIX}{invoice_id}",
            date=now_iso(),
        )
        product.batches.insert(0, batch)
        return batch
