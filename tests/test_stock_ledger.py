# tests/test_stock_ledger.py
import pytest

from vetclinic.database.models import Product, StockBatch
from vetclinic.database.repositories.stock_ledger import StockLedger, parse_packing_size


def _product(*batches, packing="100ml Vial", loose=0.0, latest=0.0):
    return Product(
        id="p1",
        name="Test",
        packing_unit=packing,
        stock_loose=loose,
        latest_purchase_price=latest,
        batches=[StockBatch(quantity=q, purchase_price=price, invoice_id=inv, date=d) for q, price, inv, d in batches],
    )


@pytest.mark.parametrize("packing, expected", [
    ("100ml Vial", 100.0),
    ("10 tabs", 10.0),
    ("2.5 L bottle", 2.5),
    ("Bottle", 1.0),
    ("", 1.0),
    (None, 1.0),
])
def test_parse_packing_size(packing, expected):
    assert parse_packing_size(packing) == expected


def test_consume_takes_oldest_batches_first():
    p = _product(
        (10, 120.0, "pur#2", "2024-02-01"),
        (5, 100.0, "pur#1", "2024-01-01"),
    )
    result = StockLedger().consume(p, 7)

    assert result.consumed == 7
    assert result.total_cost == pytest.approx(5 * 100 + 2 * 120)
    assert [(b.quantity, b.invoice_id) for b in p.batches] == [(8, "pur#2")]
    assert p.stock_vials == 8


def test_consume_same_date_keeps_insertion_order():
    p = _product(
        (1, 10.0, "first", "2024-01-01"),
        (1, 20.0, "second", "2024-01-01"),
    )
    result = StockLedger().consume(p, 1)
    assert result.total_cost == 10.0
    assert [b.invoice_id for b in p.batches] == ["second"]


def test_consume_shortfall_is_left_uncosted(caplog):
    p = _product((3, 10.0, "pur#1", "2024-01-01"))
    with caplog.at_level("WARNING"):
        result = StockLedger().consume(p, 20)

    assert result.consumed == 3
    assert result.total_cost == 30.0
    assert p.batches == []
    assert "Insufficient stock" in caplog.text


def test_draw_loose_opens_whole_units_when_loose_runs_out():
    p = _product((2, 500.0, "pur#1", "2024-01-01"))
    draw = StockLedger().draw_loose(p, 30)

    assert draw is not None
    assert draw.units_opened == 1
    assert draw.loose_opened == 100
    assert draw.cost_per_loose_unit == pytest.approx(5.0)
    assert p.stock_loose == 70
    assert p.stock_vials == 1


def test_draw_loose_opens_several_units_for_a_large_draw():
    p = _product((5, 200.0, "pur#1", "2024-01-01"), packing="10 tabs", loose=4)
    draw = StockLedger().draw_loose(p, 25)

    # 4 on hand, 21 short -> 3 strips of 10
    assert draw.units_opened == 3
    assert draw.cost_of_opened == pytest.approx(600.0)
    assert p.stock_loose == 9
    assert p.stock_vials == 2


def test_draw_loose_from_existing_loose_stock_opens_nothing():
    p = _product((2, 500.0, "pur#1", "2024-01-01"), loose=50)
    assert StockLedger().draw_loose(p, 30) is None
    assert p.stock_loose == 20
    assert p.stock_vials == 2


def test_reverse_purchase_drops_only_that_invoice():
    p = _product(
        (5, 100.0, "pur#1", "2024-01-01"),
        (3, 110.0, "pur#2", "2024-01-02"),
    )
    removed = StockLedger().reverse_purchase(p, "pur#1")
    assert removed == 5
    assert [b.invoice_id for b in p.batches] == ["pur#2"]


def test_restore_inserts_one_batch_at_the_head():
    p = _product((3, 110.0, "pur#2", "2024-01-02"), latest=90.0)
    ledger = StockLedger()

    batch = ledger.restore(p, "sl#4", 2, 105.0)
    assert p.batches[0] is batch
    assert batch.invoice_id == "revert-sl#4"
    assert batch.purchase_price == 105.0

    fallback = ledger.restore(p, "sl#5", 1, None)
    assert fallback.purchase_price == 90.0
    assert p.stock_vials == 6
