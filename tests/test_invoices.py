# tests/test_invoices.py
from __future__ import annotations

import pytest

from vetclinic.constants import STATUS_CREDIT, STATUS_FULLY_PAID, STATUS_PARTIALLY_PAID
from vetclinic.database.errors import NotFoundError, ProductNotFound, ValidationError
from vetclinic.database.models import Product


def _invoice(db, invoice_id):
    return next(i for i in db.get_invoices() if i.id == invoice_id)


# ---------------- purchase ----------------

def test_purchase_adds_batch_and_credits_supplier(db, make_invoice, product, party, changes):
    inv_id = make_invoice("purchase", [("med1", 5, 600)], amount_paid=1000)

    assert inv_id == "pur#1"
    inv = _invoice(db, inv_id)
    assert inv.total_amount == 3000
    assert inv.payment_status == STATUS_PARTIALLY_PAID
    assert inv.customer_id is None and inv.supplier_id == "sup1"

    med = product("med1")
    assert med.stock_vials == 15
    assert med.latest_purchase_price == 600
    assert any(b.invoice_id == "pur#1" and b.quantity == 5 and b.purchase_price == 600 for b in med.batches)

    assert party("sup1").outstanding_balance == 2000

    [t] = db.get_account_transactions()
    assert t.clinic_amount == -1000 and t.owner_amount == 0
    assert t.reference_id == "pur#1"
    assert t.description == "Payment for Purchase #pur#1 to Pharma Inc."
    assert changes == ["invoices"]


# ---------------- sale ----------------

def test_sale_consumes_fifo_and_records_unit_cost(db, make_invoice, product, party):
    inv_id = make_invoice("sale", [("med1", 4, 800)], discount=200, amount_paid=1000)

    inv = _invoice(db, inv_id)
    assert inv.subtotal == 3200
    assert inv.discount == 200
    assert inv.total_amount == 3000
    assert inv.payment_status == STATUS_PARTIALLY_PAID
    assert inv.items[0].purchase_unit_price == pytest.approx(500)
    assert inv.items[0].product_name == "Painkiller A"

    assert product("med1").stock_vials == 6
    assert party("cus1").outstanding_balance == 2000

    [t] = db.get_account_transactions()
    assert t.clinic_amount == 1000
    assert t.description == f"Payment for Sale #{inv_id} from John Doe"


def test_sale_spanning_two_batches_uses_blended_cost(db, make_invoice, product):
    make_invoice("purchase", [("med1", 5, 600)], date="2024-03-01")
    sale_id = make_invoice("sale", [("med1", 12, 800)], date="2024-03-02", amount_paid=9600)

    line = _invoice(db, sale_id).items[0]
    assert line.purchase_unit_price == pytest.approx((10 * 500 + 2 * 600) / 12)
    med = product("med1")
    assert [(b.quantity, b.purchase_price) for b in med.batches] == [(3, 600)]
    assert _invoice(db, sale_id).payment_status == STATUS_FULLY_PAID


def test_invoice_types_share_one_counter(make_invoice):
    assert make_invoice("purchase", [("med1", 1, 500)]) == "pur#1"
    assert make_invoice("sale", [("med1", 1, 800)]) == "sl#2"
    assert make_invoice("treatment", [("med1", 5, 10)], charged_amount=100) == "trt#3"


# ---------------- treatment ----------------

def test_treatment_opens_a_vial_and_splits_payment(db, make_invoice, product, party):
    inv_id = make_invoice(
        "treatment", [("med1", 30, 10)],
        charged_amount=1000, other_expenses=50, amount_paid=1000, discount=99,
    )

    inv = _invoice(db, inv_id)
    assert inv.subtotal == 300
    assert inv.discount == 0
    assert inv.total_amount == 1000
    assert inv.charged_amount == 1000
    assert inv.payment_status == STATUS_FULLY_PAID
    # line carries the total cost of 30 ml from a 500 / 100 ml vial
    assert inv.items[0].purchase_unit_price == pytest.approx(150)

    med = product("med1")
    assert med.stock_vials == 9
    assert med.stock_loose == 70

    [t] = db.get_account_transactions()
    assert (t.clinic_amount, t.owner_amount) == (300, 700)
    assert t.description == f"Payment for Treatment #{inv_id} from John Doe"
    assert party("cus1").outstanding_balance == 0

    details = db.get_invoice_details(inv_id)
    assert details.customer.name == "John Doe"
    assert details.vet_fee == pytest.approx(1000 - (150 + 50))


def test_treatment_payment_below_medicine_goes_to_clinic(db, make_invoice, party):
    make_invoice("treatment", [("med1", 30, 10)], charged_amount=1000, amount_paid=200)

    [t] = db.get_account_transactions()
    assert (t.clinic_amount, t.owner_amount) == (200, 0)
    assert party("cus1").outstanding_balance == 800


def test_treatment_without_items_needs_a_charge(db, make_invoice, party):
    inv_id = make_invoice("treatment", [], charged_amount=500)
    inv = _invoice(db, inv_id)
    assert inv.payment_status == STATUS_CREDIT
    assert inv.items == []
    assert party("cus1").outstanding_balance == 500
    assert db.get_account_transactions() == []


def test_treatment_from_loose_stock_has_no_cost(db, make_invoice, product):
    make_invoice("treatment", [("med1", 30, 10)], charged_amount=400)
    second = make_invoice("treatment", [("med1", 20, 10)], charged_amount=300)

    assert _invoice(db, second).items[0].purchase_unit_price is None
    assert product("med1").stock_loose == 50
    assert product("med1").stock_vials == 9


# ---------------- delete ----------------

def test_delete_purchase_reverses_everything(db, make_invoice, product, party):
    inv_id = make_invoice("purchase", [("med1", 5, 600)], amount_paid=1000)
    db.delete_invoice(inv_id)

    assert db.get_invoices() == []
    assert product("med1").stock_vials == 10
    assert party("sup1").outstanding_balance == 0
    assert db.get_account_transactions() == []
    last = db.get_sync_queue()[-1]
    assert (last.collection, last.action, last.payload.id) == ("invoices", "delete", inv_id)


def test_delete_sale_restores_one_synthetic_batch(db, make_invoice, product, party):
    inv_id = make_invoice("sale", [("med1", 4, 800)], amount_paid=500)
    db.delete_invoice(inv_id)

    med = product("med1")
    assert med.stock_vials == 10
    assert med.batches[0].invoice_id == f"revert-{inv_id}"
    assert med.batches[0].quantity == 4
    assert med.batches[0].purchase_price == pytest.approx(500)
    assert party("cus1").outstanding_balance == 0
    assert db.get_account_transactions() == []


def test_delete_treatment_returns_loose_units_only(db, make_invoice, product):
    inv_id = make_invoice("treatment", [("med1", 30, 10)], charged_amount=400)
    db.delete_invoice(inv_id)

    med = product("med1")
    assert med.stock_loose == 100
    # the opened vial stays opened
    assert med.stock_vials == 9


def test_delete_unknown_invoice(db):
    with pytest.raises(NotFoundError, match="not found"):
        db.delete_invoice("sl#99")


# ---------------- validation / atomicity ----------------

@pytest.mark.parametrize("invoice_type, lines, header, message", [
    ("sale", [("med1", 1, 800)], {"customer_id": None}, "Please select a Customer"),
    ("purchase", [("med1", 1, 500)], {"supplier_id": None}, "Please select a Supplier"),
    ("purchase", [("med1", 1, 500)], {"customer_id": "cus1"}, "cannot reference a customer"),
    ("sale", [("med1", 1, 800)], {"supplier_id": "sup1"}, "cannot reference a supplier"),
    ("sale", [], {}, "at least one item"),
    ("treatment", [], {"charged_amount": 0}, "charged amount"),
    ("sale", [("med1", 0, 800)], {}, "greater than zero"),
    ("sale", [("med1", 1, -5)], {}, "Unit price"),
    ("sale", [("med1", 1, 800)], {"amount_paid": -1}, "Amount paid"),
    ("sale", [("med1", 1, 800)], {"date": ""}, "valid invoice date"),
    ("refund", [("med1", 1, 800)], {}, "Unknown invoice type"),
])
def test_invalid_invoices_are_rejected(db, make_invoice, product, invoice_type, lines, header, message):
    with pytest.raises(ValidationError, match=message):
        make_invoice(invoice_type, lines, **header)
    assert db.get_invoices() == []
    assert product("med1").stock_vials == 10
    assert db.get_sync_queue() == []


def test_unknown_customer_is_not_found(make_invoice):
    with pytest.raises(NotFoundError, match="Customer cus404 not found"):
        make_invoice("sale", [("med1", 1, 800)], customer_id="cus404")


def test_unknown_product_fails_before_any_stock_moves(db, make_invoice, product):
    with pytest.raises(ProductNotFound):
        make_invoice("sale", [("med1", 2, 800), ("ghost", 1, 10)])

    assert product("med1").stock_vials == 10
    assert db.get_invoices() == []
    # the failed attempt did not burn an invoice number
    assert make_invoice("sale", [("med1", 1, 800)]) == "sl#1"


def test_failure_mid_invoice_rolls_back_the_document(db, make_invoice, product, party, changes, monkeypatch):
    def boom(**kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(db.accounts, "add_entry", boom)
    with pytest.raises(RuntimeError, match="disk full"):
        make_invoice("sale", [("med1", 3, 800)], amount_paid=100)

    assert product("med1").stock_vials == 10
    assert party("cus1").outstanding_balance == 0
    assert db.get_invoices() == []
    assert db.get_sync_queue() == []
    assert changes == []


def test_party_balance_matches_open_invoices_and_payments(db, make_invoice, party):
    keep = make_invoice("sale", [("med1", 2, 800)], amount_paid=300)
    drop = make_invoice("treatment", [("med1", 10, 10)], charged_amount=700, amount_paid=100)
    make_invoice("sale", [("med1", 1, 800)], discount=50, amount_paid=900)
    db.save_payment(type="receive", party_id="cus1", amount=200, date="2024-03-09")
    db.delete_invoice(drop)

    open_amount = sum(i.total_amount - i.amount_paid for i in db.get_invoices() if i.customer_id == "cus1")
    received = sum(p.amount for p in db.get_payments() if p.party_id == "cus1")
    assert party("cus1").outstanding_balance == pytest.approx(open_amount - received)
    assert keep in {i.id for i in db.get_invoices()}
    assert {t.reference_id for t in db.get_account_transactions()} >= {keep}
    assert drop not in {t.reference_id for t in db.get_account_transactions()}


# ---------------- worked scenarios ----------------

def test_scenario_purchase_then_sale(db, make_invoice, product):
    db.save_product(Product(id="P", name="Product P", packing_unit="Box"), is_editing=False)
    make_invoice("purchase", [("P", 10, 100)])
    sale_id = make_invoice("sale", [("P", 4, 150)])

    [line] = _invoice(db, sale_id).items
    assert line.purchase_unit_price == 100
    assert line.total == 600
    assert [(b.quantity, b.purchase_price) for b in product("P").batches] == [(6, 100)]


def test_scenario_treatment_opening_a_vial(db, make_invoice, product):
    db.save_product(
        Product(id="V", name="Vaccine", packing_unit="10ml Vial", loose_unit="ml",
                stock_loose=2, latest_purchase_price=50),
        is_editing=False,
        initial_stock=1,
    )
    inv_id = make_invoice("treatment", [("V", 5, 20)], charged_amount=200)

    assert _invoice(db, inv_id).items[0].purchase_unit_price == pytest.approx(25)
    v = product("V")
    assert v.stock_loose == 7
    assert v.batches == []


def test_scenario_deleting_credit_sale_reverts_balance(db, make_invoice, party):
    inv_id = make_invoice("sale", [("med1", 1, 500)])
    assert party("cus1").outstanding_balance == 500
    db.delete_invoice(inv_id)
    assert party("cus1").outstanding_balance == 0
