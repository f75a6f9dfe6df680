# tests/test_parties_products.py
from __future__ import annotations

import pytest

from vetclinic.database.errors import (
    NotFoundError,
    PartyInUse,
    ProductNotFound,
    ReferentialIntegrityError,
    ValidationError,
)
from vetclinic.database.models import Product


# ---------------- customers / suppliers ----------------

def test_seeded_parties_and_next_ids(db):
    assert [c.id for c in db.get_customers()] == ["cus1"]
    assert [s.id for s in db.get_suppliers()] == ["sup1"]
    assert db.save_customer("Jane Roe", "555-0101") == "cus2"
    assert db.save_supplier("VetSupply Co") == "sup2"


def test_update_party_never_touches_balance(db, make_invoice, party):
    make_invoice("sale", [("med1", 1, 800)])
    db.save_customer("  Johnny Doe ", "111", "Elm St", customer_id="cus1")

    c = party("cus1")
    assert (c.name, c.phone, c.address) == ("Johnny Doe", "111", "Elm St")
    assert c.outstanding_balance == 800


def test_party_name_is_required(db):
    with pytest.raises(ValidationError, match="Name cannot be empty"):
        db.save_customer("   ")
    with pytest.raises(NotFoundError):
        db.save_supplier("Ghost", supplier_id="sup404")


def test_party_with_invoices_cannot_be_deleted(db, make_invoice):
    make_invoice("purchase", [("med1", 1, 500)], amount_paid=500)
    with pytest.raises(PartyInUse, match="existing invoices"):
        db.delete_supplier("sup1")


def test_party_with_open_balance_cannot_be_deleted(db):
    cid = db.save_customer("Walk-in")
    db.save_payment(type="receive", party_id=cid, amount=50, date="2024-03-01")
    with pytest.raises(PartyInUse, match="outstanding balance"):
        db.delete_customer(cid)


def test_delete_unused_party(db, changes):
    cid = db.save_customer("Temp")
    db.delete_customer(cid)
    assert cid not in [c.id for c in db.get_customers()]
    assert changes == ["customers", "customers"]


# ---------------- products ----------------

def _new_product(**overrides):
    fields = dict(
        id="amx250",
        name="Amoxicillin 250",
        location="B2",
        packing_unit="10 tabs",
        loose_unit="tab",
        latest_purchase_price=120,
        sale_price=200,
        expiry_date="2026-06-30",
        low_stock_alert=3,
    )
    fields.update(overrides)
    return Product(**fields)


def test_create_product_with_initial_stock(db, product):
    assert db.save_product(_new_product(), is_editing=False, initial_stock=8) == "amx250"

    p = product("amx250")
    assert p.stock_vials == 8
    [batch] = p.batches
    assert batch.invoice_id == "initial"
    assert batch.purchase_price == 120


def test_create_product_without_stock_has_no_batches(db, product):
    db.save_product(_new_product(), is_editing=False)
    assert product("amx250").batches == []


def test_duplicate_and_unknown_product_codes(db):
    with pytest.raises(ValidationError, match="already exists"):
        db.save_product(_new_product(id="med1"), is_editing=False)
    with pytest.raises(ProductNotFound):
        db.save_product(_new_product(id="nope"), is_editing=True)
    with pytest.raises(ValidationError, match="Sale price"):
        db.save_product(_new_product(sale_price=-1), is_editing=False)


def test_numeric_text_is_stored_as_numbers(db, product):
    db.save_product(_new_product(sale_price="200", latest_purchase_price="120.5"), is_editing=False, initial_stock=2)

    p = product("amx250")
    assert p.sale_price == 200.0
    assert p.batches[0].purchase_price == 120.5
    # the stored document stays importable
    db.import_data(db.export_data())
    assert product("amx250").sale_price == 200.0


def test_edit_product_keeps_batches(db, product):
    edited = _new_product(id="med1", name="Painkiller B", batches=[])
    db.save_product(edited, is_editing=True)

    p = product("med1")
    assert p.name == "Painkiller B"
    assert p.stock_vials == 10


def test_product_used_in_invoice_cannot_be_deleted(db, make_invoice):
    make_invoice("sale", [("med1", 1, 800)])
    with pytest.raises(ReferentialIntegrityError, match="used in one or more invoices"):
        db.delete_product("med1")


def test_delete_product(db):
    db.save_product(_new_product(), is_editing=False)
    db.delete_product("amx250")
    assert [p.id for p in db.get_products()] == ["med1"]
    with pytest.raises(ProductNotFound):
        db.delete_product("amx250")


def test_product_history_splits_purchases_and_sales(db, make_invoice):
    make_invoice("purchase", [("med1", 5, 600)])
    make_invoice("sale", [("med1", 2, 800)])
    make_invoice("treatment", [("med1", 10, 10)], charged_amount=150)

    history = db.get_product_history("med1")
    assert [h.party_name for h in history["purchases"]] == ["Pharma Inc."]
    assert [h.type for h in history["sales"]] == ["sale", "treatment"]
    assert history["sales"][0].total == 1600
