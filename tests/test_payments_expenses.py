# tests/test_payments_expenses.py
from __future__ import annotations

import pytest

from vetclinic.database.errors import NotFoundError, ValidationError


# ---------------- payments ----------------

def test_receive_payment_reduces_customer_balance(db, make_invoice, party, changes):
    make_invoice("sale", [("med1", 2, 800)])
    pid = db.save_payment(type="receive", party_id="cus1", amount=600, date="2024-03-02")

    assert pid == "pay1"
    assert party("cus1").outstanding_balance == 1000
    [t] = db.get_account_transactions()
    assert t.clinic_amount == 600
    assert t.reference_id == pid
    assert t.description == "Payment received from John Doe"
    assert changes[-1] == "payments"


def test_pay_supplier_takes_cash_out(db, party):
    db.save_payment(type="pay", party_id="sup1", amount=250, date="2024-03-02")

    assert party("sup1").outstanding_balance == -250
    [t] = db.get_account_transactions()
    assert t.clinic_amount == -250
    assert t.description == "Payment made to Pharma Inc."


@pytest.mark.parametrize("kwargs, exc, message", [
    (dict(type="refund", party_id="cus1", amount=10, date="2024-03-02"), ValidationError, "Unknown payment type"),
    (dict(type="receive", party_id="cus1", amount=0, date="2024-03-02"), ValidationError, "greater than zero"),
    (dict(type="receive", party_id="cus1", amount=10, date=""), ValidationError, "valid payment date"),
    (dict(type="receive", party_id="cus404", amount=10, date="2024-03-02"), NotFoundError, "cus404"),
])
def test_invalid_payments(db, kwargs, exc, message):
    with pytest.raises(exc, match=message):
        db.save_payment(**kwargs)
    assert db.get_payments() == []
    assert db.get_account_transactions() == []


# ---------------- expenses ----------------

def test_expense_writes_one_ledger_entry(db):
    eid = db.save_expense(date="2024-03-07", category="Rent", description="March", amount=300)

    [e] = db.get_expenses()
    assert (e.id, e.amount) == (eid, 300)
    [t] = db.get_account_transactions()
    assert t.clinic_amount == -300
    assert t.reference_id == eid
    assert t.description == "Expense: Rent - March"


def test_expense_update_rewrites_its_entry(db):
    eid = db.save_expense(date="2024-03-07", category="Rent", description="March", amount=300)
    db.save_expense(date="2024-03-08", category="Utilities", description="Power", amount=120, expense_id=eid)

    [t] = db.get_account_transactions()
    assert t.clinic_amount == -120
    assert t.date == "2024-03-08"
    assert t.description == "Expense: Utilities - Power"


def test_expense_delete_removes_entry(db):
    eid = db.save_expense(date="2024-03-07", category="Rent", description="", amount=300)
    db.delete_expense(eid)
    assert db.get_expenses() == []
    assert db.get_account_transactions() == []
    with pytest.raises(NotFoundError):
        db.delete_expense(eid)


def test_expense_validation(db):
    with pytest.raises(ValidationError, match="greater than zero"):
        db.save_expense(date="2024-03-07", category="Rent", description="", amount=0)
    with pytest.raises(ValidationError, match="Category"):
        db.save_expense(date="2024-03-07", category=" ", description="", amount=10)


def test_expenses_filter_and_order(db):
    db.save_expense(date="2024-01-15", category="Rent", description="Jan", amount=300)
    db.save_expense(date="2024-02-15", category="Rent", description="Feb", amount=300)
    db.save_expense(date="2024-02-20", category="Food", description="Staff", amount=40)

    in_feb = db.get_expenses("2024-02-01", "2024-02-29")
    assert [e.description for e in in_feb] == ["Staff", "Feb"]
    assert db.expenses.total_by_category() == {"Rent": 600, "Food": 40}
