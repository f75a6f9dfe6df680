# vetclinic/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Every test gets its own in-memory clinic document (seeded defaults:
#   admin/staff users, customer cus1, supplier sup1, product med1 with
#   10 vials @ 500 from 2023-01-01)
# - Logs and backups go to a throwaway temp dir, never the source tree
# - Cheap bcrypt cost so user tests stay fast
# - Silence benign Qt signal warnings
# ---------------------------------------------------------------------

from __future__ import annotations

import os
import re
import tempfile

_TMP = tempfile.mkdtemp(prefix="vetclinic-tests-")
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("VETCLINIC_BCRYPT_ROUNDS", "4")
os.environ.setdefault("VETCLINIC_LOG_DIR", os.path.join(_TMP, "logs"))
os.environ.setdefault("VETCLINIC_BACKUP_DIR", os.path.join(_TMP, "backups"))
os.environ.setdefault("VETCLINIC_DB_PATH", os.path.join(_TMP, "vetclinic.db"))

import pytest
from PySide6 import QtCore

from vetclinic.database import MEMORY
from vetclinic.database.clinic_db import ClinicDB
from vetclinic.database.models import InvoiceItem
from vetclinic.database.repositories import InvoiceHeader
from vetclinic.modules.event_bus import EventBus


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Silence benign Qt warnings ----------
_BENIGN_QT_PATTERNS = [
    r"^QObject::connect: .* already connected",
    r"^QObject::disconnect: Unexpected null parameter",
    r"^QBasicTimer::stop: Failed\. Platform timer not running\.",
]

@pytest.fixture(autouse=True, scope="session")
def _silence_benign_qt():
    """Filter common harmless Qt messages during tests."""
    original = QtCore.qInstallMessageHandler(None)
    rx = [re.compile(p) for p in _BENIGN_QT_PATTERNS]

    def handler(msg_type, context, message):
        text = str(message)
        for r in rx:
            if r.search(text):
                return  # swallow benign messages
        QtCore.qInstallMessageHandler(None)
        try:
            QtCore.qDebug(message)
        finally:
            QtCore.qInstallMessageHandler(handler)

    QtCore.qInstallMessageHandler(handler)
    try:
        yield
    finally:
        QtCore.qInstallMessageHandler(original)


# ---------- Per-test clinic ----------
@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def db(bus):
    """Fresh seeded clinic in an in-memory sqlite database."""
    clinic = ClinicDB(MEMORY, bus=bus)
    try:
        yield clinic
    finally:
        clinic.close()


@pytest.fixture()
def changes(bus) -> list:
    """Collections announced on the bus, in order."""
    seen: list = []
    bus.data_changed.connect(seen.append)
    return seen


# ---------- Invoice helpers ----------
@pytest.fixture()
def make_invoice(db):
    """
    make_invoice("sale", [("med1", 2, 800)], customer_id="cus1", amount_paid=...)
    Items are (product_id, quantity, unit_price) tuples.
    """
    def _make(invoice_type: str, lines, *, date: str = "2024-03-01", **header) -> str:
        if invoice_type == "purchase":
            header.setdefault("supplier_id", "sup1")
        else:
            header.setdefault("customer_id", "cus1")
        items = [InvoiceItem(product_id=pid, quantity=qty, unit_price=price) for pid, qty, price in lines]
        return db.save_invoice(InvoiceHeader(type=invoice_type, date=date, **header), items)

    return _make


@pytest.fixture()
def product(db):
    """product("med1") -> current copy of that product."""
    def _get(product_id: str = "med1"):
        return next(p for p in db.get_products() if p.id == product_id)

    return _get


@pytest.fixture()
def party(db):
    def _get(party_id: str):
        return next(p for p in db.get_customers() + db.get_suppliers() if p.id == party_id)

    return _get
