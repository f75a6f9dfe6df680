from ...constants import BATCH_ORIGIN_SEED
from ...utils.auth import hash_password
from ..models import ClinicData, ClinicSettings, Customer, Product, StockBatch, Supplier, User


def seed(data: ClinicData) -> bool:
    """
    Fill in whatever a fresh (or older) document is missing. Safe to run on
    every load; returns True when something was added and the caller should
    persist.
    """
    changed = False

    # if no users exist, create admin/admin and staff/staff
    if not data.users:
        for username in ("admin", "staff"):
            data.users.append(User(
                id=f"user{data.counters.user}",
                username=username,
                password=hash_password(username),
                role=username,
            ))
            data.counters.user += 1
        changed = True

    if data.clinic_settings is None:
        data.clinic_settings = ClinicSettings()
        changed = True

    if not data.customers:
        data.customers.append(Customer(
            id="cus1", name="John Doe", phone="123-456-7890", address="123 Main St",
        ))
        data.counters.customer = max(data.counters.customer, 2)
        changed = True

    if not data.suppliers:
        data.suppliers.append(Supplier(
            id="sup1", name="Pharma Inc.", phone="987-654-3210", address="456 Supplier Ave",
        ))
        data.counters.supplier = max(data.counters.supplier, 2)
        changed = True

    if not data.products:
        data.products.append(Product(
            id="med1",
            name="Painkiller A",
            location="A1",
            packing_unit="100ml Vial",
            loose_unit="ml",
            stock_loose=0,
            latest_purchase_price=500,
            sale_price=800,
            expiry_date="2025-12-31",
            low_stock_alert=5,
            batches=[StockBatch(
                quantity=10,
                purchase_price=500,
                invoice_id=BATCH_ORIGIN_SEED,
                date="2023-01-01T00:00:00.000Z",
            )],
        ))
        changed = True

    return changed
