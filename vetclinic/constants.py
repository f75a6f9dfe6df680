APP_NAME = "VetClinic"

DATA_DIR = "data"
DB_FILE_NAME = "vetclinic.db"
BACKUP_DIR = "backups"
LOG_DIR = "logs"

# sqlite tables / document keys
TABLE_SCHEMA_VERSION = "schema_version"
TABLE_DOCUMENTS = "documents"
SCHEMA_VERSION = "1.0.0"
DOCUMENT_KEY = "vetclinic_db"
LAST_AUTO_BACKUP_KEY = "vetclinic_last_auto_backup"

DEFAULT_CLINIC_NAME = "VetClinic"

# invoice id prefixes, one shared counter
INVOICE_PREFIXES = {
    "treatment": "trt#",
    "sale": "sl#",
    "purchase": "pur#",
}

# batch origin sentinels
BATCH_ORIGIN_INITIAL = "initial"
BATCH_ORIGIN_SEED = "seed"
BATCH_ORIGIN_REVERT_PREFIX = "revert-"

# reporting windows
INVENTORY_NEAR_EXPIRY_MONTHS = 2
DASHBOARD_EXPIRY_ALERT_DAYS = 30
TOP_SELLER_COUNT = 5

# background intervals (milliseconds / hours)
SYNC_INTERVAL_MS = 15_000
AUTO_BACKUP_CHECK_MS = 60 * 60 * 1000
AUTO_BACKUP_INTERVAL_HOURS = 24
AUTO_BACKUP_FILE_NAME = "vetclinic_auto_backup.json"

# invoice payment status labels
STATUS_FULLY_PAID = "Fully Paid"
STATUS_PARTIALLY_PAID = "Partially Paid"
STATUS_CREDIT = "Credit"
