import os
from pathlib import Path

from .constants import BACKUP_DIR, DATA_DIR, DB_FILE_NAME, LOG_DIR

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR

# env overrides keep tests and packaged installs away from the source tree
DB_PATH = Path(os.getenv("VETCLINIC_DB_PATH", str(DATA_PATH / DB_FILE_NAME)))
BACKUP_PATH = Path(os.getenv("VETCLINIC_BACKUP_DIR", str(DATA_PATH / BACKUP_DIR)))
LOG_PATH = Path(os.getenv("VETCLINIC_LOG_DIR", str(BASE_DIR / LOG_DIR)))

BCRYPT_ROUNDS = int(os.getenv("VETCLINIC_BCRYPT_ROUNDS", "12"))
