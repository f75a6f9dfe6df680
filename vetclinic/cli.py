"""
Command line maintenance for a clinic database.

    python -m vetclinic export backup.json
    python -m vetclinic import backup.json
    python -m vetclinic backup [--dir DIR] [--force]
    python -m vetclinic balances
    python -m vetclinic alerts
    python -m vetclinic sync
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .database.clinic_db import ClinicDB
from .database.errors import DomainError
from .utils.helpers import fmt_money
from .utils.loggers import get_logger

log = get_logger()


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="vetclinic", description="VetClinic ledger maintenance")
    p.add_argument("--db", help="database file (default: VETCLINIC_DB_PATH or the package data dir)")
    sub = p.add_subparsers(dest="command", required=True)

    exp = sub.add_parser("export", help="write the whole document as JSON")
    exp.add_argument("path")

    imp = sub.add_parser("import", help="replace the whole document from a JSON export")
    imp.add_argument("path")

    bkp = sub.add_parser("backup", help="take the automatic backup if it is due")
    bkp.add_argument("--dir", help="backup folder (default: VETCLINIC_BACKUP_DIR)")
    bkp.add_argument("--force", action="store_true", help="back up even if the last one is recent")

    sub.add_parser("balances", help="print clinic/owner cash balances")
    sub.add_parser("alerts", help="print low stock and expiry alerts")
    sub.add_parser("sync", help="drain the sync queue once through the logging transport")
    return p


def _cmd_export(db: ClinicDB, args) -> int:
    Path(args.path).write_text(db.export_data(), encoding="utf-8")
    print(f"Exported to {args.path}")
    return 0


def _cmd_import(db: ClinicDB, args) -> int:
    db.import_data(Path(args.path).read_text(encoding="utf-8"))
    print(f"Imported {args.path}")
    return 0


def _cmd_backup(db: ClinicDB, args) -> int:
    from .modules.backup_restore import AutoBackupScheduler, BackupJob

    scheduler = AutoBackupScheduler(db, backup_dir=args.dir)
    if args.force:
        written = BackupJob(db).run(str(scheduler.target))
    else:
        written = scheduler.check_and_backup(datetime.now())
    if written is None:
        print("No backup taken (not due, or it failed; see logs).")
        return 0 if not args.force else 1
    print(f"Backup written to {written}")
    return 0


def _cmd_balances(db: ClinicDB, args) -> int:
    b = db.get_latest_balances()
    print(f"Clinic account: {fmt_money(b.clinic_balance)}")
    print(f"Owner account:  {fmt_money(b.owner_balance)}")
    return 0


def _cmd_alerts(db: ClinicDB, args) -> int:
    alerts = db.get_dashboard_alerts()
    print(f"Low stock ({len(alerts.low_stock)}):")
    for p in alerts.low_stock:
        print(f"  {p.id:<10} {p.name:<30} {p.stock_vials:g} / alert {p.low_stock_alert:g}")
    print(f"Expiring soon ({len(alerts.expiring)}):")
    for p in alerts.expiring:
        print(f"  {p.id:<10} {p.name:<30} {p.expiry_date}")
    return 0


def _cmd_sync(db: ClinicDB, args) -> int:
    from .modules.sync import SyncService

    service = SyncService(db)
    sent = service.drain()
    print(f"Synced {sent} operation(s); {service.pending} pending")
    return 0


_COMMANDS = {
    "export": _cmd_export,
    "import": _cmd_import,
    "backup": _cmd_backup,
    "balances": _cmd_balances,
    "alerts": _cmd_alerts,
    "sync": _cmd_sync,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    db = ClinicDB(args.db)
    try:
        return _COMMANDS[args.command](db, args)
    except DomainError as e:
        log.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 2
    finally:
        db.close()
