# tests/test_cli.py
from __future__ import annotations

import json

from vetclinic.cli import main


def test_balances_on_a_fresh_database(tmp_path, capsys):
    db_file = tmp_path / "cli.db"
    assert main(["--db", str(db_file), "balances"]) == 0
    out = capsys.readouterr().out
    assert "Clinic account: Rs 0.00" in out
    assert "Owner account:  Rs 0.00" in out


def test_export_then_import(tmp_path, capsys):
    db_file = tmp_path / "cli.db"
    export = tmp_path / "export.json"

    assert main(["--db", str(db_file), "export", str(export)]) == 0
    assert json.loads(export.read_text(encoding="utf-8"))["counters"]["customer"] == 2
    assert main(["--db", str(db_file), "import", str(export)]) == 0
    assert "Imported" in capsys.readouterr().out


def test_import_of_invalid_file_reports_error(tmp_path, capsys):
    bad = tmp_path / "bad.json"
    bad.write_text("[]", encoding="utf-8")

    assert main(["--db", str(tmp_path / "cli.db"), "import", str(bad)]) == 2
    assert "Error:" in capsys.readouterr().err


def test_forced_backup_and_alerts(tmp_path, capsys):
    db_file = tmp_path / "cli.db"
    backups = tmp_path / "backups"

    assert main(["--db", str(db_file), "backup", "--dir", str(backups), "--force"]) == 0
    assert (backups / "vetclinic_auto_backup.json").exists()

    assert main(["--db", str(db_file), "alerts"]) == 0
    out = capsys.readouterr().out
    assert "Low stock (0):" in out


def test_sync_command_drains_nothing_on_a_fresh_database(tmp_path, capsys):
    assert main(["--db", str(tmp_path / "cli.db"), "sync"]) == 0
    assert "Synced 0 operation(s); 0 pending" in capsys.readouterr().out
