from __future__ import annotations

from datetime import datetime
from pathlib import Path

from scripts.backup import HOSTEL_TABLES, backup_path, build_dump_command

DB = {"host": "db.local", "port": 3307, "user": "hostel", "password": "s3cret", "database": "hostel_db"}


def test_dump_covers_only_hostel_tables():
    cmd = build_dump_command(DB, Path("/tmp/out.sql"))

    assert cmd[0] == "mysqldump"
    assert cmd[-5:] == ["hostel_db", *HOSTEL_TABLES]
    assert "--single-transaction" in cmd
    assert "--result-file=/tmp/out.sql" in cmd
    assert "--no-data" not in cmd


def test_password_never_reaches_the_command_line():
    cmd = build_dump_command(DB, Path("/tmp/out.sql"))

    assert not any("s3cret" in part for part in cmd)
    assert "--host=db.local" in cmd
    assert "--port=3307" in cmd


def test_schema_only_dump():
    cmd = build_dump_command(DB, Path("/tmp/out.sql"), schema_only=True)

    assert "--no-data" in cmd


def test_backup_file_is_named_after_database_and_time():
    path = backup_path(Path("/backups"), "hostel_db", datetime(2025, 3, 15, 9, 30, 5))

    assert path == Path("/backups/hostel_db_20250315_093005.sql")
