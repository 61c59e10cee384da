"""Dump the hostel tables with `mysqldump` (MySQL client tools).

Only the tables this application owns are dumped, so a shared database
keeps other schemas out of the file. The password goes through MYSQL_PWD
instead of the command line.
"""

from __future__ import annotations

import argparse
import importlib
import logging
import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Sequence

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

logger = logging.getLogger("hostel_system.backup")

# Parents first, so a restore satisfies the foreign keys in file order.
HOSTEL_TABLES = ("rooms", "users", "attendance_records", "fees")


def backup_path(out_dir: Path, database: str, now: datetime | None = None) -> Path:
    ts = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return out_dir / f"{database}_{ts}.sql"


def build_dump_command(
    db: dict,
    out_file: Path,
    *,
    tables: Sequence[str] = HOSTEL_TABLES,
    schema_only: bool = False,
) -> list[str]:
    cmd = [
        "mysqldump",
        f"--host={db['host']}",
        f"--port={db.get('port', 3306)}",
        f"--user={db['user']}",
        "--single-transaction",
        "--routines",
        f"--result-file={out_file}",
    ]
    if schema_only:
        cmd.append("--no-data")
    cmd.append(db["database"])
    cmd.extend(tables)
    return cmd


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--out-dir", default=str(REPO_ROOT / "backups"), help="Directory for the dump file")
    parser.add_argument("--schema-only", action="store_true", help="Dump table definitions without rows")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO)
    db = importlib.import_module(get_settings_module()).DB_CONFIG

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_file = backup_path(out_dir, db["database"])

    cmd = build_dump_command(db, out_file, schema_only=args.schema_only)
    env = dict(os.environ, MYSQL_PWD=str(db.get("password") or ""))
    logger.info("Dumping %s (%s) to %s", db["database"], ", ".join(HOSTEL_TABLES), out_file)

    try:
        subprocess.run(cmd, env=env, stderr=subprocess.PIPE, check=True)
    except FileNotFoundError:
        raise SystemExit("`mysqldump` not found. Install the MySQL client tools.")
    except subprocess.CalledProcessError as exc:
        out_file.unlink(missing_ok=True)
        raise SystemExit(f"mysqldump failed: {exc.stderr.decode(errors='replace').strip()}")

    print(f"OK: Backup created: {out_file}")


if __name__ == "__main__":
    main()
