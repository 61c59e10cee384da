"""Move pending fees past their due date to overdue.

Meant for an external scheduler (cron, systemd timer). Safe to re-run.
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.hostel_system.hostel_system.common.datetime_utils import parse_optional_date
from src.hostel_system.hostel_system.container import build_container
from src.hostel_system.hostel_system.core.enums import Role
from src.hostel_system.hostel_system.core.identity import Identity


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--today", help="Reference date (YYYY-MM-DD); defaults to the current date")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(logging, str(getattr(settings, "LOG_LEVEL", "INFO")).upper(), logging.INFO))

    container = build_container(db_config=dict(settings.DB_CONFIG))
    try:
        # The sweep is an operator action, so it runs with an admin identity.
        updated = container.fee_service.sweep_overdue(
            Identity(user_id=0, role=Role.ADMIN),
            today=parse_optional_date(args.today, "--today"),
        )
    finally:
        container.conn.close()

    print(f"OK: {updated} fee(s) marked as overdue")


if __name__ == "__main__":
    main()
