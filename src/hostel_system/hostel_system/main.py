from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.datetime_utils import parse_optional_time
from .common.web import register_error_handlers
from .container import Container, build_container
from .core.constants import LATE_CUTOFF
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .fees.controller import register as register_fees
from .rooms.controller import register as register_rooms
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

_DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def register_routes(app: Flask, container: Container) -> None:
    register_error_handlers(app)
    register_users(app, container)
    register_rooms(app, container)
    register_attendance(app, container)
    register_fees(app, container)


def create_app(container: Container | None = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["DEFAULT_PAGE_LIMIT"] = int(getattr(settings, "DEFAULT_PAGE_LIMIT", 10))

    _configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        auto_init_db = bool(getattr(settings, "AUTO_INIT_DB", False))
        auto_seed_db = bool(getattr(settings, "AUTO_SEED_DB", False))
        if auto_init_db:
            apply_schema(db_config, schema_path=_DATABASE_DIR / "schema.sql")
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if auto_seed_db:
            apply_seed_sql(db_config, seed_path=_DATABASE_DIR / "seed.sql")
            ensure_demo_users(db_config)
            logger.info("demo seed ready")

        container = build_container(
            db_config=db_config,
            late_cutoff=parse_optional_time(getattr(settings, "LATE_CUTOFF", None), "LATE_CUTOFF") or LATE_CUTOFF,
            token_max_age_minutes=int(getattr(settings, "QR_TOKEN_MAX_AGE_MINUTES", 0)) or None,
        )

    if container.conn is not None:
        atexit.register(container.conn.close)

    register_routes(app, container)
    return app
