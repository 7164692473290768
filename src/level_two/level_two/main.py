from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.guards import current_capabilities
from .core.constants import (
    DEFAULT_REALTIME_POLL_SECONDS,
    DEFAULT_REPORT_MONTHS,
    DEFAULT_SEARCH_DEBOUNCE_MS,
    DEFAULT_SESSION_DAYS,
    DEFAULT_WORKSPACE_IDLE_MINUTES,
)
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_initial_users, list_tables
from .database.connection import DBConfig

from .container import Container, build_container
from .attendance.controller import register as register_attendance
from .members.controller import register as register_members
from .reports.controller import register as register_reports
from .users.controller import register as register_users
from .visitation.controller import register as register_visitation

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parents[3]

_SETTINGS_DEFAULTS = {
    "SEARCH_DEBOUNCE_MS": DEFAULT_SEARCH_DEBOUNCE_MS,
    "REALTIME_POLL_SECONDS": DEFAULT_REALTIME_POLL_SECONDS,
    "WORKSPACE_IDLE_MINUTES": DEFAULT_WORKSPACE_IDLE_MINUTES,
    "REPORT_DEFAULT_MONTHS": DEFAULT_REPORT_MONTHS,
    "SESSION_DAYS": DEFAULT_SESSION_DAYS,
}


def create_app(container: Optional[Container] = None, *, settings_module: Optional[str] = None) -> Flask:
    """Application factory.

    Passing a ready `container` skips every database step (used by tests).
    """
    load_dotenv(override=False)
    app = Flask(__name__, template_folder=str(ROOT / "templates"))

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    for key, default in _SETTINGS_DEFAULTS.items():
        app.config[key] = int(getattr(settings, key, default))

    logging.basicConfig(
        level=logging.DEBUG if app.config["DEBUG"] else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info("settings=%s db=%s", settings_module, DBConfig.from_dict(db_config).describe())

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=ROOT / "database" / "schema.sql")
            logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=ROOT / "database" / "seed.sql")
            ensure_initial_users(db_config)
            logger.info("seed ready")

        container = build_container(
            db_config=db_config,
            idle_minutes=app.config["WORKSPACE_IDLE_MINUTES"],
            report_months=app.config["REPORT_DEFAULT_MONTHS"],
        )

    app.extensions["level_two"] = container

    @app.context_processor
    def inject_capabilities():
        return {"caps": current_capabilities()}

    register_users(app, container)
    register_members(app, container)
    register_attendance(app, container)
    register_visitation(app, container)
    register_reports(app, container)

    return app
