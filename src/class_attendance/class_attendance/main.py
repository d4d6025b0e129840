from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.clock import Clock
from .container import build_container
from .core.constants import OTP_DIGITS, OTP_VALIDITY_SECONDS
from .database.bootstrap import apply_schema, list_tables

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"

_SETTING_NAMES = (
    "SECRET_KEY",
    "DEBUG",
    "TESTING",
    "DB_CONFIG",
    "STORAGE_BACKEND",
    "AUTO_INIT_DB",
    "OTP_DIGITS",
    "OTP_VALIDITY_SECONDS",
    "LOG_LEVEL",
)


def load_settings(overrides: Optional[Mapping[str, Any]] = None) -> dict:
    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    values = {name: getattr(settings, name) for name in _SETTING_NAMES if hasattr(settings, name)}
    values["SETTINGS_MODULE"] = settings_module
    if overrides:
        values.update(overrides)
    return values


def create_app(settings: Optional[Mapping[str, Any]] = None, *, clock: Optional[Clock] = None) -> Flask:
    load_dotenv(override=False)
    values = load_settings(settings)

    app = Flask(__name__)
    app.secret_key = values.get("SECRET_KEY")
    app.config["DEBUG"] = bool(values.get("DEBUG", False))
    app.config["TESTING"] = bool(values.get("TESTING", False))

    logging.basicConfig(
        level=str(values.get("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    storage_backend = str(values.get("STORAGE_BACKEND", "mysql")).lower()
    db_config = values.get("DB_CONFIG")

    app.logger.info(
        "settings=%s storage=%s%s",
        values["SETTINGS_MODULE"],
        storage_backend,
        f" db={db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
        if storage_backend == "mysql" and db_config
        else "",
    )

    if storage_backend == "mysql" and bool(values.get("AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=SCHEMA_PATH)
        app.logger.info("schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(
        storage_backend=storage_backend,
        db_config=db_config,
        clock=clock,
        otp_digits=int(values.get("OTP_DIGITS", OTP_DIGITS)),
        otp_validity_seconds=int(values.get("OTP_VALIDITY_SECONDS", OTP_VALIDITY_SECONDS)),
    )
    app.extensions["class_attendance"] = container

    register_attendance(app, container)

    return app
