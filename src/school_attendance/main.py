from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .classes.controller import register as register_classes
from .common.logging_setup import configure_logging
from .container import build_container, build_store
from .core.exceptions import NotFoundError, ValidationError
from .docstore.bootstrap import apply_schema, list_collections
from .docstore.errors import DocumentNotFoundError, StoreError
from .docstore.store import DocumentStore
from .recap.controller import register as register_recap
from .roster.controller import register as register_roster

logger = logging.getLogger(__name__)


def _register_error_handlers(app: Flask) -> None:
    def _error(message: str, status: int):
        return jsonify({"success": False, "message": message}), status

    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return _error(str(e), 400)

    @app.errorhandler(NotFoundError)
    def handle_not_found(e: NotFoundError):
        return _error(str(e), 404)

    @app.errorhandler(DocumentNotFoundError)
    def handle_missing_document(e: DocumentNotFoundError):
        return _error(str(e), 404)

    @app.errorhandler(StoreError)
    def handle_store(e: StoreError):
        logger.error("Store write/read failed: %s", e)
        return _error("Gagal menyimpan data, silakan coba lagi", 503)


def create_app(*, store: Optional[DocumentStore] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    kind = str(getattr(settings, "DOCUMENT_STORE", "mysql"))
    db_config = getattr(settings, "DB_CONFIG", {})

    if store is None:
        if kind == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[2] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("Schema ready (collections=%d)", len(list_collections(db_config)))
        store = build_store(
            kind=kind,
            db_config=db_config,
            max_batch_writes=int(getattr(settings, "MAX_BATCH_WRITES", 500)),
        )

    logger.info("settings=%s store=%s", settings_module, type(store).__name__)

    container = build_container(store=store)
    app.extensions["container"] = container

    _register_error_handlers(app)
    register_roster(app, container)
    register_classes(app, container)
    register_attendance(app, container)
    register_recap(app, container)

    return app
