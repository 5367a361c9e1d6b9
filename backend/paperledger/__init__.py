# backend/paperledger/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_object=None, storage=None) -> Flask:
    """
    Application factory.

    config_object: config class/object (defaults to Config)
    storage: optional StorageMedium overriding LEDGER_STORAGE, e.g. an
             InMemoryStorage shared by a test
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    logging.getLogger(__name__).setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services.collection_store import CollectionStore, build_storage
    from .services.registry import EXTENSION_KEY, build_ledgers

    medium = storage if storage is not None else build_storage(app.config["LEDGER_STORAGE"])
    app.extensions[EXTENSION_KEY] = build_ledgers(CollectionStore(medium), app.config)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.inventory import inventory_bp
    from .routes.cashflow import cashflow_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(cashflow_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
