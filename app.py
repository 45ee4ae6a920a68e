import logging
from collections.abc import Mapping

from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate

from config import Config
from models import db
from routes import register_routes
from storage import MemStorage, SqlStorage, seed_menu


def _build_storage(config):
    """Construct the repository selected by STORAGE_BACKEND."""
    if config.STORAGE_BACKEND == "memory":
        return MemStorage(seed=config.SEED_MENU)
    if config.STORAGE_BACKEND == "sql":
        return SqlStorage(db)
    raise ValueError(f"Unknown STORAGE_BACKEND: {config.STORAGE_BACKEND!r}")


def _init_sql(app, config, storage):
    """Bind the SQL repository's database to ``app``, create tables, seed."""
    storage.db.init_app(app)
    Migrate(app, storage.db)
    with app.app_context():
        storage.db.create_all()
        if config.SEED_MENU and storage.count_menu_items() == 0:
            seed_menu(storage)


def create_app(config=None, storage=None):
    """
    Build the API. ``config`` is a Config or a mapping of overrides;
    ``storage`` lets callers inject an already-built repository.
    """
    if config is None:
        config = Config()
    elif isinstance(config, Mapping):
        config = Config(**config)

    app = Flask(__name__)
    app.config.from_mapping(config.as_dict())
    app.json.sort_keys = False
    app.logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

    CORS(app, origins=config.CORS_ORIGINS)

    if storage is None:
        storage = _build_storage(config)
    if storage.backend == "sql":
        _init_sql(app, config, storage)
    app.extensions["storage"] = storage
    app.logger.info("Using %s storage", storage.backend)

    register_routes(app, storage)

    @app.errorhandler(404)
    def _not_found(_e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def _method_not_allowed(_e):
        return jsonify({"error": "Method not allowed"}), 405

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=app.config["PORT"], debug=True)
