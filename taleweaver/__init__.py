from __future__ import annotations

import os
from pathlib import Path

from flask import Flask

from .config import Config
from .db_utils import ensure_database_schema
from .extensions import csrf, db, migrate


BASE_DIR = Path(__file__).resolve().parent.parent


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)
    if not app.config.get("PROMPT_CONFIG_PATH"):
        app.config["PROMPT_CONFIG_PATH"] = os.environ.get(
            "PROMPT_CONFIG_PATH", str(BASE_DIR / "prompt_config.json")
        )

    register_extensions(app)
    register_blueprints(app)

    with app.app_context():
        ensure_database_schema()

    return app


def register_extensions(app: Flask) -> None:
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)


def register_blueprints(app: Flask) -> None:
    from .adventure import bp as adventure_bp

    app.register_blueprint(adventure_bp)
