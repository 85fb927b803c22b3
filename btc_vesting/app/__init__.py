"""Application factory and app-wide configuration."""

import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from btc_vesting.app.api.routes import api_bp
from btc_vesting.config import Settings
from btc_vesting.core.worker import VestingWorker


def create_app(settings: Optional[Settings] = None) -> Flask:
    """Build the Flask app instance."""
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    app.config["TESTING"] = settings.testing
    app.config["SETTINGS"] = settings

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    CORS(
        app,
        resources={r"/api/*": {"origins": list(settings.cors_origins)}},
        supports_credentials=True,
    )

    app.extensions["vesting_worker"] = VestingWorker(
        max_workers=settings.worker_threads,
        timeout_seconds=settings.worker_timeout_seconds,
    )

    app.register_blueprint(api_bp, url_prefix="/api")
    return app
