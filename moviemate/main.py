"""Flask application setup and blueprint wiring."""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from flask import Flask
from flask_cors import CORS

from moviemate import database
from moviemate.routes import register_routes
from moviemate.services.identity_service import IdentityProvider
from moviemate.services.session_flow import FLOW_SPLASH_SECONDS, INITIAL_SPLASH_SECONDS
from moviemate.utils.auth import CLIENT_TTL_SECONDS, register_client_cleanup


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Configure and return the Flask application instance."""
    app = Flask(__name__)
    CORS(app, resources={r"/api/*": {"origins": os.getenv("CORS_ORIGINS", "*")}})

    app.config["CLIENT_TTL_SECONDS"] = int(os.getenv("CLIENT_TTL_SECONDS", CLIENT_TTL_SECONDS))
    app.config["INITIAL_SPLASH_SECONDS"] = float(
        os.getenv("INITIAL_SPLASH_SECONDS", INITIAL_SPLASH_SECONDS)
    )
    app.config["FLOW_SPLASH_SECONDS"] = float(os.getenv("FLOW_SPLASH_SECONDS", FLOW_SPLASH_SECONDS))
    # None selects the threading.Timer scheduler.
    app.config["FLOW_SCHEDULER"] = None
    if overrides:
        app.config.update(overrides)

    app.extensions["moviemate.identity"] = IdentityProvider()

    register_client_cleanup(app)
    register_routes(app)

    try:
        database.create_indexes()
        app.logger.info("MongoDB indexes created successfully")
    except Exception as e:
        app.logger.warning(f"Failed to create MongoDB indexes: {e}")

    return app
