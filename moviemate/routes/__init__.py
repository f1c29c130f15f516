"""Blueprint registration helper."""

from __future__ import annotations

from flask import Flask, jsonify

from .auth import bp as auth_bp
from .clients import bp as clients_bp
from .movies import bp as movies_bp
from .tracking import bp as tracking_bp


def register_routes(app: Flask) -> None:
    """Register all application blueprints on the provided Flask app."""
    app.register_blueprint(clients_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(movies_bp)
    app.register_blueprint(tracking_bp)

    @app.get("/")
    def index():
        return jsonify(message="Hello from MovieMate API"), 200
