"""/api/track endpoint receiving interaction events."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from pymongo.errors import PyMongoError

from moviemate.services import tracking_service

bp = Blueprint("tracking", __name__, url_prefix="/api")


@bp.post("/track")
def track():
    """Store an event after stamping it with the server time."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    missing = tracking_service.missing_fields(payload)
    if missing:
        message = f"Missing required fields: {', '.join(missing)}"
        return message, 400, {"Content-Type": "text/plain; charset=utf-8"}

    try:
        event = tracking_service.record_event(
            str(payload["user_id"]),
            str(payload["event_type"]),
            payload["event_data"],
        )
    except PyMongoError:
        current_app.logger.exception("Failed to store tracking event")
        return "Failed to store event", 502, {"Content-Type": "text/plain; charset=utf-8"}

    return jsonify(status="ok", event=event), 200
