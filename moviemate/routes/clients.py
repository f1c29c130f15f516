"""/api client routes: open, inspect and close a client context."""

from __future__ import annotations

from flask import Blueprint, current_app

from moviemate.services.client_context import ClientContext
from moviemate.storage import clients, clients_lock
from moviemate.utils.auth import generate_token, now_seconds, require_client
from moviemate.utils.responses import client_response

bp = Blueprint("clients", __name__, url_prefix="/api")


@bp.post("/clients")
def open_client():
    """Create a client context and return its bearer token."""
    config = current_app.config
    token = generate_token("client")
    expires_at = now_seconds() + config["CLIENT_TTL_SECONDS"]

    client = ClientContext(
        token,
        current_app.extensions["moviemate.identity"],
        expires_at,
        scheduler=config.get("FLOW_SCHEDULER"),
        initial_splash_seconds=config["INITIAL_SPLASH_SECONDS"],
        flow_splash_seconds=config["FLOW_SPLASH_SECONDS"],
    )
    with clients_lock:
        clients[token] = client

    return client_response(
        client,
        {
            "token": token,
            "expiresAt": expires_at * 1000,
            "session": client.flow.snapshot().to_dict(),
        },
    )


@bp.get("/session")
def get_session_state():
    """Return the screen the client should currently show."""
    client, error_response = require_client()
    if error_response is not None:
        return error_response

    return client_response(client, {"session": client.flow.snapshot().to_dict()})


@bp.delete("/clients")
def close_client():
    """Close the client context, unsubscribing every controller it owns."""
    client, error_response = require_client()
    if error_response is not None:
        return error_response

    with clients_lock:
        clients.pop(client.token, None)
    client.close()
    return client_response(None, {"status": "closed"})
