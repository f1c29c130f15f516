"""Authentication helpers for client tokens and context lookup."""

from __future__ import annotations

import secrets
import time
from typing import Any, Optional, Tuple

from flask import Flask, current_app, jsonify, request

from moviemate.storage import clients, clients_lock

# Client context expiry window (seconds).
CLIENT_TTL_SECONDS = 24 * 60 * 60


def now_seconds() -> int:
    """Return the current UNIX timestamp in seconds."""
    return int(time.time())


def generate_token(prefix: str = "client") -> str:
    """Return a random token with the given prefix suitable for in-memory keys."""
    return f"{prefix}_{secrets.token_urlsafe(24)}"


def prune_expired() -> int:
    """Close and drop client contexts whose token has expired."""
    current = now_seconds()
    with clients_lock:
        expired = [token for token, client in clients.items() if client.expires_at <= current]
        contexts = [clients.pop(token) for token in expired]

    for context in contexts:
        context.close()
    return len(contexts)


def require_client() -> Tuple[Optional[Any], Optional[Any]]:
    """Resolve the Bearer token of the request to its client context."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None, (jsonify(error="Unauthenticated", message="Missing client token."), 401)

    token = auth_header[7:].strip()
    with clients_lock:
        client = clients.get(token)

    if client is None:
        return None, (jsonify(error="Unauthenticated", message="Invalid or expired client token."), 401)

    if client.expires_at <= now_seconds():
        with clients_lock:
            clients.pop(token, None)
        client.close()
        return None, (jsonify(error="Unauthenticated", message="Client token expired."), 401)

    return client, None


def register_client_cleanup(app: Flask) -> None:
    """Attach a before-request handler that drops expired client contexts."""

    @app.before_request  # pragma: no cover - trivial wiring
    def _cleanup_state() -> None:
        removed = prune_expired()
        if removed:
            current_app.logger.debug(f"Closed {removed} expired client context(s)")
