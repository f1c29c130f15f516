"""JSON response helpers that attach pending notifications."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import jsonify

from moviemate.errors import MovieMateError, ProviderError

STATUS_BY_KIND = {
    "Unauthenticated": 401,
    "ProfileNotFound": 404,
    "ValidationError": 400,
    "ProviderError": 400,
    "NetworkError": 502,
    "ToggleInProgress": 409,
}

STATUS_BY_PROVIDER_CODE = {
    "too-many-requests": 429,
    "user-not-found": 401,
    "invalid-credential": 401,
    "wrong-password": 401,
}


def _notifications(client: Optional[Any]):
    if client is None:
        return []
    return [notification.to_dict() for notification in client.notifier.drain()]


def client_response(client: Optional[Any], payload: Optional[Dict[str, Any]] = None, status: int = 200):
    """Return ``payload`` as JSON together with the client's queued notifications."""
    body = dict(payload or {})
    body["notifications"] = _notifications(client)
    return jsonify(body), status


def error_response(client: Optional[Any], error: MovieMateError):
    """Translate a service error into its JSON error response."""
    body: Dict[str, Any] = {"error": error.kind, "message": error.message}
    status = STATUS_BY_KIND.get(error.kind, 500)

    if isinstance(error, ProviderError):
        body["code"] = error.code
        status = STATUS_BY_PROVIDER_CODE.get(error.code, status)
    errors = getattr(error, "errors", None)
    if errors:
        body["errors"] = errors

    return client_response(client, body, status)
