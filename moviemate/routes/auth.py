"""/api/auth routes handling signup, sign-in and sign-out."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, request

from moviemate.errors import MovieMateError
from moviemate.services.session_flow import AuthMode
from moviemate.utils.auth import require_client
from moviemate.utils.responses import client_response, error_response

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(client) -> Dict[str, Any]:
    return {"session": client.flow.snapshot().to_dict()}


@bp.post("/signup")
def signup():
    """Register an account, create its profile and return to the sign-in form."""
    client, failure = require_client()
    if failure is not None:
        return failure

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    try:
        user = client.signup(
            str(payload.get("name", "")),
            str(payload.get("email", "")),
            str(payload.get("password", "")),
            str(payload.get("confirmPassword", "")),
        )
    except MovieMateError as e:
        return error_response(client, e)
    except Exception:
        current_app.logger.exception("Unexpected error during signup")
        client.flow.cancel_flow(AuthMode.SIGNUP)
        return client_response(client, {"error": "InternalError", "message": "Signup failed."}, 500)

    body = _session_payload(client)
    body["user"] = user.to_dict()
    return client_response(client, body)


@bp.post("/signin")
def signin():
    """Validate credentials and sign the client in."""
    client, failure = require_client()
    if failure is not None:
        return failure

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    try:
        user = client.signin(str(payload.get("email", "")), str(payload.get("password", "")))
    except MovieMateError as e:
        return error_response(client, e)

    body = _session_payload(client)
    body["user"] = user.to_dict()
    return client_response(client, body)


@bp.post("/signout")
def signout():
    """Sign the current user out."""
    client, failure = require_client()
    if failure is not None:
        return failure

    try:
        client.signout()
    except MovieMateError as e:
        return error_response(client, e)

    return client_response(client, _session_payload(client))


@bp.post("/mode")
def switch_mode():
    """Switch the authentication screen between its sign-in and sign-up forms."""
    client, failure = require_client()
    if failure is not None:
        return failure

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    try:
        mode = AuthMode(str(payload.get("mode", "")).lower())
    except ValueError:
        return client_response(
            client,
            {"error": "ValidationError", "message": "Mode must be 'signin' or 'signup'."},
            400,
        )

    state = client.flow.switch_auth_mode(mode)
    return client_response(client, {"session": state.to_dict()})
