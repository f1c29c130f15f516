"""Service layer modules for the MovieMate API."""

from . import (
    client_context,
    identity_service,
    notifications,
    profile_service,
    session_flow,
    toggle_service,
    tracking_service,
)

__all__ = [
    "client_context",
    "identity_service",
    "notifications",
    "profile_service",
    "session_flow",
    "toggle_service",
    "tracking_service",
]
