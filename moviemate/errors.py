"""Error taxonomy shared by the services and translated to HTTP by the routes.

These exceptions never import Flask; routes catch them at the call site and
turn them into JSON error responses.
"""

from __future__ import annotations

from typing import Dict, Optional

# Messages shown to the user for identity provider reason codes.
PROVIDER_MESSAGES: Dict[str, str] = {
    "user-not-found": "No account found with this email",
    "wrong-password": "Incorrect password",
    "invalid-credential": "Invalid email or password",
    "invalid-email": "Invalid email address",
    "too-many-requests": "Too many failed attempts. Please try again later",
    "email-already-in-use": "Email already in use",
    "weak-password": "Weak password, please choose a stronger password",
}

UNEXPECTED_MESSAGE = "An unexpected error occurred. Please try again."


class MovieMateError(Exception):
    """Base class for every error the service layer raises on purpose."""

    kind = "MovieMateError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind


class Unauthenticated(MovieMateError):
    """A mutating operation was attempted without a session user."""

    kind = "Unauthenticated"


class ProfileNotFound(MovieMateError):
    """The session user has no profile document."""

    kind = "ProfileNotFound"


class ValidationError(MovieMateError):
    """Malformed input detected locally, before any network call."""

    kind = "ValidationError"

    def __init__(self, errors: Dict[str, str], message: str = "") -> None:
        self.errors = dict(errors)
        super().__init__(message or next(iter(self.errors.values()), "Invalid input"))


class ProviderError(MovieMateError):
    """The identity provider rejected the operation."""

    kind = "ProviderError"

    def __init__(self, code: str, message: Optional[str] = None) -> None:
        self.code = code
        super().__init__(message or PROVIDER_MESSAGES.get(code, UNEXPECTED_MESSAGE))


class NetworkError(MovieMateError):
    """A document store or telemetry call failed."""

    kind = "NetworkError"


class ToggleInProgress(MovieMateError):
    """A toggle was requested while the previous one is still running."""

    kind = "ToggleInProgress"
