"""Form validation for the sign-in and sign-up screens."""

from __future__ import annotations

import re
from typing import Dict

from moviemate.errors import ValidationError

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
MIN_PASSWORD_LENGTH = 6


def _check_credentials(email: str, password: str, errors: Dict[str, str]) -> None:
    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.search(email):
        errors["email"] = "Email is invalid"

    if not password:
        errors["password"] = "Password is required"
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"


def validate_signin(email: str, password: str) -> None:
    """Raise ValidationError listing every invalid sign-in field."""
    errors: Dict[str, str] = {}
    _check_credentials(email, password, errors)
    if errors:
        raise ValidationError(errors)


def validate_signup(name: str, email: str, password: str, confirm_password: str) -> None:
    """Raise ValidationError listing every invalid sign-up field."""
    errors: Dict[str, str] = {}
    if not (name or "").strip():
        errors["name"] = "Name is required"

    _check_credentials(email, password, errors)

    if not confirm_password:
        errors["confirmPassword"] = "Please confirm your password"
    elif password != confirm_password:
        errors["confirmPassword"] = "Passwords do not match"

    if errors:
        raise ValidationError(errors)
