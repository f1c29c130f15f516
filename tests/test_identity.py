"""Tests for the account registry and identity sessions."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from moviemate.errors import ProviderError  # noqa: E402
from moviemate.services.identity_service import IdentityProvider, IdentitySession  # noqa: E402


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_sign_up_normalises_email_and_hashes_password(provider, mongo_db):
    user = provider.sign_up("  Viewer@Example.com ", "secret123")

    assert user.email == "viewer@example.com"
    stored = mongo_db.accounts.find_one({"_id": user.uid})
    assert stored["email"] == "viewer@example.com"
    assert stored["password_hash"] != "secret123"


@pytest.mark.parametrize(
    "email, password, code",
    [
        ("not-an-email", "secret123", "invalid-email"),
        ("viewer@example.com", "12345", "weak-password"),
    ],
)
def test_sign_up_rejects_bad_credentials(provider, email, password, code):
    with pytest.raises(ProviderError) as excinfo:
        provider.sign_up(email, password)
    assert excinfo.value.code == code


def test_sign_up_rejects_duplicate_email(provider, make_account):
    make_account("taken@example.com")

    with pytest.raises(ProviderError) as excinfo:
        provider.sign_up("TAKEN@example.com", "another1")

    assert excinfo.value.code == "email-already-in-use"
    assert excinfo.value.message == "Email already in use"


def test_sign_in_reports_reason_codes(provider, make_account):
    make_account("viewer@example.com")

    with pytest.raises(ProviderError) as missing:
        provider.sign_in("nobody@example.com", "secret123")
    with pytest.raises(ProviderError) as wrong:
        provider.sign_in("viewer@example.com", "wrong-password")

    assert missing.value.code == "user-not-found"
    assert wrong.value.code == "invalid-credential"
    assert provider.sign_in("viewer@example.com", "secret123").display_name == "Viewer"


def test_repeated_failures_are_throttled():
    clock = FakeClock()
    provider = IdentityProvider(clock=clock)
    provider.sign_up("viewer@example.com", "secret123")

    for _ in range(5):
        with pytest.raises(ProviderError):
            provider.sign_in("viewer@example.com", "nope-nope")

    with pytest.raises(ProviderError) as excinfo:
        provider.sign_in("viewer@example.com", "secret123")
    assert excinfo.value.code == "too-many-requests"

    clock.now += 61
    assert provider.sign_in("viewer@example.com", "secret123").email == "viewer@example.com"


def test_subscribe_delivers_current_state_then_changes(identity, make_account):
    make_account()
    seen = []

    unsubscribe = identity.subscribe(lambda user: seen.append(user.email if user else None))
    identity.sign_in("viewer@example.com", "secret123")
    identity.sign_out()
    unsubscribe()
    identity.sign_in("viewer@example.com", "secret123")

    assert seen == [None, "viewer@example.com", None]


def test_sign_up_signs_the_new_user_in(identity):
    user = identity.sign_up("fresh@example.com", "secret123")

    assert identity.current_user == user


def test_failing_listener_does_not_block_others(identity, make_account):
    make_account()
    seen = []

    def broken(user):
        raise RuntimeError("listener bug")

    identity.subscribe(broken)
    identity.subscribe(seen.append)
    identity.sign_in("viewer@example.com", "secret123")

    assert seen[-1].email == "viewer@example.com"


def test_display_name_update_refreshes_current_user(provider, make_account):
    make_account(name="Old Name")
    session = IdentitySession(provider)
    user = session.sign_in("viewer@example.com", "secret123")

    session.update_display_name(user, "New Name")

    assert session.current_user.display_name == "New Name"
    assert provider.sign_in("viewer@example.com", "secret123").display_name == "New Name"


def test_failures_for_other_emails_age_out():
    clock = FakeClock()
    provider = IdentityProvider(clock=clock)
    provider.sign_up("first@example.com", "secret123")
    provider.sign_up("second@example.com", "secret123")

    with pytest.raises(ProviderError):
        provider.sign_in("first@example.com", "nope-nope")
    clock.now += 61
    with pytest.raises(ProviderError):
        provider.sign_in("second@example.com", "nope-nope")

    assert set(provider._failures) == {"second@example.com"}
