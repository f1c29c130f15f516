"""Account registry and per-client identity sessions backed by MongoDB."""

from __future__ import annotations

import logging
import re
import threading
import time
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pymongo.errors import DuplicateKeyError
from werkzeug.security import check_password_hash, generate_password_hash

from moviemate import database
from moviemate.errors import ProviderError

_LOGGER = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
MIN_PASSWORD_LENGTH = 6

# Failed sign-in attempts tolerated per email inside the window.
MAX_FAILED_ATTEMPTS = 5
FAILED_ATTEMPT_WINDOW_SECONDS = 60


@dataclass(frozen=True)
class UserIdentity:
    uid: str
    email: str
    display_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"uid": self.uid, "email": self.email, "displayName": self.display_name}


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _to_identity(document: Dict[str, Any]) -> UserIdentity:
    return UserIdentity(
        uid=document["_id"],
        email=document["email"],
        display_name=document.get("display_name"),
    )


class IdentityProvider:
    """Issues and validates credentials stored in the ``accounts`` collection.

    The provider is shared by every client; it holds no notion of a
    "current" user. That lives in :class:`IdentitySession`.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._failures: Dict[str, List[float]] = {}
        self._failures_lock = threading.Lock()

    @staticmethod
    def _accounts():
        return database.get_database().accounts

    def sign_up(self, email: str, password: str) -> UserIdentity:
        """Create an account and return its identity."""
        email = normalize_email(email)
        if not EMAIL_PATTERN.fullmatch(email):
            raise ProviderError("invalid-email")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ProviderError("weak-password")

        accounts = self._accounts()
        if accounts.find_one({"email": email}, {"_id": 1}):
            raise ProviderError("email-already-in-use")

        document = {
            "_id": uuid.uuid4().hex,
            "email": email,
            "password_hash": generate_password_hash(password),
            "display_name": None,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            accounts.insert_one(document)
        except DuplicateKeyError as exc:
            raise ProviderError("email-already-in-use") from exc

        _LOGGER.info("Account created for %s", email)
        return _to_identity(document)

    def sign_in(self, email: str, password: str) -> UserIdentity:
        """Validate credentials and return the matching identity."""
        email = normalize_email(email)
        if not EMAIL_PATTERN.fullmatch(email):
            raise ProviderError("invalid-email")
        if self._is_throttled(email):
            raise ProviderError("too-many-requests")

        document = self._accounts().find_one({"email": email})
        if document is None:
            raise ProviderError("user-not-found")
        if not check_password_hash(document["password_hash"], password or ""):
            self._record_failure(email)
            raise ProviderError("invalid-credential")

        with self._failures_lock:
            self._failures.pop(email, None)
        return _to_identity(document)

    def update_display_name(self, user: UserIdentity, name: str) -> UserIdentity:
        self._accounts().update_one({"_id": user.uid}, {"$set": {"display_name": name}})
        return replace(user, display_name=name)

    def _recent_failures(self, email: str) -> List[float]:
        cutoff = self._clock() - FAILED_ATTEMPT_WINDOW_SECONDS
        recent = [stamp for stamp in self._failures.get(email, []) if stamp > cutoff]
        if recent:
            self._failures[email] = recent
        else:
            self._failures.pop(email, None)
        return recent

    def _is_throttled(self, email: str) -> bool:
        with self._failures_lock:
            return len(self._recent_failures(email)) >= MAX_FAILED_ATTEMPTS

    def _record_failure(self, email: str) -> None:
        with self._failures_lock:
            # Drop every email whose failures have all aged out of the window.
            for known in list(self._failures):
                self._recent_failures(known)
            self._failures.setdefault(email, []).append(self._clock())


AuthListener = Callable[[Optional[UserIdentity]], None]


class IdentitySession:
    """The signed-in state of one client and its change notifications."""

    def __init__(self, provider: IdentityProvider) -> None:
        self._provider = provider
        self._lock = threading.RLock()
        self._current_user: Optional[UserIdentity] = None
        self._listeners: List[AuthListener] = []

    @property
    def current_user(self) -> Optional[UserIdentity]:
        with self._lock:
            return self._current_user

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register ``listener`` and deliver the current state to it right away."""
        with self._lock:
            self._listeners.append(listener)
            current = self._current_user

        self._deliver(listener, current)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def sign_up(self, email: str, password: str) -> UserIdentity:
        """Create an account; like hosted providers, this also signs it in."""
        user = self._provider.sign_up(email, password)
        self._set_user(user)
        return user

    def sign_in(self, email: str, password: str) -> UserIdentity:
        user = self._provider.sign_in(email, password)
        self._set_user(user)
        return user

    def sign_out(self) -> None:
        self._set_user(None)

    def update_display_name(self, user: UserIdentity, name: str) -> UserIdentity:
        updated = self._provider.update_display_name(user, name)
        with self._lock:
            if self._current_user is not None and self._current_user.uid == updated.uid:
                self._current_user = updated
        return updated

    def _set_user(self, user: Optional[UserIdentity]) -> None:
        with self._lock:
            self._current_user = user
            listeners = list(self._listeners)

        for listener in listeners:
            self._deliver(listener, user)

    @staticmethod
    def _deliver(listener: AuthListener, user: Optional[UserIdentity]) -> None:
        try:
            listener(user)
        except Exception:
            _LOGGER.exception("Auth state listener failed")
