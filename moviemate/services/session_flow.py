"""Decides which top-level screen a client sees.

The screen follows auth-change notifications from the identity session.
Two transient flow flags tell apart sign-outs that look identical from the
provider's side: the one that closes a fresh signup and the one the user
asked for.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from moviemate.services.identity_service import IdentitySession, UserIdentity

_LOGGER = logging.getLogger(__name__)

LOADING_MESSAGE = "Loading your movie experience..."
CREATING_ACCOUNT_MESSAGE = "Creating your account..."
ACCOUNT_CREATED_MESSAGE = "Account created successfully! Redirecting to sign in..."
SIGNING_OUT_MESSAGE = "Signing out... See you soon!"

INITIAL_SPLASH_SECONDS = 1.5
FLOW_SPLASH_SECONDS = 2.5


class Screen(str, Enum):
    SPLASH = "splash"
    AUTH = "auth"
    MAIN = "main"


class AuthMode(str, Enum):
    SIGNIN = "signin"
    SIGNUP = "signup"


class AuthFlow(str, Enum):
    NORMAL = "normal"
    SIGNUP_IN_PROGRESS = "signup_in_progress"
    SIGNOUT_IN_PROGRESS = "signout_in_progress"


@dataclass(frozen=True)
class ScreenState:
    screen: Screen
    message: Optional[str]
    auth_mode: AuthMode
    auth_flow: AuthFlow
    user: Optional[UserIdentity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screen": self.screen.value,
            "message": self.message,
            "authMode": self.auth_mode.value,
            "authFlow": self.auth_flow.value,
            "user": self.user.to_dict() if self.user else None,
        }


Scheduler = Callable[[float, Callable[[], None]], Any]
ScreenListener = Callable[[ScreenState], None]


def thread_timer_scheduler(delay: float, callback: Callable[[], None]) -> threading.Timer:
    """Run ``callback`` after ``delay`` seconds on a daemon timer thread."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class SessionFlowController:
    """Screen state machine for one client: SPLASH, AUTH(mode) or MAIN."""

    def __init__(
        self,
        identity: IdentitySession,
        scheduler: Optional[Scheduler] = None,
        initial_splash_seconds: float = INITIAL_SPLASH_SECONDS,
        flow_splash_seconds: float = FLOW_SPLASH_SECONDS,
    ) -> None:
        self._identity = identity
        self._schedule = scheduler or thread_timer_scheduler
        self._initial_splash_seconds = initial_splash_seconds
        self._flow_splash_seconds = flow_splash_seconds

        self._lock = threading.RLock()
        self._screen = Screen.SPLASH
        self._message: Optional[str] = LOADING_MESSAGE
        self._mode = AuthMode.SIGNIN
        self._flow = AuthFlow.NORMAL
        self._user: Optional[UserIdentity] = None
        self._resolved = False
        self._holding = False
        self._closed = False

        self._timer: Any = None
        self._timer_seq = 0
        self._listeners: List[ScreenListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def auth_flow(self) -> AuthFlow:
        with self._lock:
            return self._flow

    def snapshot(self) -> ScreenState:
        with self._lock:
            return ScreenState(self._screen, self._message, self._mode, self._flow, self._user)

    def add_listener(self, listener: ScreenListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._identity.subscribe(self._on_auth_change)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._cancel_timer()
            self._listeners.clear()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def begin_signup(self) -> None:
        """Mark a signup as running; must be called before the account is created."""
        with self._lock:
            _LOGGER.debug("Signup started")
            self._flow = AuthFlow.SIGNUP_IN_PROGRESS
            self._set_screen(Screen.SPLASH, CREATING_ACCOUNT_MESSAGE)

    def begin_signout(self) -> None:
        with self._lock:
            _LOGGER.debug("Signout started")
            self._flow = AuthFlow.SIGNOUT_IN_PROGRESS

    def cancel_flow(self, mode: AuthMode = AuthMode.SIGNIN) -> None:
        """Abandon a signup or signout that failed and show the usual screen again."""
        with self._lock:
            if self._flow is AuthFlow.NORMAL:
                return
            _LOGGER.debug("Cancelling %s", self._flow.value)
            self._cancel_timer()
            self._flow = AuthFlow.NORMAL
            self._mode = mode
            self._reveal()

    def switch_auth_mode(self, mode: AuthMode) -> ScreenState:
        with self._lock:
            self._mode = mode
            if self._screen is Screen.AUTH:
                self._set_screen(Screen.AUTH, None)
            return self.snapshot()

    def _on_auth_change(self, user: Optional[UserIdentity]) -> None:
        with self._lock:
            if self._closed:
                return
            _LOGGER.debug(
                "Auth state changed: %s (flow: %s)",
                user.email if user else None,
                self._flow.value,
            )

            if self._flow is AuthFlow.SIGNUP_IN_PROGRESS:
                if user is not None:
                    # The provider signs a new account in; wait for the sign-out.
                    return
                self._user = None
                self._set_screen(Screen.SPLASH, ACCOUNT_CREATED_MESSAGE)
                self._start_timer(self._flow_splash_seconds, self._finish_flow)
                return

            if self._flow is AuthFlow.SIGNOUT_IN_PROGRESS:
                if user is None:
                    self._user = None
                    self._set_screen(Screen.SPLASH, SIGNING_OUT_MESSAGE)
                    self._start_timer(self._flow_splash_seconds, self._finish_flow)
                return

            self._user = user
            if not self._resolved:
                self._resolved = True
                self._holding = True
                self._start_timer(self._initial_splash_seconds, self._finish_initial_hold)
            elif not self._holding:
                self._reveal()

    def _finish_initial_hold(self) -> None:
        with self._lock:
            self._holding = False
            if self._flow is AuthFlow.NORMAL:
                self._reveal()

    def _finish_flow(self) -> None:
        with self._lock:
            self._flow = AuthFlow.NORMAL
            self._mode = AuthMode.SIGNIN
            self._holding = False
            self._set_screen(Screen.AUTH, None)

    def _reveal(self) -> None:
        if self._user is not None:
            self._set_screen(Screen.MAIN, None)
        else:
            self._set_screen(Screen.AUTH, None)

    def _set_screen(self, screen: Screen, message: Optional[str]) -> None:
        self._screen = screen
        self._message = message
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                _LOGGER.exception("Screen listener failed")

    def _start_timer(self, delay: float, action: Callable[[], None]) -> None:
        self._cancel_timer()
        self._timer_seq += 1
        seq = self._timer_seq

        def fire() -> None:
            with self._lock:
                if self._closed or seq != self._timer_seq:
                    return
                self._timer = None
                action()

        self._timer = self._schedule(delay, fire)

    def _cancel_timer(self) -> None:
        self._timer_seq += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
