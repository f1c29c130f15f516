"""Everything one connected client owns: identity, screen flow and movie views."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from pymongo.errors import PyMongoError

from moviemate.errors import UNEXPECTED_MESSAGE, NetworkError, ProviderError, Unauthenticated, ValidationError
from moviemate.services import profile_service, tracking_service
from moviemate.services.identity_service import IdentityProvider, IdentitySession, UserIdentity, normalize_email
from moviemate.services.notifications import WELCOME_DURATION_MS, Notifier
from moviemate.services.session_flow import (
    FLOW_SPLASH_SECONDS,
    INITIAL_SPLASH_SECONDS,
    AuthMode,
    Scheduler,
    SessionFlowController,
)
from moviemate.services.toggle_service import MovieView
from moviemate.utils.validation import validate_signin, validate_signup

_LOGGER = logging.getLogger(__name__)


class ClientContext:
    """State of one client, addressed by its bearer token."""

    def __init__(
        self,
        token: str,
        provider: IdentityProvider,
        expires_at: int,
        scheduler: Optional[Scheduler] = None,
        initial_splash_seconds: float = INITIAL_SPLASH_SECONDS,
        flow_splash_seconds: float = FLOW_SPLASH_SECONDS,
    ) -> None:
        self.token = token
        self.expires_at = expires_at
        self.notifier = Notifier()
        self.identity = IdentitySession(provider)
        self.flow = SessionFlowController(
            self.identity,
            scheduler=scheduler,
            initial_splash_seconds=initial_splash_seconds,
            flow_splash_seconds=flow_splash_seconds,
        )
        # Fallback user id for tracking after the session user is gone.
        self.last_user_id: Optional[str] = None
        self._views: Dict[int, MovieView] = {}
        self._views_lock = threading.Lock()
        self._unsubscribe = self.identity.subscribe(self._remember_user)
        self.flow.start()

    def _remember_user(self, user: Optional[UserIdentity]) -> None:
        if user is not None:
            self.last_user_id = user.uid

    @property
    def current_user(self) -> Optional[UserIdentity]:
        return self.identity.current_user

    def tracking_user_id(self) -> Optional[str]:
        user = self.identity.current_user
        return user.uid if user else self.last_user_id

    def track(self, event_type: str, event_data: Dict[str, Any]) -> bool:
        return tracking_service.track_event(
            self.tracking_user_id(), event_type, event_data, notifier=self.notifier
        )

    # -- movie views -------------------------------------------------------

    def mount(self, movie_id: int) -> MovieView:
        """Return the view for ``movie_id``, creating and starting it if needed."""
        with self._views_lock:
            view = self._views.get(movie_id)
            if view is not None:
                return view
            view = MovieView(movie_id, self.identity, self.notifier)
            self._views[movie_id] = view
        view.start()
        return view

    def get_view(self, movie_id: int) -> Optional[MovieView]:
        with self._views_lock:
            return self._views.get(movie_id)

    def unmount(self, movie_id: int) -> bool:
        with self._views_lock:
            view = self._views.pop(movie_id, None)
        if view is None:
            return False
        view.close()
        return True

    # -- authentication ----------------------------------------------------

    def signup(self, name: str, email: str, password: str, confirm_password: str) -> UserIdentity:
        """Create an account and its profile, then leave the user signed out.

        The flow flag is raised before the provider is called so the
        provider's automatic sign-in and our sign-out are not mistaken for
        a normal session.
        """
        if self.identity.current_user is not None:
            raise ValidationError({"email": "Sign out before creating another account"})
        validate_signup(name, email, password, confirm_password)
        name = name.strip()

        self.flow.begin_signup()
        self.notifier.loading("Creating your account...")
        try:
            user = self.identity.sign_up(email, password)
            user = self.identity.update_display_name(user, name)
            profile_service.create_profile(user.uid, name, normalize_email(email))
        except ProviderError as e:
            _LOGGER.info(f"Signup rejected: {e.code}")
            self.notifier.error(e.message)
            self._abort_signup()
            raise
        except PyMongoError as e:
            _LOGGER.exception("Error creating user")
            self.notifier.error(UNEXPECTED_MESSAGE)
            self._abort_signup()
            raise NetworkError(UNEXPECTED_MESSAGE) from e

        self.notifier.success("Account created successfully!", icon="\U0001f389")
        self.identity.sign_out()
        return user

    def _abort_signup(self) -> None:
        self.flow.cancel_flow(AuthMode.SIGNUP)
        if self.identity.current_user is not None:
            self.identity.sign_out()

    def signin(self, email: str, password: str) -> UserIdentity:
        validate_signin(email, password)
        try:
            user = self.identity.sign_in(email, password)
        except ProviderError as e:
            _LOGGER.info(f"Sign-in rejected: {e.code}")
            self.notifier.error(e.message)
            raise
        except PyMongoError as e:
            _LOGGER.exception("Login error")
            self.notifier.error(UNEXPECTED_MESSAGE)
            raise NetworkError(UNEXPECTED_MESSAGE) from e

        self.notifier.success(
            f"Welcome back, {user.display_name or user.email}!",
            icon="\U0001f389",
            duration_ms=WELCOME_DURATION_MS,
        )
        return user

    def signout(self) -> None:
        if self.identity.current_user is None:
            raise Unauthenticated("Not signed in")
        self.flow.begin_signout()
        self.identity.sign_out()
        self.notifier.info("Signed out. See you soon!", icon="\U0001f44b")

    def close(self) -> None:
        with self._views_lock:
            views = list(self._views.values())
            self._views.clear()
        for view in views:
            view.close()
        self.flow.close()
        self._unsubscribe()
