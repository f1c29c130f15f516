"""Per-movie favorite, watchlist and rating controllers.

Each controller mirrors one field of the signed-in user's profile document
for a single movie. Controllers follow the identity session: every sign-in
or sign-out re-runs the query so one account's state never leaks into
another's.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pymongo.errors import PyMongoError

from moviemate.errors import NetworkError, ProfileNotFound, ToggleInProgress, Unauthenticated, ValidationError
from moviemate.services import profile_service
from moviemate.services.identity_service import IdentitySession, UserIdentity
from moviemate.services.notifications import Notifier

_LOGGER = logging.getLogger(__name__)

ToggleValue = Union[bool, int]


@dataclass(frozen=True)
class ToggleState:
    value: ToggleValue
    is_loading: bool


class ToggleController:
    """Base class: query, loading flag, serialisation and stale-result guard."""

    kind = "toggle"
    zero_value: ToggleValue = False
    sign_in_prompt = "Please sign in"
    query_error = "Error checking status"
    update_error = "Error updating"

    def __init__(
        self,
        movie_id: int,
        identity: IdentitySession,
        notifier: Notifier,
        profiles: Any = profile_service,
    ) -> None:
        self.movie_id = movie_id
        self._identity = identity
        self._notifier = notifier
        self._profiles = profiles
        self._state_lock = threading.Lock()
        self._busy = threading.Lock()
        self._value: ToggleValue = self.zero_value
        self._is_loading = True
        # Bumped on every auth change; results from older generations are dropped.
        self._generation = 0
        self._closed = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def state(self) -> ToggleState:
        with self._state_lock:
            return ToggleState(self._value, self._is_loading)

    def start(self) -> None:
        """Subscribe to the identity session; the first delivery runs the query."""
        if self._unsubscribe is None:
            self._unsubscribe = self._identity.subscribe(self._on_auth_change)

    def close(self) -> None:
        with self._state_lock:
            self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_auth_change(self, user: Optional[UserIdentity]) -> None:
        with self._state_lock:
            if self._closed:
                return
            self._generation += 1
            if user is None:
                self._value = self.zero_value
                self._is_loading = False
                return
        self.query()

    def query(self) -> ToggleValue:
        """Load the current value from the profile document; never raises."""
        with self._state_lock:
            generation = self._generation
        user = self._identity.current_user
        if user is None:
            self._apply(generation, self.zero_value)
            return self.zero_value

        value = self.zero_value
        try:
            profile = self._profiles.get_profile(user.uid)
            if profile is not None:
                value = self._read(profile)
        except PyMongoError:
            _LOGGER.exception("%s: %s for movie %s", self.query_error, self.kind, self.movie_id)
            self._notifier.error(self.query_error)

        self._apply(generation, value)
        return value

    def _read(self, profile: Mapping[str, Any]) -> ToggleValue:
        raise NotImplementedError

    def _apply(self, generation: int, value: ToggleValue) -> None:
        with self._state_lock:
            if self._closed or generation != self._generation:
                _LOGGER.debug("Ignoring stale %s result for movie %s", self.kind, self.movie_id)
                return
            self._value = value
            self._is_loading = False

    def _require_user(self) -> UserIdentity:
        user = self._identity.current_user
        if user is None:
            self._notifier.error(self.sign_in_prompt)
            raise Unauthenticated(self.sign_in_prompt)
        return user

    def _mutate(self, write: Callable[[UserIdentity, Dict[str, Any]], ToggleValue]) -> ToggleValue:
        """Run one read-modify-write cycle against the user's profile.

        ``write`` receives the user and the freshly fetched document and
        returns the new value after persisting it.
        """
        user = self._require_user()
        if not self._busy.acquire(blocking=False):
            raise ToggleInProgress(f"A {self.kind} update is already in progress")

        with self._state_lock:
            generation = self._generation
            self._is_loading = True

        try:
            try:
                profile = self._profiles.get_profile(user.uid)
                if profile is None:
                    self._notifier.error("User document not found")
                    raise ProfileNotFound(f"No profile document for user {user.uid}")
                value = write(user, profile)
            except PyMongoError as exc:
                _LOGGER.exception("%s for movie %s", self.update_error, self.movie_id)
                self._notifier.error(self.update_error)
                raise NetworkError(self.update_error) from exc

            self._apply(generation, value)
            return value
        finally:
            with self._state_lock:
                if not self._closed and generation == self._generation:
                    self._is_loading = False
            self._busy.release()


class MovieListToggle(ToggleController):
    """Membership of the movie in one of the profile's movie lists."""

    field = ""
    added_message = ""
    removed_message = ""
    added_icon: Optional[str] = None
    removed_icon: Optional[str] = None

    def _read(self, profile: Mapping[str, Any]) -> bool:
        return profile_service.contains_movie(profile, self.field, self.movie_id)

    def toggle(self, movie: Mapping[str, Any]) -> bool:
        """Add the movie when absent from the list, remove it when present.

        Returns:
            The new membership
        """

        def write(user: UserIdentity, profile: Dict[str, Any]) -> bool:
            if profile_service.contains_movie(profile, self.field, self.movie_id):
                self._profiles.remove_movie(user.uid, self.field, self.movie_id)
                return False
            ref = profile_service.make_movie_ref(self.movie_id, movie)
            self._profiles.add_movie(user.uid, self.field, ref)
            return True

        added = self._mutate(write)
        if added:
            self._notifier.success(self.added_message, icon=self.added_icon)
        else:
            self._notifier.success(self.removed_message, icon=self.removed_icon)
        return added


class FavoriteToggle(MovieListToggle):
    kind = "favorite"
    field = "favorites"
    sign_in_prompt = "Please sign in to add favorites"
    query_error = "Error checking favorite status"
    update_error = "Error updating favorites"
    added_message = "Added to favorites"
    removed_message = "Removed from favorites"
    added_icon = "❤️"
    removed_icon = "\U0001f494"


class WatchlistToggle(MovieListToggle):
    kind = "watchlist"
    field = "watchlist"
    sign_in_prompt = "Please sign in to manage watchlist"
    query_error = "Error checking watchlist status"
    update_error = "Error updating watchlist"
    added_message = "Added to watchlist"
    removed_message = "Removed from watchlist"
    added_icon = "\U0001f516"
    removed_icon = "\U0001f4cb"


class RatingToggle(ToggleController):
    kind = "rating"
    zero_value = 0
    sign_in_prompt = "Please sign in to rate movies"
    query_error = "Error fetching rating"
    update_error = "Error updating rating"

    def _read(self, profile: Mapping[str, Any]) -> int:
        return profile_service.rating_for(profile, self.movie_id)

    def set_rating(self, rating: Any) -> int:
        """Store ``rating`` (1..5) for the movie and return it."""
        self._require_user()
        if not _is_valid_rating(rating):
            raise ValidationError(
                {"rating": f"Rating must be a whole number between "
                           f"{profile_service.MIN_RATING} and {profile_service.MAX_RATING}"}
            )

        def write(user: UserIdentity, profile: Dict[str, Any]) -> int:
            self._profiles.set_rating(user.uid, self.movie_id, rating)
            return rating

        value = self._mutate(write)
        self._notifier.success("Rating updated!", icon="⭐")
        return value


def _is_valid_rating(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and profile_service.MIN_RATING <= value <= profile_service.MAX_RATING
    )


class MovieView:
    """The three controllers of one mounted movie detail screen."""

    def __init__(self, movie_id: int, identity: IdentitySession, notifier: Notifier,
                 profiles: Any = profile_service) -> None:
        self.movie_id = movie_id
        self.favorite = FavoriteToggle(movie_id, identity, notifier, profiles)
        self.watchlist = WatchlistToggle(movie_id, identity, notifier, profiles)
        self.rating = RatingToggle(movie_id, identity, notifier, profiles)

    def _controllers(self):
        return (self.favorite, self.watchlist, self.rating)

    def start(self) -> None:
        for controller in self._controllers():
            controller.start()

    def close(self) -> None:
        for controller in self._controllers():
            controller.close()

    def snapshot(self) -> Dict[str, Any]:
        favorite = self.favorite.state
        watchlist = self.watchlist.state
        rating = self.rating.state
        return {
            "movieId": self.movie_id,
            "isFavorite": favorite.value,
            "isInWatchlist": watchlist.value,
            "userRating": rating.value,
            "isLoading": {
                "favorite": favorite.is_loading,
                "watchlist": watchlist.is_loading,
                "rating": rating.is_loading,
            },
        }
