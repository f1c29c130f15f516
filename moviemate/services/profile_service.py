"""Service for reading and mutating user profile documents in MongoDB.

Every write goes through a single-field atomic operator so that concurrent
changes to sibling fields of the same document never overwrite each other.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from pymongo.collection import Collection

from moviemate import database

MOVIE_LIST_FIELDS = ("favorites", "watchlist")
MOVIE_REF_KEYS = ("title", "poster_path", "vote_average", "release_date")
MIN_RATING = 1
MAX_RATING = 5


def _get_users_collection() -> Collection:
    return database.get_database()["users"]


def _check_field(field: str) -> None:
    if field not in MOVIE_LIST_FIELDS:
        raise ValueError(f"Unknown movie list field: {field!r}")


def make_movie_ref(movie_id: int, movie: Mapping[str, Any]) -> Dict[str, Any]:
    """Build the reference stored in favorites/watchlist for a movie."""
    ref: Dict[str, Any] = {"id": movie_id}
    for key in MOVIE_REF_KEYS:
        ref[key] = movie.get(key)
    return ref


def create_profile(uid: str, name: str, email: str) -> Dict[str, Any]:
    """
    Create the profile document for a freshly registered user.

    Args:
        uid: The identity provider's user id, used as document id
        name: Display name entered at signup
        email: Account email

    Returns:
        The stored document
    """
    document = {
        "_id": uid,
        "userId": uid,
        "name": name,
        "email": email,
        "createdAt": datetime.now(timezone.utc).isoformat(),
        "favorites": [],
        "watchlist": [],
        "ratings": {},
    }
    _get_users_collection().replace_one({"_id": uid}, document, upsert=True)
    return document


def get_profile(uid: str) -> Optional[Dict[str, Any]]:
    """Return the profile document for ``uid`` or None if absent."""
    return _get_users_collection().find_one({"_id": uid})


def contains_movie(profile: Mapping[str, Any], field: str, movie_id: int) -> bool:
    _check_field(field)
    return any(item.get("id") == movie_id for item in profile.get(field) or [])


def rating_for(profile: Mapping[str, Any], movie_id: int) -> int:
    ratings = profile.get("ratings") or {}
    try:
        return int(ratings.get(str(movie_id)) or 0)
    except (TypeError, ValueError):
        return 0


def add_movie(uid: str, field: str, movie_ref: Mapping[str, Any]) -> bool:
    """
    Add a movie to a list field unless a movie with the same id is present.

    Returns:
        True if the movie was added, False if it was already there
    """
    _check_field(field)
    result = _get_users_collection().update_one(
        {"_id": uid, f"{field}.id": {"$ne": movie_ref["id"]}},
        {"$push": {field: dict(movie_ref)}},
    )
    return result.modified_count > 0


def remove_movie(uid: str, field: str, movie_id: int) -> bool:
    """
    Remove every entry with ``movie_id`` from a list field.

    Returns:
        True if something was removed
    """
    _check_field(field)
    result = _get_users_collection().update_one(
        {"_id": uid},
        {"$pull": {field: {"id": movie_id}}},
    )
    return result.modified_count > 0


def set_rating(uid: str, movie_id: int, value: int) -> None:
    """Overwrite a single key of the ratings map."""
    if isinstance(value, bool) or not isinstance(value, int) or not MIN_RATING <= value <= MAX_RATING:
        raise ValueError(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")
    _get_users_collection().update_one(
        {"_id": uid},
        {"$set": {f"ratings.{movie_id}": value}},
    )
