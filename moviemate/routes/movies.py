"""/api/movies routes for favorites, watchlist and ratings of a movie."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, request

from moviemate.errors import MovieMateError
from moviemate.utils.auth import require_client
from moviemate.utils.responses import client_response, error_response

bp = Blueprint("movies", __name__, url_prefix="/api/movies")


@bp.get("/<int:movie_id>")
def get_movie_state(movie_id: int):
    """Mount the movie's detail view if needed and return its toggle states."""
    client, failure = require_client()
    if failure is not None:
        return failure

    mounted = client.get_view(movie_id) is not None
    view = client.mount(movie_id)
    if not mounted and client.current_user is not None:
        client.track("movie_viewed", {"movie_id": movie_id})

    return client_response(client, view.snapshot())


@bp.delete("/<int:movie_id>")
def unmount_movie(movie_id: int):
    """Release the movie's detail view and its auth subscriptions."""
    client, failure = require_client()
    if failure is not None:
        return failure

    removed = client.unmount(movie_id)
    return client_response(client, {"movieId": movie_id, "unmounted": removed})


def _toggle_list(movie_id: int, kind: str):
    client, failure = require_client()
    if failure is not None:
        return failure

    movie: Dict[str, Any] = request.get_json(silent=True) or {}
    view = client.mount(movie_id)
    controller = view.favorite if kind == "favorite" else view.watchlist
    try:
        added = controller.toggle(movie)
    except MovieMateError as e:
        return error_response(client, e)

    event = f"{kind}_{'added' if added else 'removed'}"
    client.track(event, {"movie_id": movie_id, "title": movie.get("title")})
    return client_response(client, view.snapshot())


@bp.post("/<int:movie_id>/favorite")
def toggle_favorite(movie_id: int):
    """Add the movie to favorites, or remove it if it is already there."""
    return _toggle_list(movie_id, "favorite")


@bp.post("/<int:movie_id>/watchlist")
def toggle_watchlist(movie_id: int):
    """Add the movie to the watchlist, or remove it if it is already there."""
    return _toggle_list(movie_id, "watchlist")


@bp.put("/<int:movie_id>/rating")
def rate_movie(movie_id: int):
    """Store the user's 1-5 star rating for the movie."""
    client, failure = require_client()
    if failure is not None:
        return failure

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    view = client.mount(movie_id)
    try:
        rating = view.rating.set_rating(payload.get("rating"))
    except MovieMateError as e:
        return error_response(client, e)

    client.track("movie_rated", {"movie_id": movie_id, "rating": rating})
    return client_response(client, view.snapshot())
