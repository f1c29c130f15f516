"""Interaction event tracking: fire-and-forget client and MongoDB-backed sink."""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from moviemate import database
from moviemate.services.notifications import Notifier

_LOGGER = logging.getLogger(__name__)

REQUIRED_FIELDS = ("user_id", "event_type", "event_data")


def missing_fields(payload: Dict[str, Any]) -> list:
    """Return the names of required event fields that are absent or empty."""
    return [field for field in REQUIRED_FIELDS if payload.get(field) in (None, "", {}, [])]


def _post_event(url: str, payload: Dict[str, Any], notifier: Optional[Notifier]) -> bool:
    timeout = float(os.getenv("TRACKING_TIMEOUT_SECONDS", "5"))
    try:
        response = requests.post(url, json=payload, timeout=timeout)
    except requests.exceptions.RequestException as e:
        _LOGGER.warning(f"Failed to send {payload['event_type']} event: {e}")
        if notifier is not None:
            notifier.error("Failed to track event")
        return False

    if not response.ok:
        _LOGGER.warning(
            "Tracking endpoint rejected %s event (%s): %s",
            payload["event_type"],
            response.status_code,
            response.text,
        )
        if notifier is not None:
            notifier.error("Failed to track event")
        return False

    return True


def track_event(
    user_id: Optional[str],
    event_type: Optional[str],
    event_data: Optional[Dict[str, Any]],
    notifier: Optional[Notifier] = None,
    background: bool = True,
) -> bool:
    """
    Send an interaction event to the tracking endpoint.

    The call never raises and is never retried; failures are logged and, when
    a notifier is given, surfaced to the user.

    Args:
        user_id: The user the event belongs to
        event_type: Short event name, e.g. ``favorite_added``
        event_data: Event details
        notifier: Optional notification queue for failures
        background: Send from a daemon thread instead of the caller's

    Returns:
        True if the event was sent (or dispatched, in background mode)
    """
    payload = {"user_id": user_id, "event_type": event_type, "event_data": event_data}
    missing = missing_fields(payload)
    if missing:
        _LOGGER.warning("Not tracking event, missing fields: %s", ", ".join(missing))
        if notifier is not None:
            notifier.error("Failed to track event")
        return False

    url = os.getenv("TRACKING_URL", "").strip()
    if not url:
        _LOGGER.debug("TRACKING_URL not set, dropping %s event", event_type)
        return False

    if not background:
        return _post_event(url, payload, notifier)

    thread = threading.Thread(
        target=_post_event,
        args=(url, payload, notifier),
        name=f"track-{event_type}",
        daemon=True,
    )
    thread.start()
    return True


def record_event(user_id: str, event_type: str, event_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Persist an event received by the tracking endpoint.

    Args:
        user_id: The user the event belongs to
        event_type: Short event name
        event_data: Event details

    Returns:
        The stored event, with its server-side timestamp
    """
    event = {
        "user_id": user_id,
        "event_type": event_type,
        "event_data": event_data,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    result = database.get_database().events.insert_one(dict(event))
    event["id"] = str(result.inserted_id)
    return event
