"""Tests for the event tracking client and the /api/track endpoint."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import requests
import responses

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from moviemate.services import tracking_service  # noqa: E402

TRACK_URL = "http://telemetry.test/api/track"


@responses.activate
def test_track_event_posts_payload(monkeypatch):
    monkeypatch.setenv("TRACKING_URL", TRACK_URL)
    responses.add(responses.POST, TRACK_URL, json={"status": "ok"}, status=200)

    sent = tracking_service.track_event(
        "uid-1", "favorite_added", {"movie_id": 550}, background=False
    )

    assert sent is True
    assert len(responses.calls) == 1
    body = json.loads(responses.calls[0].request.body)
    assert body == {"user_id": "uid-1", "event_type": "favorite_added", "event_data": {"movie_id": 550}}


@responses.activate
def test_track_event_without_required_field_is_a_no_op(monkeypatch, notifier):
    monkeypatch.setenv("TRACKING_URL", TRACK_URL)

    sent = tracking_service.track_event(None, "favorite_added", {"movie_id": 550}, notifier=notifier)

    assert sent is False
    assert len(responses.calls) == 0
    assert [n.message for n in notifier.drain()] == ["Failed to track event"]


@responses.activate
def test_rejected_event_is_reported_not_raised(monkeypatch, notifier):
    monkeypatch.setenv("TRACKING_URL", TRACK_URL)
    responses.add(responses.POST, TRACK_URL, body="boom", status=500)

    sent = tracking_service.track_event(
        "uid-1", "movie_rated", {"rating": 4}, notifier=notifier, background=False
    )

    assert sent is False
    assert [n.kind for n in notifier.drain()] == ["error"]


@responses.activate
def test_connection_failure_is_swallowed(monkeypatch):
    monkeypatch.setenv("TRACKING_URL", TRACK_URL)
    responses.add(responses.POST, TRACK_URL, body=requests.exceptions.ConnectionError("down"))

    assert tracking_service.track_event("uid-1", "movie_viewed", {"movie_id": 1}, background=False) is False


def test_tracking_disabled_without_url():
    assert tracking_service.track_event("uid-1", "movie_viewed", {"movie_id": 1}) is False


def test_record_event_adds_server_timestamp(mongo_db):
    event = tracking_service.record_event("uid-1", "movie_viewed", {"movie_id": 550})

    assert event["timestamp"]
    stored = mongo_db.events.find_one({"user_id": "uid-1"})
    assert stored["event_type"] == "movie_viewed"
    assert stored["timestamp"] == event["timestamp"]


def test_track_endpoint_requires_all_fields(api, mongo_db):
    response = api.post("/api/track", json={"user_id": "uid-1", "event_type": "search"})

    assert response.status_code == 400
    assert "event_data" in response.get_data(as_text=True)
    assert mongo_db.events.count_documents({}) == 0


def test_track_endpoint_stores_event(api, mongo_db):
    response = api.post(
        "/api/track",
        json={"user_id": "uid-1", "event_type": "search", "event_data": {"query": "heat"}},
    )

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["event"]["event_data"] == {"query": "heat"}
    assert "timestamp" in payload["event"]
    assert mongo_db.events.count_documents({"event_type": "search"}) == 1
