"""
Tests for clock/client.py: snapshot parsing and HTTP error mapping.
The requests session is replaced by a Mock; no network.
"""
from unittest.mock import Mock

import pytest
import requests

from clock.client import ClockApiClient, ClockSnapshot
from clock.errors import (
    InvalidLevelIndex,
    NotAuthorized,
    SessionNotActive,
    SessionNotFound,
    SnapshotUnavailable,
)

PAYLOAD = {
    "success": True,
    "sessionStatus": "ACTIVE",
    "registrationClosed": False,
    "currentLevelIndex": 1,
    "levelStartTime": "2026-03-01T19:20:00Z",
    "serverNow": "2026-03-01T19:25:00+00:00",
    "levels": [
        {"index": 0, "level": 1, "duration": 20, "isBreak": False, "smallBlind": 100, "bigBlind": 200, "ante": 0},
        {"index": 1, "level": 2, "duration": 20, "isBreak": False, "smallBlind": 200, "bigBlind": 400, "ante": 0},
        {"index": 2, "level": 0, "duration": 10, "isBreak": True, "breakName": "B2", "specialAction": "CHIP_UP_5S"},
    ],
}


def _response(status=200, body=None):
    resp = Mock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    if body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = body
    return resp


def _client(resp=None, exc=None):
    http = Mock()
    http.headers = {}
    for method in (http.get, http.put):
        if exc is not None:
            method.side_effect = exc
        else:
            method.return_value = resp
    return ClockApiClient("http://clock.test/", 5, token="abc", timeout=2, http=http), http


class TestClockSnapshot:

    def test_from_payload(self):
        snap = ClockSnapshot.from_payload(PAYLOAD)
        assert snap.current_level_index == 1
        assert snap.is_active
        assert len(snap.schedule) == 3
        assert snap.schedule.level_at(2).label == "B2"
        assert snap.level_start_time.minute == 20
        assert snap.level_start_time.tzinfo is not None

    def test_missing_start_time(self):
        snap = ClockSnapshot.from_payload({**PAYLOAD, "levelStartTime": None})
        assert snap.level_start_time is None


class TestFetchSnapshot:

    def test_get_url_and_auth_header(self):
        client, http = _client(_response(200, PAYLOAD))
        client.fetch_snapshot()
        http.get.assert_called_once_with("http://clock.test/clock/api/sessions/5/blinds/", timeout=2)
        assert http.headers["Authorization"] == "Bearer abc"

    def test_connection_error_is_transient(self):
        client, _ = _client(exc=requests.ConnectionError("down"))
        with pytest.raises(SnapshotUnavailable):
            client.fetch_snapshot()

    def test_server_error_is_transient(self):
        client, _ = _client(_response(502))
        with pytest.raises(SnapshotUnavailable):
            client.fetch_snapshot()

    def test_not_found(self):
        client, _ = _client(_response(404, {"success": False, "error": "session_not_found", "message": "Session not found"}))
        with pytest.raises(SessionNotFound):
            client.fetch_snapshot()


class TestAdvanceLevel:

    def test_sends_level_index(self):
        body = {"success": True, "currentLevelIndex": 2, "levelStartTime": "2026-03-01T19:40:00Z"}
        client, http = _client(_response(200, body))
        result = client.advance_level(2)
        http.put.assert_called_once_with(
            "http://clock.test/clock/api/sessions/5/level/", json={"levelIndex": 2}, timeout=2,
        )
        assert result.current_level_index == 2

    @pytest.mark.parametrize("status,code,exc", [
        (401, "authentication_required", NotAuthorized),
        (403, "not_authorized", NotAuthorized),
        (404, "session_not_found", SessionNotFound),
        (400, "invalid_level_index", InvalidLevelIndex),
        (409, "session_not_active", SessionNotActive),
    ])
    def test_error_mapping(self, status, code, exc):
        client, _ = _client(_response(status, {"success": False, "error": code, "message": "nope"}))
        with pytest.raises(exc) as info:
            client.advance_level(9)
        assert info.value.status == status
        assert info.value.message == "nope"

    def test_unauthorized_without_error_code(self):
        client, _ = _client(_response(403, {"message": "Not authorized"}))
        with pytest.raises(NotAuthorized):
            client.advance_level(1)
