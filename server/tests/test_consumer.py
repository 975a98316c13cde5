"""
WebSocket tests for clock/consumers.py using channels' WebsocketCommunicator.
"""
import time

import jwt as pyjwt
import pytest
from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.utils import timezone

from clock.models import TournamentSession
from clock.routing import websocket_urlpatterns

_SECRET = "test-jwt-secret"

application = URLRouter(websocket_urlpatterns)


def _token(role: str) -> str:
    return pyjwt.encode(
        {"username": f"{role}@example.com", "role": role, "iat": int(time.time()), "exp": int(time.time()) + 3600},
        _SECRET, algorithm="HS256",
    )


@database_sync_to_async
def _create_session(**kw):
    defaults = dict(name="Ws", status=TournamentSession.STATUS_ACTIVE, level_start_time=timezone.now())
    defaults.update(kw)
    return TournamentSession.objects.create(**defaults)


@database_sync_to_async
def _level_of(pk):
    return TournamentSession.objects.get(pk=pk).current_level_index


@database_sync_to_async
def _delete_session(pk):
    TournamentSession.objects.filter(pk=pk).delete()


@pytest.mark.django_db(transaction=True)
class TestClockConsumer:

    @pytest.mark.asyncio
    async def test_connect_sends_snapshot(self):
        s = await _create_session()
        comm = WebsocketCommunicator(application, f"/ws/clock/{s.id}/")
        connected, _ = await comm.connect()
        assert connected
        msg = await comm.receive_json_from()
        assert msg["type"] == "snapshot"
        assert msg["currentLevelIndex"] == 0
        await comm.disconnect()

    @pytest.mark.asyncio
    async def test_unknown_session_is_rejected(self):
        comm = WebsocketCommunicator(application, "/ws/clock/99999/")
        connected, code = await comm.connect()
        assert connected is False
        assert code == 4004

    @pytest.mark.asyncio
    async def test_viewer_cannot_set_level(self):
        s = await _create_session()
        comm = WebsocketCommunicator(application, f"/ws/clock/{s.id}/?token={_token('viewer')}")
        await comm.connect()
        await comm.receive_json_from()
        await comm.send_json_to({"type": "admin_set_level", "index": 1})
        msg = await comm.receive_json_from()
        assert msg["type"] == "error_msg"
        assert msg["error"] == "not_authorized"
        assert await _level_of(s.id) == 0
        await comm.disconnect()

    @pytest.mark.asyncio
    async def test_admin_set_level_broadcasts_snapshot(self):
        s = await _create_session()
        admin = WebsocketCommunicator(application, f"/ws/clock/{s.id}/?token={_token('admin')}")
        watcher = WebsocketCommunicator(application, f"/ws/clock/{s.id}/")
        await admin.connect()
        await watcher.connect()
        await admin.receive_json_from()
        await watcher.receive_json_from()

        await admin.send_json_to({"type": "admin_set_level", "index": 3})
        msg = await watcher.receive_json_from()
        assert msg["type"] == "snapshot"
        assert msg["currentLevelIndex"] == 3
        assert await _level_of(s.id) == 3

        await admin.disconnect()
        await watcher.disconnect()

    @pytest.mark.asyncio
    async def test_invalid_index_reports_error(self):
        s = await _create_session()
        comm = WebsocketCommunicator(application, f"/ws/clock/{s.id}/?token={_token('admin')}")
        await comm.connect()
        await comm.receive_json_from()
        await comm.send_json_to({"type": "admin_set_level", "index": 42})
        msg = await comm.receive_json_from()
        assert msg == {"type": "error_msg", "error": "invalid_level_index", "message": msg["message"]}
        await comm.disconnect()

    @pytest.mark.asyncio
    async def test_snapshot_request_after_session_deleted_reports_error(self):
        s = await _create_session()
        comm = WebsocketCommunicator(application, f"/ws/clock/{s.id}/")
        await comm.connect()
        await comm.receive_json_from()
        await _delete_session(s.id)
        await comm.send_json_to({"type": "get_snapshot"})
        msg = await comm.receive_json_from()
        assert msg["type"] == "error_msg"
        assert msg["error"] == "session_not_found"
        await comm.disconnect()
