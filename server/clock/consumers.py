"""
WebSocket consumer for one session's blind clock.

Polling over HTTP is the primary read path; the socket only lets a viewer
refresh as soon as the level changes instead of waiting for the next poll.

Message protocol (JSON):
  Client → Server:  { "type": "get_snapshot" | "admin_set_level", "index"?: int }
  Server → Client:  { "type": "snapshot" | "error_msg", ... }

Token (optional for viewers) is passed in the query string:
  ws://host/ws/clock/<session_id>/?token=<jwt>
"""
import json
import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from . import advancement
from . import state as cs
from .auth import is_privileged, verify_token
from .errors import ClockError, SessionNotFound
from .models import TournamentSession
from .schedule import load_schedule

logger = logging.getLogger(__name__)


def _snapshot(session_id: int) -> dict:
    try:
        session = TournamentSession.objects.get(pk=session_id)
    except TournamentSession.DoesNotExist:
        raise SessionNotFound("Session not found")
    return cs.clock_snapshot(session, load_schedule())


def _set_level(session_id: int, index) -> None:
    advancement.advance_level(session_id, index, privileged=True)


class ClockConsumer(AsyncWebsocketConsumer):

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    async def connect(self) -> None:
        qs = parse_qs(self.scope.get("query_string", b"").decode())
        token = (qs.get("token") or [None])[0]
        self.user = verify_token(token) if token else None
        self.session_id = int(self.scope["url_route"]["kwargs"]["session_id"])

        try:
            snap = await database_sync_to_async(_snapshot)(self.session_id)
        except SessionNotFound:
            await self.close(code=4004)
            return

        self.group = advancement.group_name(self.session_id)
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()

        # Send initial snapshot
        await self.send_json({"type": "snapshot", **snap})

    async def disconnect(self, close_code: int) -> None:
        group = getattr(self, "group", None)
        if group:
            await self.channel_layer.group_discard(group, self.channel_name)

    async def receive(self, text_data: str = "", **kwargs) -> None:
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            return
        if not isinstance(data, dict):
            return

        msg_type = data.get("type", "")

        if msg_type == "get_snapshot":
            try:
                snap = await database_sync_to_async(_snapshot)(self.session_id)
            except ClockError as exc:
                await self.send_json({"type": "error_msg", "error": exc.code, "message": exc.message})
                return
            await self.send_json({"type": "snapshot", **snap})

        elif msg_type == "admin_set_level":
            if not await self._require_admin():
                return
            try:
                # advance_level broadcasts the new snapshot to the group itself
                await database_sync_to_async(_set_level)(self.session_id, data.get("index"))
            except ClockError as exc:
                logger.info("admin_set_level rejected on session %s: %s", self.session_id, exc.message)
                await self.send_json({"type": "error_msg", "error": exc.code, "message": exc.message})

    # ── Channel-layer receiver (called by group_send) ─────────────────────────

    async def clock_broadcast(self, event: dict) -> None:
        await self.send_json(event["message"])

    # ── Helpers ───────────────────────────────────────────────────────────────

    async def _require_admin(self) -> bool:
        if not is_privileged(self.user):
            await self.send_json({"type": "error_msg", "error": "not_authorized", "message": "Not authorized (admin required)."})
            return False
        return True

    async def send_json(self, data: dict) -> None:
        await self.send(text_data=json.dumps(data))
