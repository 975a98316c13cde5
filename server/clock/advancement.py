"""
Level advancement: the only write path for the authoritative clock.

current_level_index and level_start_time are written together in a single
UPDATE. Concurrent writers (two admin tabs) resolve by last write wins.
Callers see the change on their next poll; a snapshot is also pushed to the
session's channel group so connected sockets can refresh early.
"""
import logging
from datetime import datetime

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

from .errors import InvalidLevelIndex, InvalidTransition, NotAuthorized, SessionNotActive, SessionNotFound
from .models import TournamentSession
from .schedule import LevelSchedule, load_schedule
from . import state as cs

logger = logging.getLogger(__name__)


def group_name(session_id: int) -> str:
    return f"clock-{session_id}"


def _get_session(session_id) -> TournamentSession:
    try:
        return TournamentSession.objects.get(pk=session_id)
    except (TournamentSession.DoesNotExist, ValueError, TypeError):
        raise SessionNotFound(f"Session {session_id} not found")


def _coerce_index(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidLevelIndex("levelIndex must be an integer")
    return value


def notify_level_changed(session: TournamentSession, schedule: LevelSchedule | None = None) -> None:
    """Push a fresh snapshot to the session's websocket group. Never raises."""
    if schedule is None:
        schedule = load_schedule()
    try:
        channel_layer = get_channel_layer()
        if channel_layer is None:
            return
        snap = cs.clock_snapshot(session, schedule)
        async_to_sync(channel_layer.group_send)(
            group_name(session.id),
            {"type": "clock.broadcast", "message": {"type": "snapshot", **snap}},
        )
    except Exception:
        logger.warning("broadcast for session %s failed", session.id, exc_info=True)


def advance_level(
    session_id,
    new_index,
    *,
    privileged: bool,
    now: datetime | None = None,
    schedule: LevelSchedule | None = None,
    broadcast: bool = True,
) -> TournamentSession:
    """Set the session's level to *new_index* and restart its level timer.

    Raises NotAuthorized, SessionNotFound, SessionNotActive or
    InvalidLevelIndex; nothing is written in those cases.
    """
    if not privileged:
        logger.info("rejected level change on session %s: not authorized", session_id)
        raise NotAuthorized("Not authorized")

    new_index = _coerce_index(new_index)
    if schedule is None:
        schedule = load_schedule()
    if now is None:
        now = timezone.now()

    session = _get_session(session_id)
    if not session.is_active():
        raise SessionNotActive(f"Session {session.id} is {session.status}, the clock is frozen")
    if not schedule.is_valid_index(new_index):
        raise InvalidLevelIndex(f"levelIndex must be between 0 and {schedule.last_index}, got {new_index}")

    updated = TournamentSession.objects.filter(
        pk=session.id, status=TournamentSession.STATUS_ACTIVE,
    ).update(current_level_index=new_index, level_start_time=now, updated_at=now)
    if not updated:
        # Status changed between the read and the write.
        raise SessionNotActive(f"Session {session.id} is no longer active")

    logger.info("session %s level %s -> %s", session.id, session.current_level_index, new_index)
    session.refresh_from_db()
    if broadcast:
        notify_level_changed(session, schedule)
    return session


def set_session_status(
    session_id,
    status: str,
    *,
    privileged: bool,
    now: datetime | None = None,
    schedule: LevelSchedule | None = None,
) -> TournamentSession:
    """Move a session through its lifecycle. Activation starts the clock."""
    if not privileged:
        raise NotAuthorized("Not authorized")
    session = _get_session(session_id)
    if not session.can_transition_to(status):
        raise InvalidTransition(f"Invalid status transition from {session.status} to {status}")
    if now is None:
        now = timezone.now()

    fields: dict = {"status": status, "updated_at": now}
    if status == TournamentSession.STATUS_ACTIVE:
        if schedule is None:
            schedule = load_schedule()
        fields["current_level_index"] = schedule.first_play_index()
        fields["level_start_time"] = now

    updated = TournamentSession.objects.filter(pk=session.id, status=session.status).update(**fields)
    if not updated:
        raise InvalidTransition(f"Session {session.id} changed status concurrently, retry")
    logger.info("session %s %s -> %s", session.id, session.status, status)
    session.refresh_from_db()
    if status == TournamentSession.STATUS_ACTIVE:
        notify_level_changed(session, schedule)
    return session


def close_registration(session_id, *, privileged: bool) -> TournamentSession:
    if not privileged:
        raise NotAuthorized("Not authorized")
    session = _get_session(session_id)
    if not session.registration_closed:
        session.registration_closed = True
        session.save(update_fields=["registration_closed", "updated_at"])
        logger.info("session %s registration closed", session.id)
    return session
