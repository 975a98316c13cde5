"""
Clock state helpers: pure functions over a session row and the schedule.

The authoritative clock lives in TournamentSession (current_level_index +
level_start_time). Nothing here writes; see clock.advancement for that.
"""
import math
from datetime import datetime

from django.utils import timezone

from .schedule import Level, LevelSchedule


# ── Level helpers ─────────────────────────────────────────────────────────────

def current_level(schedule: LevelSchedule, index: int) -> Level | None:
    """Level for *index*; a stored index past the end clamps to the last level."""
    if len(schedule) == 0:
        return None
    lvl = schedule.level_at(index)
    if lvl is None and isinstance(index, int) and index > schedule.last_index:
        return schedule.level_at(schedule.last_index)
    return lvl


def elapsed_seconds(started: datetime | None, now: datetime) -> int:
    if started is None:
        return 0
    return max(0, math.floor((now - started).total_seconds()))


# ── Pure computation helpers ──────────────────────────────────────────────────

def compute_remaining_seconds(level: Level | None, started: datetime | None, now: datetime | None = None) -> dict:
    if now is None:
        now = timezone.now()
    total = level.duration_seconds if level is not None else 0
    elapsed = elapsed_seconds(started, now)
    remaining = max(0, total - elapsed)
    return {"total": total, "elapsed": elapsed, "remaining": remaining}


def clock_snapshot(session, schedule: LevelSchedule, now: datetime | None = None) -> dict:
    """The read-only payload polled by every viewer."""
    if now is None:
        now = timezone.now()
    lvl = current_level(schedule, session.current_level_index)
    started = session.level_start_time if session.is_active() else None
    return {
        "sessionId": session.id,
        "sessionStatus": session.status,
        "registrationClosed": session.registration_closed,
        "currentLevelIndex": session.current_level_index,
        "currentLevel": lvl.to_dict() if lvl else None,
        "levelStartTime": session.level_start_time.isoformat() if session.level_start_time else None,
        "levels": schedule.to_list(),
        "totalLevels": len(schedule),
        "totalDuration": schedule.total_duration_label(),
        "timing": compute_remaining_seconds(lvl, started, now),
        "serverNow": now.isoformat(),
    }
