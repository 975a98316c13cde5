"""
Viewer-side clock reconciliation.

A viewer renders a countdown that ticks locally every second while the
authoritative level index only arrives with each poll. The functions here
are pure transitions over ClientTimerState:

  apply_snapshot()   poll result in; resync when the server's level changed,
                     re-estimate the displayed level while running ahead
  tick()             one second elapsed; decrement, or on expiry advance the
                     display to the next level and, for an admin, emit one
                     AdvanceRequest for the server
  advance_failed()   release the request lock so the next tick can retry
  advance_succeeded()

displayed_level_index never drops below the confirmed server index except
when a poll resyncs it down to the server value.
"""
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from .schedule import Level, LevelSchedule


@dataclass(frozen=True)
class ClientTimerState:
    displayed_level_index: int | None = None
    remaining_seconds: int = 0
    has_requested_advance: bool = False
    # What this viewer last confirmed from the server.
    confirmed_index: int | None = None
    confirmed_start: datetime | None = None
    confirmed_status: str | None = None
    request_seq: int = 0

    @property
    def synced(self) -> bool:
        return self.displayed_level_index is not None and self.displayed_level_index == self.confirmed_index

    @property
    def running_ahead(self) -> bool:
        return (
            self.displayed_level_index is not None
            and self.confirmed_index is not None
            and self.displayed_level_index > self.confirmed_index
        )


@dataclass(frozen=True)
class AdvanceRequest:
    target_index: int
    seq: int = 0
    manual: bool = False


def initial_state() -> ClientTimerState:
    return ClientTimerState()


# ── Time helpers ──────────────────────────────────────────────────────────────

def remaining_for(level: Level | None, started: datetime | None, now: datetime) -> int:
    """duration − (now − started), floored at 0. No start time means a full level."""
    if level is None:
        return 0
    total = level.duration_seconds
    if started is None:
        return total
    elapsed = int((now - started).total_seconds())
    return max(0, min(total, total - elapsed))


def estimate_level_start(schedule: LevelSchedule, server_index: int, server_start: datetime | None,
                         displayed_index: int, now: datetime) -> datetime:
    """Start of *displayed_index* when the viewer runs ahead of the server.

    The server's level_start_time belongs to the server's level; the displayed
    level began once the levels in between ran out, so their durations are
    added on top (one level ahead: the previous level's duration).
    """
    if server_start is None:
        return now
    start = server_start
    for i in range(server_index, displayed_index):
        lvl = schedule.level_at(i)
        if lvl is None:
            return now
        start += timedelta(minutes=lvl.duration_minutes)
    return start


# ── Transitions ───────────────────────────────────────────────────────────────

def apply_snapshot(state: ClientTimerState, snapshot, now: datetime) -> ClientTimerState:
    server = snapshot.current_level_index
    changed = (
        state.displayed_level_index is None
        or state.confirmed_index != server
        or state.confirmed_start != snapshot.level_start_time
        or state.confirmed_status != snapshot.session_status
    )

    if changed:
        level = snapshot.schedule.level_at(server)
        return ClientTimerState(
            displayed_level_index=server,
            remaining_seconds=remaining_for(level, snapshot.level_start_time, now),
            has_requested_advance=False,
            confirmed_index=server,
            confirmed_start=snapshot.level_start_time,
            confirmed_status=snapshot.session_status,
            request_seq=state.request_seq,
        )

    if state.displayed_level_index > server:
        displayed = state.displayed_level_index
        started = estimate_level_start(snapshot.schedule, server, snapshot.level_start_time, displayed, now)
        level = snapshot.schedule.level_at(displayed)
        return replace(state, remaining_seconds=remaining_for(level, started, now))

    return state


def tick(state: ClientTimerState, snapshot, is_privileged: bool) -> tuple[ClientTimerState, AdvanceRequest | None]:
    """One second passed. Returns the new state and an optional server request."""
    if snapshot is None or not snapshot.is_active or state.displayed_level_index is None:
        return state, None
    schedule = snapshot.schedule
    if schedule.level_at(state.displayed_level_index) is None:
        return state, None

    request = None
    server = state.confirmed_index if state.confirmed_index is not None else snapshot.current_level_index

    # The server's level has run out locally: either we are synced at 0, or a
    # previous request failed after the display already moved on.
    server_level_expired = state.running_ahead or (state.synced and state.remaining_seconds <= 0)
    if (
        is_privileged
        and not state.has_requested_advance
        and server_level_expired
        and schedule.is_valid_index(server + 1)
    ):
        seq = state.request_seq + 1
        request = AdvanceRequest(target_index=server + 1, seq=seq)
        # Lock is set before the request goes out.
        state = replace(state, has_requested_advance=True, request_seq=seq)

    if state.remaining_seconds > 0:
        return replace(state, remaining_seconds=state.remaining_seconds - 1), request

    nxt = schedule.next_level(state.displayed_level_index)
    if nxt is None:
        # Last level: hold at zero.
        return replace(state, remaining_seconds=0), request
    return replace(state, displayed_level_index=nxt.index, remaining_seconds=nxt.duration_seconds), request


def advance_failed(state: ClientTimerState, request: AdvanceRequest) -> ClientTimerState:
    if request.manual or request.seq != state.request_seq:
        return state
    return replace(state, has_requested_advance=False)


def advance_succeeded(state: ClientTimerState, request: AdvanceRequest) -> ClientTimerState:
    # Keep the lock; the poll that confirms the new index releases it.
    return state


# ── Display ───────────────────────────────────────────────────────────────────

def remaining_display(state: ClientTimerState) -> str:
    minutes, seconds = divmod(max(0, state.remaining_seconds), 60)
    return f"{minutes:02d}:{seconds:02d}"
