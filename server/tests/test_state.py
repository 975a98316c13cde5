"""
Unit tests for clock/state.py snapshot helpers.

Covers:
  - current_level (clamping past the end)
  - compute_remaining_seconds
  - clock_snapshot
"""
from datetime import datetime, timedelta, timezone

from clock.models import TournamentSession
from clock.schedule import LevelSchedule
from clock.state import clock_snapshot, compute_remaining_seconds, current_level

T0 = datetime(2026, 3, 1, 19, 0, tzinfo=timezone.utc)


# ── Helpers ────────────────────────────────────────────────────────────────────

def _schedule():
    return LevelSchedule.from_records([
        {"smallBlind": 100, "bigBlind": 200, "duration": 20},
        {"smallBlind": 200, "bigBlind": 400, "duration": 20},
        {"isBreak": True, "breakName": "B1", "duration": 10},
    ])


def _session(**kw):
    """Unsaved session row; clock_snapshot only reads attributes."""
    defaults = dict(
        id=7,
        status=TournamentSession.STATUS_ACTIVE,
        current_level_index=0,
        level_start_time=T0,
        registration_closed=False,
    )
    defaults.update(kw)
    return TournamentSession(**defaults)


# ── current_level ───────────────────────────────────────────────────────────────

class TestCurrentLevel:

    def test_in_range(self):
        assert current_level(_schedule(), 1).big_blind == 400

    def test_past_end_clamps_to_last(self):
        assert current_level(_schedule(), 10).index == 2

    def test_empty_schedule(self):
        assert current_level(LevelSchedule([]), 0) is None


# ── compute_remaining_seconds ───────────────────────────────────────────────────

class TestComputeRemainingSeconds:

    def test_partway_through_level(self):
        lvl = _schedule().level_at(0)
        r = compute_remaining_seconds(lvl, T0, T0 + timedelta(minutes=5))
        assert r == {"total": 1200, "elapsed": 300, "remaining": 900}

    def test_clamps_to_zero_after_expiry(self):
        lvl = _schedule().level_at(0)
        r = compute_remaining_seconds(lvl, T0, T0 + timedelta(minutes=21))
        assert r["remaining"] == 0

    def test_no_start_time_is_full_level(self):
        lvl = _schedule().level_at(2)
        r = compute_remaining_seconds(lvl, None, T0)
        assert r["remaining"] == 600

    def test_future_start_counts_as_no_elapsed_time(self):
        lvl = _schedule().level_at(0)
        r = compute_remaining_seconds(lvl, T0 + timedelta(seconds=30), T0)
        assert r["elapsed"] == 0
        assert r["remaining"] == 1200

    def test_no_level(self):
        assert compute_remaining_seconds(None, T0, T0)["remaining"] == 0


# ── clock_snapshot ──────────────────────────────────────────────────────────────

class TestClockSnapshot:

    def test_required_keys_present(self):
        snap = clock_snapshot(_session(), _schedule(), now=T0)
        for key in ("levels", "currentLevelIndex", "currentLevel", "levelStartTime",
                    "sessionStatus", "registrationClosed", "totalLevels", "timing", "serverNow"):
            assert key in snap, f"Missing key: {key}"

    def test_current_level_matches_index(self):
        snap = clock_snapshot(_session(current_level_index=1), _schedule(), now=T0)
        assert snap["currentLevel"]["bigBlind"] == 400
        assert snap["totalLevels"] == 3

    def test_timing_uses_level_start(self):
        snap = clock_snapshot(_session(), _schedule(), now=T0 + timedelta(minutes=2))
        assert snap["timing"]["remaining"] == 1080

    def test_inactive_session_does_not_count_down(self):
        s = _session(status=TournamentSession.STATUS_NOT_STARTED, level_start_time=None)
        snap = clock_snapshot(s, _schedule(), now=T0 + timedelta(hours=1))
        assert snap["timing"]["remaining"] == 1200
        assert snap["levelStartTime"] is None

    def test_level_start_time_is_iso(self):
        snap = clock_snapshot(_session(), _schedule(), now=T0)
        assert snap["levelStartTime"] == T0.isoformat()
