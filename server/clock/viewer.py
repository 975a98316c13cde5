"""
Per-viewer clock runtime.

Owns one ClientTimerState and drives it from two independent asyncio tasks:
a 1 s tick and a 10 s poll. Both feed the pure transitions in clock.engine.
stop() cancels both tasks together and bumps a generation counter; any
fetch or level-update response that lands after that is dropped.
"""
import asyncio
import logging
import threading
from typing import Callable

from asgiref.sync import sync_to_async
from django.utils import timezone

from . import engine
from .client import AdvanceResult, ClockSnapshot
from .conf import clock_setting
from .errors import ClockError, NotAuthorized
from .payouts import should_show_payouts
from .schedule import Level

logger = logging.getLogger(__name__)


class ClockViewer:

    def __init__(
        self,
        client,
        is_privileged: bool = False,
        poll_interval: float | None = None,
        tick_interval: float | None = None,
        now: Callable = timezone.now,
    ) -> None:
        self.client = client
        self.is_privileged = is_privileged
        self.poll_interval = float(poll_interval if poll_interval is not None else clock_setting("pollIntervalSeconds"))
        self.tick_interval = float(tick_interval if tick_interval is not None else clock_setting("tickIntervalSeconds"))
        self._now = now

        self._state = engine.initial_state()
        self._snapshot: ClockSnapshot | None = None
        self._pending: ClockSnapshot | None = None
        self._pending_lock = threading.Lock()
        self._generation = 0
        # Fetches are numbered when issued; only a newer one may replace the last parked.
        self._fetch_seq = 0
        self._latest_seq = 0
        self._tasks: list[asyncio.Task] = []
        self._requests: set[asyncio.Task] = set()

        self._fetch = sync_to_async(self._fetch_into_pending, thread_sensitive=False)
        self._advance = sync_to_async(client.advance_level, thread_sensitive=False)

    # ── Read side ─────────────────────────────────────────────────────────────

    @property
    def state(self) -> engine.ClientTimerState:
        return self._state

    @property
    def snapshot(self) -> ClockSnapshot | None:
        return self._snapshot

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def displayed_level(self) -> Level | None:
        if self._snapshot is None or self._state.displayed_level_index is None:
            return None
        return self._snapshot.schedule.level_at(self._state.displayed_level_index)

    @property
    def display(self) -> str:
        return engine.remaining_display(self._state)

    @property
    def payouts_visible(self) -> bool:
        """Uses the server-confirmed index, never the displayed one."""
        snap = self._snapshot
        if snap is None:
            return False
        return should_show_payouts(snap.current_level_index, snap.schedule, snap.registration_closed)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Initial fetch, then start ticking and polling. Fetch errors propagate."""
        if self._tasks:
            raise RuntimeError("viewer already started")
        self._generation += 1
        gen = self._generation
        self._state = engine.initial_state()
        self._snapshot = None

        await self._fetch(gen, self._issue_fetch())
        if gen != self._generation:
            return
        self._drain()
        self._tasks = [
            asyncio.create_task(self._tick_loop(gen), name="clock-tick"),
            asyncio.create_task(self._poll_loop(gen), name="clock-poll"),
        ]
        logger.debug("viewer started at level %s", self._state.displayed_level_index)

    async def stop(self) -> None:
        self._generation += 1
        tasks = self._tasks + list(self._requests)
        self._tasks = []
        self._requests.clear()
        with self._pending_lock:
            self._pending = None
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ── Poll ──────────────────────────────────────────────────────────────────

    def _issue_fetch(self) -> int:
        self._fetch_seq += 1
        return self._fetch_seq

    def _fetch_into_pending(self, gen: int, seq: int) -> bool:
        # Runs in a worker thread; parks the result so a tick that fires before
        # the poll task resumes still sees it first. A response that finishes
        # after a later-issued one is dropped.
        snapshot = self.client.fetch_snapshot()
        with self._pending_lock:
            if gen != self._generation or seq <= self._latest_seq:
                logger.debug("dropping out-of-order snapshot (fetch %s, latest %s)", seq, self._latest_seq)
                return False
            self._pending = snapshot
            self._latest_seq = seq
        return True

    def _drain(self) -> None:
        with self._pending_lock:
            snapshot, self._pending = self._pending, None
        if snapshot is None:
            return
        last = self._snapshot
        if (
            last is not None
            and last.server_now is not None
            and snapshot.server_now is not None
            and snapshot.server_now < last.server_now
        ):
            logger.debug("dropping snapshot taken at %s, already applied %s", snapshot.server_now, last.server_now)
            return
        self._snapshot = snapshot
        self._state = engine.apply_snapshot(self._state, snapshot, self._now())

    async def poll_once(self) -> bool:
        """Fetch once. A failure keeps the last good snapshot.

        Returns False when the fetch failed or its result was superseded.
        """
        gen = self._generation
        try:
            fresh = await self._fetch(gen, self._issue_fetch())
        except ClockError as exc:
            if gen == self._generation:
                logger.warning("clock poll failed, keeping last snapshot: %s", exc.message)
            return False
        if gen != self._generation or not fresh:
            return False
        self._drain()
        return True

    refresh = poll_once

    async def _poll_loop(self, gen: int) -> None:
        while gen == self._generation:
            await asyncio.sleep(self.poll_interval)
            if gen != self._generation:
                break
            try:
                await self.poll_once()
            except Exception:
                logger.exception("clock poll raised, polling continues")

    # ── Tick ──────────────────────────────────────────────────────────────────

    def tick_once(self) -> engine.AdvanceRequest | None:
        if not self.running:
            return None
        self._drain()
        if self._snapshot is None:
            return None
        self._state, request = engine.tick(self._state, self._snapshot, self.is_privileged)
        if request is not None:
            logger.info("level expired, requesting level %s", request.target_index)
            task = asyncio.create_task(self._run_advance(request, self._generation))
            self._requests.add(task)
            task.add_done_callback(self._requests.discard)
        return request

    async def _tick_loop(self, gen: int) -> None:
        while gen == self._generation:
            await asyncio.sleep(self.tick_interval)
            if gen != self._generation:
                break
            try:
                self.tick_once()
            except Exception:
                logger.exception("clock tick raised, ticking continues")

    # ── Level updates ─────────────────────────────────────────────────────────

    async def _run_advance(self, request: engine.AdvanceRequest, gen: int) -> None:
        try:
            await self._advance(request.target_index)
        except Exception as exc:
            if gen != self._generation:
                return
            message = exc.message if isinstance(exc, ClockError) else repr(exc)
            logger.warning("auto-advance to level %s failed: %s", request.target_index, message)
            self._state = engine.advance_failed(self._state, request)
            return
        if gen != self._generation:
            return
        self._state = engine.advance_succeeded(self._state, request)
        await self.refresh()

    async def request_level(self, index: int) -> AdvanceResult:
        """Admin override: jump to any level now. Not gated by the countdown or the lock."""
        if not self.is_privileged:
            raise NotAuthorized("Not authorized")
        gen = self._generation
        result = await self._advance(index)
        if gen == self._generation and self.running:
            await self.refresh()
        return result
