"""
Payout visibility and payout amounts.

should_show_payouts() decides whether non-admin viewers see the payout
table. It must be fed the server-confirmed level index, never a viewer's
optimistically displayed one.
"""
import json
import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from functools import lru_cache

from .conf import clock_setting, data_path
from .schedule import LevelSchedule

logger = logging.getLogger(__name__)

_SECOND_BREAK_LABEL = re.compile(r"^\s*(?:b|break)\s*#?\s*2\s*$", re.IGNORECASE)


def second_break_index(schedule: LevelSchedule) -> int | None:
    """Index of the break labelled as the second break (B2 / Break 2)."""
    for lvl in schedule:
        if lvl.is_break and _SECOND_BREAK_LABEL.match(lvl.label or ""):
            return lvl.index
    return None


def registration_close_index(schedule: LevelSchedule) -> int | None:
    for lvl in schedule:
        if lvl.is_break and lvl.special_action.closes_registration:
            return lvl.index
    return None


def should_show_payouts(
    current_level_index: int,
    schedule: LevelSchedule,
    registration_closed: bool,
    fallback_level: int | None = None,
) -> bool:
    if registration_closed:
        return True

    b2 = second_break_index(schedule)
    if b2 is not None and current_level_index >= b2:
        return True

    reg_close = registration_close_index(schedule)
    if reg_close is not None and current_level_index >= reg_close:
        return True

    if fallback_level is None:
        fallback_level = int(clock_setting("payoutFallbackLevel"))
    return current_level_index >= fallback_level


# ── Payout table ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PayoutTier:
    position: int
    percentage: Decimal


@dataclass(frozen=True)
class PayoutStructure:
    name: str
    min_entries: int
    max_entries: int
    tiers: tuple


def _structure_from_record(rec: dict) -> PayoutStructure:
    tiers = sorted(
        (PayoutTier(int(t["position"]), Decimal(str(t["percentage"]))) for t in rec.get("tiers") or []),
        key=lambda t: t.position,
    )
    return PayoutStructure(
        name=str(rec.get("name") or ""),
        min_entries=int(rec.get("minEntries", 0)),
        max_entries=int(rec.get("maxEntries", 0)),
        tiers=tuple(tiers),
    )


@lru_cache(maxsize=1)
def load_payout_structures() -> tuple:
    path = data_path("payoutFile")
    records = json.loads(path.read_text())
    return tuple(_structure_from_record(r) for r in records)


def payout_tiers_for(entries: int, structures=None) -> tuple:
    """Tier list for *entries*; with no matching bracket, the largest applies."""
    if entries <= 0:
        return ()
    if structures is None:
        structures = load_payout_structures()
    for s in structures:
        if s.min_entries <= entries <= s.max_entries:
            return s.tiers
    if not structures:
        return ()
    largest = max(structures, key=lambda s: s.max_entries)
    return largest.tiers


def calculate_payout(percentage, buy_in, entries) -> Decimal:
    try:
        pct = Decimal(str(percentage))
        prize_pool = Decimal(int(buy_in)) * Decimal(int(entries))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0.00")
    if pct <= 0 or prize_pool <= 0:
        return Decimal("0.00")
    return (prize_pool * pct / 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def payout_summary(session, schedule: LevelSchedule, privileged: bool = False, structures=None) -> dict:
    entries = session.total_entries
    visible = privileged or should_show_payouts(
        session.current_level_index, schedule, session.registration_closed,
    )
    data = {
        "showPayouts": visible,
        "entries": entries,
        "buyIn": session.buy_in,
        "prizePool": session.buy_in * entries,
        "tiers": [],
    }
    if not visible:
        return data
    for tier in payout_tiers_for(entries, structures):
        data["tiers"].append({
            "position": tier.position,
            "percentage": str(tier.percentage),
            "amount": str(calculate_payout(tier.percentage, session.buy_in, entries)),
        })
    return data
