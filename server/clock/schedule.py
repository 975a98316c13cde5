"""
Blind schedule: an ordered, immutable list of levels.

A level is either a RegularLevel (blinds + ante) or a BreakLevel (label +
optional special action). The schedule file is read once per process and
shared by every session.
"""
import json
import logging
import math
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Iterator, Union

from .conf import data_path

logger = logging.getLogger(__name__)


class SpecialAction(str, Enum):
    NONE = "NONE"
    CHIP_UP_1S = "CHIP_UP_1S"
    CHIP_UP_5S = "CHIP_UP_5S"
    REG_CLOSE = "REG_CLOSE"
    REG_CLOSE_CHIP_UP_5S = "REG_CLOSE_CHIP_UP_5S"

    @property
    def closes_registration(self) -> bool:
        return self in (SpecialAction.REG_CLOSE, SpecialAction.REG_CLOSE_CHIP_UP_5S)

    @classmethod
    def parse(cls, value) -> "SpecialAction":
        if not value:
            return cls.NONE
        try:
            return cls(str(value).upper())
        except ValueError:
            logger.warning("unknown special action %r, ignoring", value)
            return cls.NONE


# ── Level variants ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RegularLevel:
    index: int
    duration_minutes: int
    small_blind: int
    big_blind: int
    ante: int = 0
    number: int = 0          # 1-based play-level number, breaks excluded

    is_break = False

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "level": self.number,
            "duration": self.duration_minutes,
            "isBreak": False,
            "smallBlind": self.small_blind,
            "bigBlind": self.big_blind,
            "ante": self.ante,
        }


@dataclass(frozen=True)
class BreakLevel:
    index: int
    duration_minutes: int
    label: str = "Break"
    special_action: SpecialAction = SpecialAction.NONE

    is_break = True

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "level": 0,
            "duration": self.duration_minutes,
            "isBreak": True,
            "breakName": self.label,
            "specialAction": None if self.special_action is SpecialAction.NONE else self.special_action.value,
        }


Level = Union[RegularLevel, BreakLevel]


# ── Record parsing ────────────────────────────────────────────────────────────

def _minutes(record: dict) -> int:
    """Whole minutes from duration/durationMinutes, else durationSeconds/seconds."""
    for key in ("duration", "durationMinutes", "minutes"):
        v = record.get(key)
        if isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v) and v >= 0:
            return int(v)
    for key in ("durationSeconds", "seconds"):
        v = record.get(key)
        if isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v) and v >= 0:
            return int(v // 60)
    raise ValueError(f"level {record!r} has no usable duration")


def _int(value, fallback: int = 0) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return fallback


def level_from_record(record: dict, index: int, number: int = 0) -> Level:
    if not isinstance(record, dict):
        raise ValueError(f"level #{index} is not an object")
    duration = _minutes(record)
    if record.get("isBreak") or record.get("type") == "break":
        return BreakLevel(
            index=index,
            duration_minutes=duration,
            label=str(record.get("breakName") or record.get("label") or record.get("title") or "Break"),
            special_action=SpecialAction.parse(record.get("specialAction")),
        )
    return RegularLevel(
        index=index,
        duration_minutes=duration,
        small_blind=_int(record.get("smallBlind", record.get("sb"))),
        big_blind=_int(record.get("bigBlind", record.get("bb"))),
        ante=_int(record.get("ante")),
        number=number,
    )


# ── Schedule ──────────────────────────────────────────────────────────────────

class LevelSchedule:
    """Ordered levels; position in the tuple is the level index."""

    def __init__(self, levels) -> None:
        self._levels: tuple = tuple(levels)
        for i, lvl in enumerate(self._levels):
            if lvl.index != i:
                raise ValueError(f"level at position {i} has index {lvl.index}")

    @classmethod
    def from_records(cls, records) -> "LevelSchedule":
        levels = []
        number = 0
        for i, rec in enumerate(records or []):
            if not (isinstance(rec, dict) and (rec.get("isBreak") or rec.get("type") == "break")):
                number += 1
            levels.append(level_from_record(rec, i, number))
        return cls(levels)

    def __len__(self) -> int:
        return len(self._levels)

    def __iter__(self) -> Iterator[Level]:
        return iter(self._levels)

    def __eq__(self, other) -> bool:
        return isinstance(other, LevelSchedule) and self._levels == other._levels

    @property
    def last_index(self) -> int:
        return len(self._levels) - 1

    def level_at(self, index) -> Level | None:
        """The level at *index*, or None past either end of the schedule."""
        if not isinstance(index, int) or index < 0 or index >= len(self._levels):
            return None
        return self._levels[index]

    def next_level(self, index: int) -> Level | None:
        return self.level_at(index + 1)

    def is_valid_index(self, index) -> bool:
        return self.level_at(index) is not None

    def first_play_index(self) -> int:
        for lvl in self._levels:
            if not lvl.is_break:
                return lvl.index
        return 0

    def total_minutes(self) -> int:
        return sum(lvl.duration_minutes for lvl in self._levels)

    def total_duration_label(self) -> str:
        hours, minutes = divmod(self.total_minutes(), 60)
        return f"{hours}h {minutes}m"

    def to_list(self) -> list[dict]:
        return [lvl.to_dict() for lvl in self._levels]


@lru_cache(maxsize=1)
def load_schedule() -> LevelSchedule:
    """Read the configured schedule file. Cached for the life of the process."""
    path = data_path("scheduleFile")
    records = json.loads(path.read_text())
    if isinstance(records, dict):
        records = records.get("levels") or []
    schedule = LevelSchedule.from_records(records)
    logger.info("loaded %d levels from %s", len(schedule), path)
    return schedule
