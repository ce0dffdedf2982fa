"""
Time arithmetic — time-of-day parsing and next-fire computation.

Usage:
    tod = parse_time_of_day("09:00")
    next_ts = next_occurrence(datetime.now(), tod)

All functions are pure. Parsing failures raise TimeFormatError so bad
schedules are rejected when command definitions load, before anything
reaches the Scheduler.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from pako.core.errors import TimeFormatError


@dataclass(frozen=True, slots=True)
class TimeOfDay:
    """A wall-clock time, minute resolution."""

    hour: int
    minute: int

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def parse_time_of_day(text: str) -> TimeOfDay:
    """
    Parse a strict "HH:MM" string.

    Exactly five characters, zero-padded, colon in the middle.
    "9:00", "09:00:00" and "0900" are all rejected.
    """
    if len(text) != 5 or text[2] != ":":
        raise TimeFormatError("must be in HH:MM format", value=text)

    for i, ch in enumerate(text):
        if i == 2:
            continue
        # str.isdigit() accepts non-ASCII digits; only 0-9 are valid here
        if ch not in "0123456789":
            raise TimeFormatError("must be in HH:MM format", value=text)

    hour = int(text[0:2])
    minute = int(text[3:5])

    if hour > 23:
        raise TimeFormatError("hour must be 00-23", value=text)
    if minute > 59:
        raise TimeFormatError("minute must be 00-59", value=text)

    return TimeOfDay(hour=hour, minute=minute)


def parse_time_of_day_list(texts: Iterable[str]) -> list[TimeOfDay]:
    """Parse every entry; the first invalid one aborts the whole list."""
    return [parse_time_of_day(t) for t in texts]


def next_occurrence(now: datetime, tod: TimeOfDay) -> datetime:
    """
    Next moment at tod's hour:minute that is strictly after now.

    Same calendar day when that is still ahead, otherwise tomorrow.
    An exact match with now rolls to tomorrow.
    """
    candidate = now.replace(hour=tod.hour, minute=tod.minute, second=0, microsecond=0)
    if not candidate > now:
        candidate += timedelta(days=1)
    return candidate


# ━━━ Durations ━━━

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_PLAIN_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str | int | float) -> timedelta:
    """
    Parse a duration such as "30s", "5m", "1h30m", "1.5h" or "250ms".

    Bare numbers (or numeric strings) are seconds.
    """
    if isinstance(value, bool):
        raise TimeFormatError("invalid duration", value=str(value))
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    text = value.strip()
    if not text:
        raise TimeFormatError("empty duration", value=value)
    if _PLAIN_NUMBER.fullmatch(text):
        return timedelta(seconds=float(text))

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise TimeFormatError(f"invalid duration {value!r} (use e.g. 30s, 5m, 1h30m)", value=value)
    return timedelta(seconds=total)


def format_duration(td: timedelta) -> str:
    """Compact rendering: 1h30m, 5m, 45s."""
    seconds = int(td.total_seconds())
    if seconds <= 0:
        return "0s"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs:
        parts.append(f"{secs}s")
    return "".join(parts)
