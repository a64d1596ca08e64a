"""
Clock parsing and the rolling 48h timeline.

Duration, night-hour and rest-gap arithmetic all go through ``ClockSpan`` so
midnight wraparound is handled in one place.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from dateutil import parser
from dateutil.relativedelta import relativedelta, MO

from .exceptions import InvalidInputError, InvalidTimeFormat

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_time_to_minutes(time_str) -> int:
    """Convert an "HH:MM" clock value (or ``datetime.time``) to minutes since midnight."""
    if isinstance(time_str, time):
        return time_str.hour * 60 + time_str.minute
    if not isinstance(time_str, str):
        raise InvalidTimeFormat(time_str)

    match = _TIME_PATTERN.match(time_str.strip())
    if not match:
        raise InvalidTimeFormat(time_str)

    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        raise InvalidTimeFormat(time_str)

    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Convert minutes on the timeline back to an "HH:MM" clock value."""
    hours = (minutes // 60) % 24
    return f"{hours:02d}:{minutes % 60:02d}"


def coerce_date(value) -> date:
    """Accept a date, a datetime or an ISO date string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return parser.isoparse(value).date()
        except ValueError as exc:
            raise InvalidInputError(f"Invalid date: {value!r}") from exc
    raise InvalidInputError(f"Invalid date: {value!r}")


@dataclass(frozen=True)
class ClockSpan:
    """
    A clock interval on a rolling 48h timeline.

    Minute 0 is midnight of the day the span starts. An end at or before the
    start is read as the next day, so ``end`` lies in (start, start + 1440].
    """
    start: int
    end: int

    @classmethod
    def from_clock(cls, start_time, end_time) -> "ClockSpan":
        start = parse_time_to_minutes(start_time)
        end = parse_time_to_minutes(end_time)
        if end <= start:
            end += MINUTES_PER_DAY
        return cls(start, end)

    @property
    def minutes(self) -> int:
        return self.end - self.start

    @property
    def crosses_midnight(self) -> bool:
        return self.end > MINUTES_PER_DAY

    def shifted(self, days: int) -> "ClockSpan":
        offset = days * MINUTES_PER_DAY
        return ClockSpan(self.start + offset, self.end + offset)

    def overlap_minutes(self, other: "ClockSpan") -> int:
        return max(0, min(self.end, other.end) - max(self.start, other.start))

    def on(self, day: date) -> "Interval":
        """Anchor the span to a calendar day."""
        midnight = datetime.combine(day, time())
        return Interval(
            start=midnight + timedelta(minutes=self.start),
            end=midnight + timedelta(minutes=self.end),
        )


@dataclass(frozen=True)
class Interval:
    """Absolute half-open [start, end) interval in naive local time."""
    start: datetime
    end: datetime

    @property
    def hours(self) -> float:
        return hours_between(self.start, self.end)

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def clipped(self, lower: datetime, upper: datetime) -> Optional["Interval"]:
        start = max(self.start, lower)
        end = min(self.end, upper)
        if start >= end:
            return None
        return Interval(start, end)

    def days(self) -> list[date]:
        """Calendar days touched by the interval."""
        last = (self.end - timedelta(microseconds=1)).date()
        current = self.start.date()
        touched = []
        while current <= last:
            touched.append(current)
            current += timedelta(days=1)
        return touched


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def night_windows(night_start, night_end) -> list[ClockSpan]:
    """The night window anchored to the previous, same and following day."""
    window = ClockSpan.from_clock(night_start, night_end)
    return [window.shifted(days) for days in (-1, 0, 1)]


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the ISO week containing ``day``."""
    monday = day + relativedelta(weekday=MO(-1))
    return monday, monday + timedelta(days=6)


def week_interval(day: date) -> Interval:
    """Monday 00:00 to the following Monday 00:00."""
    monday, _ = week_bounds(day)
    start = datetime.combine(monday, time())
    return Interval(start, start + timedelta(days=7))
