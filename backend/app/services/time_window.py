"""Weekly time windows and their overlap arithmetic.

A lesson or unavailability block recurs every week, so it is identified by a
weekday and a pair of clock times. To compare windows with plain datetime
arithmetic each ``(weekday, clock)`` pair is projected onto a fixed reference
week; every weekday owns its own 24 hour band there, so windows on different
days can never overlap.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from app.models.lesson import Weekday

REFERENCE_MONDAY = date(2000, 1, 3)
CLOCK_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_clock(value: str) -> time:
    match = CLOCK_PATTERN.match(value.strip())
    if match is None:
        raise ValueError("Time must be in HH:MM 24-hour format")
    return time(int(match.group(1)), int(match.group(2)))


def format_clock(value: time) -> str:
    return value.strftime("%H:%M")


def project(day: Weekday, clock: time) -> datetime:
    """Map a weekday and clock time to a point on the reference week."""
    anchor = REFERENCE_MONDAY + timedelta(days=Weekday(day).position)
    return datetime.combine(anchor, clock)


@dataclass(frozen=True)
class TimeWindow:
    day: Weekday
    start: time
    end: time

    def __post_init__(self) -> None:
        object.__setattr__(self, "day", Weekday(self.day))
        if self.end <= self.start:
            raise ValueError("end must be after start")

    @property
    def starts_at(self) -> datetime:
        return project(self.day, self.start)

    @property
    def ends_at(self) -> datetime:
        return project(self.day, self.end)

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(self, other)

    def __str__(self) -> str:
        return f"{self.day.value} {format_clock(self.start)}-{format_clock(self.end)}"


def overlaps(a: TimeWindow, b: TimeWindow) -> bool:
    # Half-open intervals: touching windows (a.end == b.start) do not overlap.
    return a.starts_at < b.ends_at and b.starts_at < a.ends_at


def is_valid_interval(start: time, end: time) -> bool:
    return end > start
