"""Decides whether a weekly lesson placement is legal.

The checker is pure decision logic: everything it needs from storage is asked
through a :class:`ScheduleLookup`, so the same rules run for lesson create,
update, drag-and-drop reschedule and change-request approval.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Iterable, Literal, Protocol

from app.core.config import Settings
from app.core.exceptions import ConflictError, ReasonCode
from app.models.lesson import Weekday
from app.services.time_window import TimeWindow, format_clock, is_valid_interval, overlaps

logger = logging.getLogger(__name__)


class Check(str, Enum):
    interval = "interval"
    working_hours = "working_hours"
    teacher_unavailability = "teacher_unavailability"
    teacher_double_booking = "teacher_double_booking"
    class_double_booking = "class_double_booking"
    room_double_booking = "room_double_booking"


FULL_CHECKS: tuple[Check, ...] = tuple(Check)
DOUBLE_BOOKING_CHECKS: tuple[Check, ...] = (
    Check.interval,
    Check.teacher_double_booking,
    Check.class_double_booking,
    Check.room_double_booking,
)
SWAP_CHECKS: tuple[Check, ...] = (
    Check.interval,
    Check.working_hours,
    Check.teacher_unavailability,
    Check.teacher_double_booking,
)


@dataclass(frozen=True)
class PlacementCandidate:
    school_id: str
    teacher_id: str
    class_id: str
    day: Weekday
    start_time: time
    end_time: time
    room_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "day", Weekday(self.day))

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.day, self.start_time, self.end_time)


@dataclass(frozen=True)
class ConflictResult:
    ok: bool
    code: ReasonCode | None = None
    reason: str | None = None
    conflicting_id: str | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def accept(cls, warnings: Iterable[str] = ()) -> "ConflictResult":
        return cls(ok=True, warnings=tuple(warnings))

    @classmethod
    def reject(cls, code: ReasonCode, reason: str, conflicting_id: str | None = None) -> "ConflictResult":
        return cls(ok=False, code=code, reason=reason, conflicting_id=conflicting_id)

    def raise_for_conflict(self) -> None:
        if self.ok:
            return
        details = {"conflicting_id": self.conflicting_id} if self.conflicting_id else {}
        raise ConflictError(self.code, self.reason, details=details)


@dataclass(frozen=True)
class UnavailableBlock:
    id: str
    window: TimeWindow


@dataclass(frozen=True)
class WorkingHoursPolicy:
    start: time = time(8, 0)
    end: time = time(17, 0)
    days: frozenset[Weekday] = frozenset(
        {Weekday.monday, Weekday.tuesday, Weekday.wednesday, Weekday.thursday, Weekday.friday}
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "WorkingHoursPolicy":
        return cls(
            start=settings.working_day_start,
            end=settings.working_day_end,
            days=frozenset(Weekday(day) for day in settings.working_days),
        )

    def describe(self) -> str:
        return f"{format_clock(self.start)} - {format_clock(self.end)}"


class ScheduleLookup(Protocol):
    def unavailable_blocks(self, *, school_id: str, teacher_id: str, day: Weekday) -> Iterable[UnavailableBlock]:
        ...

    def find_overlapping_lesson(
        self,
        *,
        school_id: str,
        window: TimeWindow,
        teacher_id: str | None = None,
        class_id: str | None = None,
        room_id: str | None = None,
        exclude_lesson_id: str | None = None,
    ) -> str | None:
        ...


class ConflictChecker:
    def __init__(
        self,
        lookup: ScheduleLookup,
        policy: WorkingHoursPolicy | None = None,
        room_policy: Literal["enforce", "advisory"] = "enforce",
    ):
        self.lookup = lookup
        self.policy = policy or WorkingHoursPolicy()
        self.room_policy = room_policy

    def check(
        self,
        candidate: PlacementCandidate,
        exclude_lesson_id: str | None = None,
        checks: Iterable[Check] = FULL_CHECKS,
    ) -> ConflictResult:
        enabled = set(checks)

        # Every window below requires a sane interval, so it is always checked.
        if not is_valid_interval(candidate.start_time, candidate.end_time):
            return self._rejected(
                candidate, ConflictResult.reject(ReasonCode.invalid_interval, "Lesson end time must be after start time.")
            )
        window = candidate.window

        if Check.working_hours in enabled:
            result = self._check_working_hours(window)
            if not result.ok:
                return self._rejected(candidate, result)

        if Check.teacher_unavailability in enabled:
            for block in self.lookup.unavailable_blocks(
                school_id=candidate.school_id, teacher_id=candidate.teacher_id, day=window.day
            ):
                if overlaps(window, block.window):
                    return self._rejected(
                        candidate,
                        ConflictResult.reject(
                            ReasonCode.teacher_unavailable,
                            "Lesson time conflicts with a period the teacher has marked as unavailable.",
                            conflicting_id=block.id,
                        ),
                    )

        if Check.teacher_double_booking in enabled:
            clash = self.lookup.find_overlapping_lesson(
                school_id=candidate.school_id,
                window=window,
                teacher_id=candidate.teacher_id,
                exclude_lesson_id=exclude_lesson_id,
            )
            if clash:
                return self._rejected(
                    candidate,
                    ConflictResult.reject(
                        ReasonCode.teacher_double_booked,
                        "Teacher scheduling conflict: the teacher already has another lesson scheduled during this time.",
                        conflicting_id=clash,
                    ),
                )

        if Check.class_double_booking in enabled:
            clash = self.lookup.find_overlapping_lesson(
                school_id=candidate.school_id,
                window=window,
                class_id=candidate.class_id,
                exclude_lesson_id=exclude_lesson_id,
            )
            if clash:
                return self._rejected(
                    candidate,
                    ConflictResult.reject(
                        ReasonCode.class_double_booked,
                        "Class scheduling conflict: this class already has another lesson scheduled during this time.",
                        conflicting_id=clash,
                    ),
                )

        warnings: list[str] = []
        if Check.room_double_booking in enabled and candidate.room_id:
            clash = self.lookup.find_overlapping_lesson(
                school_id=candidate.school_id,
                window=window,
                room_id=candidate.room_id,
                exclude_lesson_id=exclude_lesson_id,
            )
            if clash:
                message = "Room scheduling conflict: the room is already booked during this time."
                if self.room_policy == "enforce":
                    return self._rejected(
                        candidate,
                        ConflictResult.reject(ReasonCode.room_double_booked, message, conflicting_id=clash),
                    )
                logger.warning("Advisory room clash for room %s at %s (lesson %s)", candidate.room_id, window, clash)
                warnings.append(message)

        return ConflictResult.accept(warnings)

    def _check_working_hours(self, window: TimeWindow) -> ConflictResult:
        if window.day not in self.policy.days:
            return ConflictResult.reject(
                ReasonCode.outside_working_hours,
                f"Lessons cannot be scheduled on {window.day.value}s (outside working days).",
            )
        if window.start < self.policy.start or window.end > self.policy.end:
            return ConflictResult.reject(
                ReasonCode.outside_working_hours,
                f"Lesson time is outside working hours ({self.policy.describe()}).",
            )
        return ConflictResult.accept()

    @staticmethod
    def _rejected(candidate: PlacementCandidate, result: ConflictResult) -> ConflictResult:
        logger.debug(
            "Placement rejected for teacher=%s class=%s %s %s-%s: %s",
            candidate.teacher_id,
            candidate.class_id,
            candidate.day.value,
            candidate.start_time,
            candidate.end_time,
            result.code.value if result.code else None,
        )
        return result
