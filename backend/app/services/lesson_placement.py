from __future__ import annotations

import logging
from datetime import time

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import NotFoundError, StaleStateConflictError
from app.models.lesson import Lesson, Weekday
from app.models.room import Room
from app.models.schedule_change_request import ScheduleChangeRequest
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.models.user import User
from app.services.audit import log_activity
from app.services.conflict_checker import (
    DOUBLE_BOOKING_CHECKS,
    FULL_CHECKS,
    Check,
    ConflictChecker,
    ConflictResult,
    PlacementCandidate,
    WorkingHoursPolicy,
)
from app.services.schedule_lookup import SqlScheduleLookup
from app.services.transaction import lock_scheduling_keys

logger = logging.getLogger(__name__)


def build_checker(db: Session) -> ConflictChecker:
    settings = get_settings()
    return ConflictChecker(
        SqlScheduleLookup(db),
        policy=WorkingHoursPolicy.from_settings(settings),
        room_policy=settings.room_conflict_policy,
    )


def _require_in_school(db: Session, model, label: str, entity_id: str | None, school_id: str):
    entity = db.get(model, entity_id) if entity_id else None
    if entity is None or entity.school_id != school_id:
        raise NotFoundError(label, entity_id)
    return entity


def validate_references(
    db: Session,
    *,
    school_id: str,
    teacher_id: str,
    class_id: str,
    subject_id: str | None = None,
    room_id: str | None = None,
) -> None:
    if subject_id is not None:
        _require_in_school(db, Subject, "Subject", subject_id, school_id)
    _require_in_school(db, SchoolClass, "Class", class_id, school_id)
    _require_in_school(db, Teacher, "Teacher", teacher_id, school_id)
    if room_id is not None:
        _require_in_school(db, Room, "Room", room_id, school_id)


def check_placement(
    db: Session,
    candidate: PlacementCandidate,
    *,
    exclude_lesson_id: str | None = None,
    checks: tuple[Check, ...] = FULL_CHECKS,
) -> ConflictResult:
    validate_references(
        db,
        school_id=candidate.school_id,
        teacher_id=candidate.teacher_id,
        class_id=candidate.class_id,
        room_id=candidate.room_id,
    )
    return build_checker(db).check(candidate, exclude_lesson_id=exclude_lesson_id, checks=checks)


def get_lesson(db: Session, *, school_id: str, lesson_id: str) -> Lesson:
    lesson = db.get(Lesson, lesson_id)
    if lesson is None or lesson.school_id != school_id:
        raise NotFoundError("Lesson", lesson_id)
    return lesson


def lesson_candidate(lesson: Lesson, **overrides) -> PlacementCandidate:
    values = {
        "school_id": lesson.school_id,
        "teacher_id": lesson.teacher_id,
        "class_id": lesson.class_id,
        "day": lesson.day,
        "start_time": lesson.start_time,
        "end_time": lesson.end_time,
        "room_id": lesson.room_id,
    }
    values.update(overrides)
    return PlacementCandidate(**values)


def _ensure_version(lesson: Lesson, expected_version: int | None) -> None:
    if expected_version is not None and expected_version != lesson.version:
        raise StaleStateConflictError(
            "This lesson was changed by another request. Reload it and try again.",
            details={"lesson_id": lesson.id, "current_version": lesson.version},
        )


def evaluate_placement(
    db: Session,
    candidate: PlacementCandidate,
    *,
    exclude_lesson_id: str | None = None,
    checks: tuple[Check, ...] = FULL_CHECKS,
) -> ConflictResult:
    lock_scheduling_keys(
        db,
        teacher_ids=[candidate.teacher_id],
        class_ids=[candidate.class_id],
        room_ids=[candidate.room_id],
    )
    result = build_checker(db).check(candidate, exclude_lesson_id=exclude_lesson_id, checks=checks)
    result.raise_for_conflict()
    return result


def create_lesson(
    db: Session,
    *,
    school_id: str,
    name: str,
    subject_id: str,
    class_id: str,
    teacher_id: str,
    day: Weekday,
    start_time: time,
    end_time: time,
    room_id: str | None = None,
    actor: User | None = None,
) -> tuple[Lesson, ConflictResult]:
    validate_references(
        db,
        school_id=school_id,
        teacher_id=teacher_id,
        class_id=class_id,
        subject_id=subject_id,
        room_id=room_id,
    )
    candidate = PlacementCandidate(
        school_id=school_id,
        teacher_id=teacher_id,
        class_id=class_id,
        day=day,
        start_time=start_time,
        end_time=end_time,
        room_id=room_id,
    )
    result = evaluate_placement(db, candidate)

    lesson = Lesson(
        school_id=school_id,
        name=name,
        subject_id=subject_id,
        class_id=class_id,
        teacher_id=teacher_id,
        room_id=room_id,
        day=candidate.day,
        start_time=start_time,
        end_time=end_time,
    )
    db.add(lesson)
    db.flush()
    log_activity(
        db,
        school_id=school_id,
        user=actor,
        action="lesson.create",
        entity_type="lesson",
        entity_id=lesson.id,
        details={"teacher_id": teacher_id, "class_id": class_id, "window": str(candidate.window)},
    )
    logger.info("Lesson %s placed at %s", lesson.id, candidate.window)
    return lesson, result


def update_lesson(
    db: Session,
    *,
    lesson: Lesson,
    name: str,
    subject_id: str,
    class_id: str,
    teacher_id: str,
    day: Weekday,
    start_time: time,
    end_time: time,
    room_id: str | None = None,
    expected_version: int | None = None,
    actor: User | None = None,
) -> tuple[Lesson, ConflictResult]:
    _ensure_version(lesson, expected_version)
    validate_references(
        db,
        school_id=lesson.school_id,
        teacher_id=teacher_id,
        class_id=class_id,
        subject_id=subject_id,
        room_id=room_id,
    )
    candidate = lesson_candidate(
        lesson,
        teacher_id=teacher_id,
        class_id=class_id,
        day=day,
        start_time=start_time,
        end_time=end_time,
        room_id=room_id,
    )
    result = evaluate_placement(db, candidate, exclude_lesson_id=lesson.id)

    lesson.name = name
    lesson.subject_id = subject_id
    lesson.class_id = class_id
    lesson.teacher_id = teacher_id
    lesson.room_id = room_id
    lesson.day = candidate.day
    lesson.start_time = start_time
    lesson.end_time = end_time
    log_activity(
        db,
        school_id=lesson.school_id,
        user=actor,
        action="lesson.update",
        entity_type="lesson",
        entity_id=lesson.id,
        details={"teacher_id": teacher_id, "class_id": class_id, "window": str(candidate.window)},
    )
    return lesson, result


def reschedule_lesson(
    db: Session,
    *,
    lesson: Lesson,
    day: Weekday,
    start_time: time,
    end_time: time,
    expected_version: int | None = None,
    actor: User | None = None,
) -> tuple[Lesson, ConflictResult]:
    """Move a lesson to a new slot, as a drag or resize on the timetable does.

    Teacher, class and room are taken from the stored lesson. Only interval
    sanity and double-booking are re-checked; working hours and unavailability
    are deliberately not.
    """
    _ensure_version(lesson, expected_version)
    previous = lesson_candidate(lesson).window
    candidate = lesson_candidate(lesson, day=day, start_time=start_time, end_time=end_time)
    result = evaluate_placement(db, candidate, exclude_lesson_id=lesson.id, checks=DOUBLE_BOOKING_CHECKS)

    lesson.day = candidate.day
    lesson.start_time = start_time
    lesson.end_time = end_time
    log_activity(
        db,
        school_id=lesson.school_id,
        user=actor,
        action="lesson.reschedule",
        entity_type="lesson",
        entity_id=lesson.id,
        details={"from": str(previous), "to": str(candidate.window)},
    )
    return lesson, result


def delete_lesson(db: Session, *, lesson: Lesson, actor: User | None = None) -> None:
    """Delete a lesson together with every change request raised against it."""
    requests = db.execute(
        select(ScheduleChangeRequest).where(ScheduleChangeRequest.lesson_id == lesson.id)
    ).scalars().all()
    for change_request in requests:
        db.delete(change_request)
    log_activity(
        db,
        school_id=lesson.school_id,
        user=actor,
        action="lesson.delete",
        entity_type="lesson",
        entity_id=lesson.id,
        details={
            "name": lesson.name,
            "teacher_id": lesson.teacher_id,
            "class_id": lesson.class_id,
            "removed_requests": len(requests),
        },
    )
    db.flush()
    db.delete(lesson)


def list_lessons(
    db: Session,
    *,
    school_id: str,
    teacher_id: str | None = None,
    class_id: str | None = None,
    day: Weekday | None = None,
    exclude_id: str | None = None,
) -> list[Lesson]:
    query = select(Lesson).where(Lesson.school_id == school_id)
    if teacher_id is not None:
        query = query.where(Lesson.teacher_id == teacher_id)
    if class_id is not None:
        query = query.where(Lesson.class_id == class_id)
    if day is not None:
        query = query.where(Lesson.day == day)
    if exclude_id is not None:
        query = query.where(Lesson.id != exclude_id)
    lessons = list(db.execute(query).scalars())
    lessons.sort(key=lambda item: (item.day.position, item.start_time, item.name))
    return lessons


def list_teacher_lessons(db: Session, *, school_id: str, teacher_id: str) -> list[Lesson]:
    _require_in_school(db, Teacher, "Teacher", teacher_id, school_id)
    return list_lessons(db, school_id=school_id, teacher_id=teacher_id)
