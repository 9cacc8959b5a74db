"""Teacher unavailability blocks.

Every stored block marks time a teacher cannot be scheduled; teachers are
available by default inside working hours. Blocks of one teacher never overlap
on the same weekday.
"""
from __future__ import annotations

import logging
from datetime import time

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError, ReasonCode, ValidationError
from app.models.lesson import Weekday
from app.models.teacher import Teacher
from app.models.teacher_availability import TeacherAvailability
from app.models.user import User
from app.services.audit import log_activity
from app.services.time_window import TimeWindow, is_valid_interval, overlaps
from app.services.transaction import lock_scheduling_keys

logger = logging.getLogger(__name__)

OVERLAP_MESSAGE = "This unavailability block overlaps with an existing one for the selected day and time."


def block_window(block: TeacherAvailability) -> TimeWindow:
    return TimeWindow(block.day_of_week, block.start_time, block.end_time)


def list_unavailable(
    db: Session,
    *,
    school_id: str,
    teacher_id: str,
    day: Weekday | None = None,
) -> list[TeacherAvailability]:
    query = select(TeacherAvailability).where(
        TeacherAvailability.school_id == school_id,
        TeacherAvailability.teacher_id == teacher_id,
        TeacherAvailability.is_available.is_(False),
    )
    if day is not None:
        query = query.where(TeacherAvailability.day_of_week == day)
    blocks = list(db.execute(query).scalars())
    blocks.sort(key=lambda item: (item.day_of_week.position, item.start_time))
    return blocks


def get_block(db: Session, *, school_id: str, block_id: str) -> TeacherAvailability:
    block = db.get(TeacherAvailability, block_id)
    if block is None or block.school_id != school_id:
        raise NotFoundError("Unavailability block", block_id)
    return block


def _require_teacher(db: Session, *, school_id: str, teacher_id: str) -> Teacher:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None or teacher.school_id != school_id:
        raise NotFoundError("Teacher", teacher_id)
    return teacher


def _require_window(day: Weekday, start_time: time, end_time: time) -> TimeWindow:
    if not is_valid_interval(start_time, end_time):
        raise ValidationError("End time must be after start time.", details={"field": "end_time"})
    return TimeWindow(day, start_time, end_time)


def find_overlapping_block(
    db: Session,
    *,
    school_id: str,
    teacher_id: str,
    window: TimeWindow,
    exclude_block_id: str | None = None,
) -> TeacherAvailability | None:
    for block in list_unavailable(db, school_id=school_id, teacher_id=teacher_id, day=window.day):
        if block.id == exclude_block_id:
            continue
        if overlaps(window, block_window(block)):
            return block
    return None


def _reject_overlap(block: TeacherAvailability) -> ConflictError:
    return ConflictError(
        ReasonCode.overlapping_availability_block,
        OVERLAP_MESSAGE,
        details={"conflicting_id": block.id},
    )


def _flush(db: Session) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        # Unique (teacher, day, start, school) lost to a concurrent writer.
        db.rollback()
        raise ConflictError(ReasonCode.overlapping_availability_block, OVERLAP_MESSAGE) from exc


def create_block(
    db: Session,
    *,
    school_id: str,
    teacher_id: str,
    day: Weekday,
    start_time: time,
    end_time: time,
    notes: str | None = None,
    actor: User | None = None,
) -> TeacherAvailability:
    window = _require_window(day, start_time, end_time)
    _require_teacher(db, school_id=school_id, teacher_id=teacher_id)
    lock_scheduling_keys(db, teacher_ids=[teacher_id])

    clash = find_overlapping_block(db, school_id=school_id, teacher_id=teacher_id, window=window)
    if clash is not None:
        raise _reject_overlap(clash)

    block = TeacherAvailability(
        school_id=school_id,
        teacher_id=teacher_id,
        day_of_week=window.day,
        start_time=window.start,
        end_time=window.end,
        is_available=False,
        notes=notes,
    )
    db.add(block)
    _flush(db)
    log_activity(
        db,
        school_id=school_id,
        user=actor,
        action="availability.create",
        entity_type="teacher_availability",
        entity_id=block.id,
        details={"teacher_id": teacher_id, "window": str(window)},
    )
    logger.info("Unavailability block %s created for teacher %s (%s)", block.id, teacher_id, window)
    return block


def update_block(
    db: Session,
    *,
    block: TeacherAvailability,
    day: Weekday,
    start_time: time,
    end_time: time,
    notes: str | None = None,
    actor: User | None = None,
) -> TeacherAvailability:
    window = _require_window(day, start_time, end_time)
    lock_scheduling_keys(db, teacher_ids=[block.teacher_id])

    clash = find_overlapping_block(
        db,
        school_id=block.school_id,
        teacher_id=block.teacher_id,
        window=window,
        exclude_block_id=block.id,
    )
    if clash is not None:
        raise _reject_overlap(clash)

    block.day_of_week = window.day
    block.start_time = window.start
    block.end_time = window.end
    block.is_available = False
    block.notes = notes
    _flush(db)
    log_activity(
        db,
        school_id=block.school_id,
        user=actor,
        action="availability.update",
        entity_type="teacher_availability",
        entity_id=block.id,
        details={"teacher_id": block.teacher_id, "window": str(window)},
    )
    return block


def delete_block(db: Session, *, block: TeacherAvailability, actor: User | None = None) -> None:
    log_activity(
        db,
        school_id=block.school_id,
        user=actor,
        action="availability.delete",
        entity_type="teacher_availability",
        entity_id=block.id,
        details={"teacher_id": block.teacher_id, "window": str(block_window(block))},
    )
    db.delete(block)
