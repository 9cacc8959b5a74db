"""Lifecycle of teacher-submitted schedule change requests.

A request starts ``pending`` and ends in exactly one of ``approved``,
``rejected`` or ``canceled``. Conflicts are not evaluated on submission; the
schedule may change before an admin reviews it, so approval re-reads the live
lesson and runs the conflict checker then. A failed approval raises and leaves
the request pending; only an explicit rejection with notes closes it.
"""
from __future__ import annotations

import logging
from datetime import datetime, time, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    StaleStateConflictError,
    UnauthorizedTransitionError,
    ValidationError,
)
from app.models.lesson import Weekday
from app.models.schedule_change_request import RequestStatus, ScheduleChangeRequest, ScheduleChangeType
from app.models.teacher import Teacher
from app.models.user import User
from app.services.audit import log_activity
from app.services.conflict_checker import FULL_CHECKS, SWAP_CHECKS
from app.services.lesson_placement import evaluate_placement, get_lesson, lesson_candidate
from app.services.time_window import is_valid_interval

logger = logging.getLogger(__name__)

APPROVED_NOTE = "Approved"


def get_request(db: Session, *, school_id: str, request_id: str, for_update: bool = False) -> ScheduleChangeRequest:
    if for_update:
        change_request = db.get(ScheduleChangeRequest, request_id, with_for_update=True, populate_existing=True)
    else:
        change_request = db.get(ScheduleChangeRequest, request_id)
    if change_request is None or change_request.school_id != school_id:
        raise NotFoundError("Schedule change request", request_id)
    return change_request


def _require_pending(change_request: ScheduleChangeRequest, action: str) -> None:
    if change_request.is_terminal:
        raise UnauthorizedTransitionError(
            f"Only pending requests can be {action}; this request is {change_request.status.value}.",
            details={"request_id": change_request.id, "status": change_request.status.value},
        )


def _teacher_in_school(db: Session, *, school_id: str, teacher_id: str) -> Teacher | None:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None or teacher.school_id != school_id:
        return None
    return teacher


def submit_request(
    db: Session,
    *,
    school_id: str,
    lesson_id: str,
    requesting_teacher_id: str,
    change_type: ScheduleChangeType,
    reason: str,
    proposed_day: Weekday | None = None,
    proposed_start_time: time | None = None,
    proposed_end_time: time | None = None,
    proposed_swap_teacher_id: str | None = None,
    actor: User | None = None,
) -> ScheduleChangeRequest:
    lesson = get_lesson(db, school_id=school_id, lesson_id=lesson_id)
    time_fields = (proposed_day, proposed_start_time, proposed_end_time)

    if change_type == ScheduleChangeType.time_change:
        if any(value is None for value in time_fields):
            raise ValidationError(
                "Proposed day, start time, and end time are required for a time change.",
                details={"change_type": change_type.value},
            )
        if proposed_swap_teacher_id is not None:
            raise ValidationError(
                "A time change request cannot name a swap teacher.",
                details={"change_type": change_type.value},
            )
        if not is_valid_interval(proposed_start_time, proposed_end_time):
            raise ValidationError("Proposed end time must be after start time.", details={"field": "proposed_end_time"})
    else:
        if not proposed_swap_teacher_id:
            raise ValidationError(
                "A swap teacher is required for a swap request.",
                details={"change_type": change_type.value},
            )
        if any(value is not None for value in time_fields):
            raise ValidationError(
                "A swap request cannot propose a new time.",
                details={"change_type": change_type.value},
            )
        if lesson.teacher_id != requesting_teacher_id:
            raise UnauthorizedTransitionError(
                "You can only request swaps for your own lessons.",
                status_code=403,
                details={"lesson_id": lesson.id},
            )
        if proposed_swap_teacher_id == requesting_teacher_id:
            raise ValidationError("You cannot swap a lesson with yourself.", details={"field": "proposed_swap_teacher_id"})
        if _teacher_in_school(db, school_id=school_id, teacher_id=proposed_swap_teacher_id) is None:
            raise NotFoundError("Teacher", proposed_swap_teacher_id)

    change_request = ScheduleChangeRequest(
        school_id=school_id,
        lesson_id=lesson.id,
        requesting_teacher_id=requesting_teacher_id,
        requested_change_type=change_type,
        proposed_day=Weekday(proposed_day) if proposed_day is not None else None,
        proposed_start_time=proposed_start_time,
        proposed_end_time=proposed_end_time,
        proposed_swap_teacher_id=proposed_swap_teacher_id,
        reason=reason.strip(),
        status=RequestStatus.pending,
    )
    db.add(change_request)
    db.flush()
    log_activity(
        db,
        school_id=school_id,
        user=actor,
        action="schedule_request.submit",
        entity_type="schedule_change_request",
        entity_id=change_request.id,
        details={"lesson_id": lesson.id, "change_type": change_type.value},
    )
    logger.info(
        "Schedule change request %s (%s) submitted by teacher %s",
        change_request.id,
        change_type.value,
        requesting_teacher_id,
    )
    return change_request


def cancel_request(
    db: Session,
    *,
    change_request: ScheduleChangeRequest,
    teacher_id: str | None,
    actor: User | None = None,
) -> ScheduleChangeRequest:
    if teacher_id != change_request.requesting_teacher_id:
        raise UnauthorizedTransitionError(
            "You can only cancel your own requests.",
            status_code=403,
            details={"request_id": change_request.id},
        )
    _require_pending(change_request, "canceled")

    change_request.status = RequestStatus.canceled
    log_activity(
        db,
        school_id=change_request.school_id,
        user=actor,
        action="schedule_request.cancel",
        entity_type="schedule_change_request",
        entity_id=change_request.id,
    )
    return change_request


def reject_request(
    db: Session,
    *,
    change_request: ScheduleChangeRequest,
    admin_notes: str,
    actor: User,
) -> ScheduleChangeRequest:
    notes = (admin_notes or "").strip()
    if not notes:
        raise ValidationError("Admin notes are required when rejecting a request.", details={"field": "admin_notes"})
    _require_pending(change_request, "rejected")

    change_request.status = RequestStatus.rejected
    change_request.admin_notes = notes
    change_request.reviewed_by_id = actor.id
    change_request.reviewed_at = datetime.now(timezone.utc)
    log_activity(
        db,
        school_id=change_request.school_id,
        user=actor,
        action="schedule_request.reject",
        entity_type="schedule_change_request",
        entity_id=change_request.id,
        details={"admin_notes": notes},
    )
    return change_request


def approve_request(
    db: Session,
    *,
    change_request: ScheduleChangeRequest,
    actor: User,
) -> ScheduleChangeRequest:
    _require_pending(change_request, "approved")
    lesson = get_lesson(db, school_id=change_request.school_id, lesson_id=change_request.lesson_id)
    db.refresh(lesson)

    try:
        if change_request.requested_change_type == ScheduleChangeType.time_change:
            candidate = lesson_candidate(
                lesson,
                day=change_request.proposed_day,
                start_time=change_request.proposed_start_time,
                end_time=change_request.proposed_end_time,
            )
            evaluate_placement(db, candidate, exclude_lesson_id=lesson.id, checks=FULL_CHECKS)
            change = {"from": str(lesson_candidate(lesson).window), "to": str(candidate.window)}
            lesson.day = candidate.day
            lesson.start_time = candidate.start_time
            lesson.end_time = candidate.end_time
        else:
            swap_teacher_id = change_request.proposed_swap_teacher_id
            if lesson.teacher_id != change_request.requesting_teacher_id:
                raise StaleStateConflictError(
                    "The lesson is no longer taught by the requesting teacher.",
                    details={"lesson_id": lesson.id, "current_teacher_id": lesson.teacher_id},
                )
            if _teacher_in_school(db, school_id=change_request.school_id, teacher_id=swap_teacher_id) is None:
                raise StaleStateConflictError(
                    "The proposed swap teacher no longer exists in this school.",
                    details={"teacher_id": swap_teacher_id},
                )
            candidate = lesson_candidate(lesson, teacher_id=swap_teacher_id)
            evaluate_placement(db, candidate, exclude_lesson_id=lesson.id, checks=SWAP_CHECKS)
            change = {"from_teacher_id": lesson.teacher_id, "to_teacher_id": swap_teacher_id}
            lesson.teacher_id = swap_teacher_id
    except ConflictError as exc:
        logger.info(
            "Approval of request %s blocked (%s): %s",
            change_request.id,
            exc.code.value,
            exc.message,
        )
        raise

    change_request.status = RequestStatus.approved
    change_request.admin_notes = APPROVED_NOTE
    change_request.reviewed_by_id = actor.id
    change_request.reviewed_at = datetime.now(timezone.utc)
    log_activity(
        db,
        school_id=change_request.school_id,
        user=actor,
        action="schedule_request.approve",
        entity_type="schedule_change_request",
        entity_id=change_request.id,
        details={"lesson_id": lesson.id, **change},
    )
    logger.info("Schedule change request %s approved; lesson %s updated", change_request.id, lesson.id)
    return change_request


def list_teacher_requests(db: Session, *, school_id: str, teacher_id: str) -> list[ScheduleChangeRequest]:
    query = (
        select(ScheduleChangeRequest)
        .where(
            ScheduleChangeRequest.school_id == school_id,
            ScheduleChangeRequest.requesting_teacher_id == teacher_id,
        )
        .order_by(ScheduleChangeRequest.created_at.desc(), ScheduleChangeRequest.id)
    )
    return list(db.execute(query).scalars())


def list_requests(
    db: Session,
    *,
    school_id: str,
    status: RequestStatus | None = RequestStatus.pending,
) -> list[ScheduleChangeRequest]:
    query = select(ScheduleChangeRequest).where(ScheduleChangeRequest.school_id == school_id)
    if status is not None:
        query = query.where(ScheduleChangeRequest.status == status)
    query = query.order_by(ScheduleChangeRequest.created_at.asc(), ScheduleChangeRequest.id)
    return list(db.execute(query).scalars())

