from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_school_member, require_school_roles
from app.core.exceptions import UnauthorizedTransitionError
from app.models.lesson import Weekday
from app.models.user import User, UserRole
from app.schemas.common import ActionResult
from app.schemas.lesson import (
    ConflictResultOut,
    LessonCreate,
    LessonOut,
    LessonReschedule,
    LessonUpdate,
    PlacementCheck,
)
from app.services import lesson_placement
from app.services.conflict_checker import PlacementCandidate
from app.services.transaction import commit

router = APIRouter()


def _readable_teacher_id(current_user: User, teacher_id: str | None) -> str | None:
    """Teachers only read their own timetable; admins read any teacher's."""
    if current_user.role == UserRole.admin:
        return teacher_id
    if not current_user.teacher_id or teacher_id not in (None, current_user.teacher_id):
        raise UnauthorizedTransitionError(
            "You can only view your own lessons.",
            status_code=status.HTTP_403_FORBIDDEN,
        )
    return current_user.teacher_id


def _placed(message: str, lesson, result) -> ActionResult[LessonOut]:
    return ActionResult[LessonOut](
        message=message,
        data=LessonOut.model_validate(lesson),
        warnings=list(result.warnings),
    )


@router.post("/schools/{school_id}/lessons/check", response_model=ActionResult[ConflictResultOut])
def check_lesson_placement(
    school_id: str,
    payload: PlacementCheck,
    current_user: User = Depends(get_school_member),
    db: Session = Depends(get_db),
) -> ActionResult[ConflictResultOut]:
    candidate = PlacementCandidate(
        school_id=school_id,
        teacher_id=payload.teacher_id,
        class_id=payload.class_id,
        day=payload.day,
        start_time=payload.start_time,
        end_time=payload.end_time,
        room_id=payload.room_id,
    )
    result = lesson_placement.check_placement(db, candidate, exclude_lesson_id=payload.exclude_lesson_id)
    message = "Placement is free of conflicts." if result.ok else result.reason
    return ActionResult[ConflictResultOut](
        message=message,
        data=ConflictResultOut.model_validate(result),
        warnings=list(result.warnings),
    )


@router.get("/schools/{school_id}/lessons", response_model=ActionResult[list[LessonOut]])
def list_lessons(
    school_id: str,
    teacher_id: str | None = Query(default=None),
    class_id: str | None = Query(default=None),
    day: Weekday | None = Query(default=None),
    current_user: User = Depends(get_school_member),
    db: Session = Depends(get_db),
) -> ActionResult[list[LessonOut]]:
    lessons = lesson_placement.list_lessons(
        db,
        school_id=school_id,
        teacher_id=_readable_teacher_id(current_user, teacher_id),
        class_id=class_id,
        day=day,
    )
    return ActionResult[list[LessonOut]](
        message=f"{len(lessons)} lesson(s) found.",
        data=[LessonOut.model_validate(item) for item in lessons],
    )


@router.post(
    "/schools/{school_id}/lessons",
    response_model=ActionResult[LessonOut],
    status_code=status.HTTP_201_CREATED,
)
def create_lesson(
    school_id: str,
    payload: LessonCreate,
    current_user: User = Depends(require_school_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ActionResult[LessonOut]:
    lesson, result = lesson_placement.create_lesson(
        db,
        school_id=school_id,
        name=payload.name,
        subject_id=payload.subject_id,
        class_id=payload.class_id,
        teacher_id=payload.teacher_id,
        room_id=payload.room_id,
        day=payload.day,
        start_time=payload.start_time,
        end_time=payload.end_time,
        actor=current_user,
    )
    commit(db)
    db.refresh(lesson)
    return _placed("Lesson created successfully.", lesson, result)


@router.put("/schools/{school_id}/lessons/{lesson_id}", response_model=ActionResult[LessonOut])
def update_lesson(
    school_id: str,
    lesson_id: str,
    payload: LessonUpdate,
    current_user: User = Depends(require_school_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ActionResult[LessonOut]:
    lesson = lesson_placement.get_lesson(db, school_id=school_id, lesson_id=lesson_id)
    lesson, result = lesson_placement.update_lesson(
        db,
        lesson=lesson,
        name=payload.name,
        subject_id=payload.subject_id,
        class_id=payload.class_id,
        teacher_id=payload.teacher_id,
        room_id=payload.room_id,
        day=payload.day,
        start_time=payload.start_time,
        end_time=payload.end_time,
        expected_version=payload.version,
        actor=current_user,
    )
    commit(db)
    db.refresh(lesson)
    return _placed("Lesson updated successfully.", lesson, result)


@router.patch("/schools/{school_id}/lessons/{lesson_id}/schedule", response_model=ActionResult[LessonOut])
def reschedule_lesson(
    school_id: str,
    lesson_id: str,
    payload: LessonReschedule,
    current_user: User = Depends(require_school_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ActionResult[LessonOut]:
    lesson = lesson_placement.get_lesson(db, school_id=school_id, lesson_id=lesson_id)
    lesson, result = lesson_placement.reschedule_lesson(
        db,
        lesson=lesson,
        day=payload.day,
        start_time=payload.start_time,
        end_time=payload.end_time,
        expected_version=payload.version,
        actor=current_user,
    )
    commit(db)
    db.refresh(lesson)
    return _placed("Lesson time updated successfully.", lesson, result)


@router.delete("/schools/{school_id}/lessons/{lesson_id}", response_model=ActionResult[None])
def delete_lesson(
    school_id: str,
    lesson_id: str,
    current_user: User = Depends(require_school_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ActionResult[None]:
    lesson = lesson_placement.get_lesson(db, school_id=school_id, lesson_id=lesson_id)
    lesson_placement.delete_lesson(db, lesson=lesson, actor=current_user)
    commit(db)
    return ActionResult[None](message="Lesson deleted successfully.")


@router.get("/schools/{school_id}/teachers/{teacher_id}/lessons", response_model=ActionResult[list[LessonOut]])
def list_teacher_lessons(
    school_id: str,
    teacher_id: str,
    current_user: User = Depends(get_school_member),
    db: Session = Depends(get_db),
) -> ActionResult[list[LessonOut]]:
    _readable_teacher_id(current_user, teacher_id)
    lessons = lesson_placement.list_teacher_lessons(db, school_id=school_id, teacher_id=teacher_id)
    return ActionResult[list[LessonOut]](
        message=f"{len(lessons)} lesson(s) found.",
        data=[LessonOut.model_validate(item) for item in lessons],
    )
