from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.lesson import Lesson, Weekday
from app.services.availability import block_window, list_unavailable
from app.services.conflict_checker import UnavailableBlock
from app.services.time_window import TimeWindow


class SqlScheduleLookup:
    """Answers conflict-checker questions from the current transaction."""

    def __init__(self, db: Session):
        self.db = db

    def unavailable_blocks(self, *, school_id: str, teacher_id: str, day: Weekday) -> list[UnavailableBlock]:
        return [
            UnavailableBlock(id=block.id, window=block_window(block))
            for block in list_unavailable(self.db, school_id=school_id, teacher_id=teacher_id, day=day)
        ]

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
        query = select(Lesson.id).where(
            Lesson.school_id == school_id,
            Lesson.day == window.day,
            Lesson.start_time < window.end,
            Lesson.end_time > window.start,
        )
        if teacher_id is not None:
            query = query.where(Lesson.teacher_id == teacher_id)
        if class_id is not None:
            query = query.where(Lesson.class_id == class_id)
        if room_id is not None:
            query = query.where(Lesson.room_id == room_id)
        if exclude_lesson_id is not None:
            query = query.where(Lesson.id != exclude_lesson_id)
        return self.db.execute(query.order_by(Lesson.start_time, Lesson.id).limit(1)).scalar_one_or_none()
