"""Row locking and commit handling for read-decide-write operations.

Conflict evaluation and the write it authorises must happen in one
transaction. Before deciding, callers lock the teacher, class and room rows a
placement touches (``SELECT ... FOR UPDATE``), always in id order, so two
writers aiming at the same teacher or class serialise instead of both passing
the overlap check. Lesson and change-request rows are additionally versioned;
a writer that loses the race sees :class:`StaleStateConflictError`.
"""
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import StaleStateConflictError
from app.models.room import Room
from app.models.school_class import SchoolClass
from app.models.teacher import Teacher

logger = logging.getLogger(__name__)


def _sorted_ids(ids: Iterable[str | None]) -> list[str]:
    return sorted({item for item in ids if item})


def lock_scheduling_keys(
    db: Session,
    *,
    teacher_ids: Iterable[str | None] = (),
    class_ids: Iterable[str | None] = (),
    room_ids: Iterable[str | None] = (),
) -> None:
    for model, ids in ((Teacher, teacher_ids), (SchoolClass, class_ids), (Room, room_ids)):
        wanted = _sorted_ids(ids)
        if not wanted:
            continue
        db.execute(select(model.id).where(model.id.in_(wanted)).order_by(model.id).with_for_update()).all()


def commit(db: Session) -> None:
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.info("Concurrent modification detected on commit: %s", exc)
        raise StaleStateConflictError(
            "This record was changed by another request. Reload it and try again."
        ) from exc
