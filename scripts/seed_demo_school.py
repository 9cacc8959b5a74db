"""Seed a demo school with an admin, two teachers and a small weekly timetable.

Prints bearer tokens for each demo account so the API can be exercised by hand.

Run:
  PYTHONPATH=backend python scripts/seed_demo_school.py
"""

from __future__ import annotations

import os
from datetime import time

from sqlalchemy import select

from app.core.security import create_access_token
from app.db.bootstrap import ensure_runtime_schema_compatibility
from app.db.session import SessionLocal
from app.models.lesson import Lesson, Weekday
from app.models.room import Room
from app.models.school import School
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.models.user import User, UserRole
from app.services.lesson_placement import create_lesson

SCHOOL_NAME = os.getenv("DEMO_SCHOOL_NAME", "Demo Primary School")

DEMO_TEACHERS = [
    {"name": "Ada", "surname": "Lovelace", "email": "ada.lovelace@demo.school"},
    {"name": "Alan", "surname": "Turing", "email": "alan.turing@demo.school"},
]

DEMO_LESSONS = [
    ("Mathematics 5A", 0, Weekday.monday, time(9, 0), time(10, 0)),
    ("Mathematics 5A", 0, Weekday.wednesday, time(9, 0), time(10, 0)),
    ("Computing 5A", 1, Weekday.tuesday, time(13, 0), time(14, 0)),
]


def _get_or_create(db, model, defaults: dict | None = None, **filters):
    instance = db.execute(select(model).filter_by(**filters)).scalar_one_or_none()
    if instance is not None:
        return instance
    instance = model(**filters, **(defaults or {}))
    db.add(instance)
    db.flush()
    return instance


def main() -> None:
    ensure_runtime_schema_compatibility()
    db = SessionLocal()
    try:
        school = _get_or_create(db, School, name=SCHOOL_NAME)
        admin = _get_or_create(
            db,
            User,
            email="admin@demo.school",
            defaults={"school_id": school.id, "name": "Demo Admin", "role": UserRole.admin},
        )

        teachers: list[Teacher] = []
        accounts: list[User] = [admin]
        for entry in DEMO_TEACHERS:
            teacher = _get_or_create(
                db,
                Teacher,
                school_id=school.id,
                email=entry["email"],
                defaults={"name": entry["name"], "surname": entry["surname"]},
            )
            teachers.append(teacher)
            accounts.append(
                _get_or_create(
                    db,
                    User,
                    email=entry["email"],
                    defaults={
                        "school_id": school.id,
                        "name": teacher.full_name,
                        "role": UserRole.teacher,
                        "teacher_id": teacher.id,
                    },
                )
            )

        school_class = _get_or_create(db, SchoolClass, school_id=school.id, name="5A")
        subject = _get_or_create(db, Subject, school_id=school.id, name="Mathematics")
        room = _get_or_create(db, Room, school_id=school.id, name="Room 101", defaults={"capacity": 30})

        already_seeded = db.execute(select(Lesson.id).where(Lesson.school_id == school.id).limit(1)).scalar_one_or_none()
        for name, teacher_index, day, start, end in [] if already_seeded else DEMO_LESSONS:
            create_lesson(
                db,
                school_id=school.id,
                name=name,
                subject_id=subject.id,
                class_id=school_class.id,
                teacher_id=teachers[teacher_index].id,
                room_id=room.id,
                day=day,
                start_time=start,
                end_time=end,
                actor=admin,
            )
        db.commit()

        print(f"School: {school.name} ({school.id})")
        for account in accounts:
            print(f"{account.role.value:<8} {account.email:<28} {create_access_token(account.id)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
