import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.deps import get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Room, School, SchoolClass, Subject, Teacher, User, UserRole  # noqa: E402


@pytest.fixture()
def session_factory():
    # One shared in-memory connection so the app and the fixtures see the same data.
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture()
def school(session_factory):
    """Two schools; the first has an admin, three teachers (two with logins), two classes and a room."""
    db = session_factory()
    try:
        main_school = School(name="Northfield Primary")
        other_school = School(name="Southfield Primary")
        db.add_all([main_school, other_school])
        db.flush()

        teachers = [
            Teacher(school_id=main_school.id, name="Ada", surname="Lovelace", email="ada@northfield.test"),
            Teacher(school_id=main_school.id, name="Alan", surname="Turing", email="alan@northfield.test"),
            Teacher(school_id=main_school.id, name="Grace", surname="Hopper", email="grace@northfield.test"),
        ]
        outsider = Teacher(school_id=other_school.id, name="Edsger", surname="Dijkstra")
        db.add_all([*teachers, outsider])
        db.flush()

        class_a = SchoolClass(school_id=main_school.id, name="5A")
        class_b = SchoolClass(school_id=main_school.id, name="5B")
        subject = Subject(school_id=main_school.id, name="Mathematics")
        room = Room(school_id=main_school.id, name="Room 101", capacity=30)
        db.add_all([class_a, class_b, subject, room])
        db.flush()

        admin = User(school_id=main_school.id, name="Head Teacher", email="admin@northfield.test", role=UserRole.admin)
        teacher_one = User(
            school_id=main_school.id,
            name="Ada Lovelace",
            email="ada.user@northfield.test",
            role=UserRole.teacher,
            teacher_id=teachers[0].id,
        )
        teacher_two = User(
            school_id=main_school.id,
            name="Alan Turing",
            email="alan.user@northfield.test",
            role=UserRole.teacher,
            teacher_id=teachers[1].id,
        )
        other_admin = User(
            school_id=other_school.id,
            name="Other Admin",
            email="admin@southfield.test",
            role=UserRole.admin,
        )
        db.add_all([admin, teacher_one, teacher_two, other_admin])
        db.commit()

        return SimpleNamespace(
            id=main_school.id,
            other_id=other_school.id,
            teacher_ids=[item.id for item in teachers],
            outsider_teacher_id=outsider.id,
            class_a_id=class_a.id,
            class_b_id=class_b.id,
            subject_id=subject.id,
            room_id=room.id,
            admin_headers=auth_headers(admin.id),
            teacher_one_headers=auth_headers(teacher_one.id),
            teacher_two_headers=auth_headers(teacher_two.id),
            other_admin_headers=auth_headers(other_admin.id),
        )
    finally:
        db.close()
