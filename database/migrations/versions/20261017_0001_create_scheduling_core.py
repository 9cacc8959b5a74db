"""create scheduling core

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


weekday = postgresql.ENUM(
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday", name="weekday", create_type=False
)
user_role = postgresql.ENUM("admin", "teacher", name="user_role", create_type=False)
schedule_change_type = postgresql.ENUM("time_change", "swap", name="schedule_change_type", create_type=False)
request_status = postgresql.ENUM(
    "pending", "approved", "rejected", "canceled", name="request_status", create_type=False
)
ENUM_TYPES = (weekday, user_role, schedule_change_type, request_status)


def _school_fk() -> sa.Column:
    return sa.Column(
        "school_id",
        sa.String(length=36),
        sa.ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUM_TYPES:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "schools",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "teachers",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _school_fk(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("surname", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_teachers_school_id", "teachers", ["school_id"], unique=False)

    op.create_table(
        "classes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _school_fk(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("name", "school_id", name="uq_classes_name_school"),
    )
    op.create_index("ix_classes_school_id", "classes", ["school_id"], unique=False)

    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _school_fk(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("name", "school_id", name="uq_subjects_name_school"),
    )
    op.create_index("ix_subjects_school_id", "subjects", ["school_id"], unique=False)

    op.create_table(
        "rooms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _school_fk(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("name", "school_id", name="uq_rooms_name_school"),
    )
    op.create_index("ix_rooms_school_id", "rooms", ["school_id"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _school_fk(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_school_id", "users", ["school_id"], unique=False)

    op.create_table(
        "lessons",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _school_fk(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("room_id", sa.String(length=36), sa.ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True),
        sa.Column("day", weekday, nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_lessons_school_teacher_day", "lessons", ["school_id", "teacher_id", "day"], unique=False)
    op.create_index("ix_lessons_school_class_day", "lessons", ["school_id", "class_id", "day"], unique=False)
    op.create_index("ix_lessons_school_room_day", "lessons", ["school_id", "room_id", "day"], unique=False)

    op.create_table(
        "teacher_availability",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _school_fk(),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_of_week", weekday, nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "teacher_id",
            "day_of_week",
            "start_time",
            "school_id",
            name="uq_teacher_availability_teacher_day_start_school",
        ),
    )
    op.create_index(
        "ix_teacher_availability_school_teacher_day",
        "teacher_availability",
        ["school_id", "teacher_id", "day_of_week"],
        unique=False,
    )

    op.create_table(
        "schedule_change_requests",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _school_fk(),
        sa.Column("lesson_id", sa.String(length=36), sa.ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "requesting_teacher_id",
            sa.String(length=36),
            sa.ForeignKey("teachers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("requested_change_type", schedule_change_type, nullable=False),
        sa.Column("proposed_day", weekday, nullable=True),
        sa.Column("proposed_start_time", sa.Time(), nullable=True),
        sa.Column("proposed_end_time", sa.Time(), nullable=True),
        sa.Column(
            "proposed_swap_teacher_id",
            sa.String(length=36),
            sa.ForeignKey("teachers.id", ondelete="NO ACTION"),
            nullable=True,
        ),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", request_status, nullable=False, server_default="pending"),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_by_id", sa.String(length=36), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    for column in ("school_id", "lesson_id", "requesting_teacher_id", "proposed_swap_teacher_id", "status"):
        op.create_index(f"ix_schedule_change_requests_{column}", "schedule_change_requests", [column], unique=False)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_school_id", "activity_logs", ["school_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_activity_logs_school_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    for column in ("status", "proposed_swap_teacher_id", "requesting_teacher_id", "lesson_id", "school_id"):
        op.drop_index(f"ix_schedule_change_requests_{column}", table_name="schedule_change_requests")
    op.drop_table("schedule_change_requests")
    op.drop_index("ix_teacher_availability_school_teacher_day", table_name="teacher_availability")
    op.drop_table("teacher_availability")
    op.drop_index("ix_lessons_school_room_day", table_name="lessons")
    op.drop_index("ix_lessons_school_class_day", table_name="lessons")
    op.drop_index("ix_lessons_school_teacher_day", table_name="lessons")
    op.drop_table("lessons")
    op.drop_index("ix_users_school_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    for table_name in ("rooms", "subjects", "classes", "teachers"):
        op.drop_index(f"ix_{table_name}_school_id", table_name=table_name)
        op.drop_table(table_name)
    op.drop_table("schools")
    bind = op.get_bind()
    for enum_type in reversed(ENUM_TYPES):
        enum_type.drop(bind, checkfirst=True)
