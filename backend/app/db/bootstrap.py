from __future__ import annotations

import logging

from sqlalchemy import inspect, text

from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "schools": {"id", "name"},
    "teachers": {"id", "school_id"},
    "classes": {"id", "school_id"},
    "subjects": {"id", "school_id"},
    "rooms": {"id", "school_id", "name"},
    "users": {"id", "school_id", "role", "teacher_id"},
    "lessons": {"id", "school_id", "teacher_id", "class_id", "day", "start_time", "end_time", "version"},
    "teacher_availability": {"id", "school_id", "teacher_id", "day_of_week", "start_time", "end_time"},
    "schedule_change_requests": {"id", "school_id", "lesson_id", "status", "version"},
    "activity_logs": {"id", "school_id", "action"},
}

VERSIONED_TABLES = ("lessons", "schedule_change_requests")


def _ensure_version_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        for table_name in VERSIONED_TABLES:
            if table_name not in table_names:
                continue
            column_names = {item["name"] for item in inspector.get_columns(table_name)}
            if "version" in column_names:
                continue
            connection.execute(text(f"ALTER TABLE {table_name} ADD COLUMN version INTEGER NOT NULL DEFAULT 1"))


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        _ensure_version_columns()
        _assert_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
