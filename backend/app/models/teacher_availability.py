import uuid
from datetime import datetime, time

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Index, String, Text, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.lesson import Weekday


class TeacherAvailability(Base):
    """A recurring weekly block during which a teacher cannot be scheduled.

    ``is_available`` is always written as ``False``: teachers are available by
    default inside working hours and record exceptions only.
    """

    __tablename__ = "teacher_availability"
    __table_args__ = (
        UniqueConstraint(
            "teacher_id",
            "day_of_week",
            "start_time",
            "school_id",
            name="uq_teacher_availability_teacher_day_start_school",
        ),
        Index("ix_teacher_availability_school_teacher_day", "school_id", "teacher_id", "day_of_week"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(ForeignKey("schools.id", ondelete="CASCADE"), nullable=False)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    day_of_week: Mapped[Weekday] = mapped_column(SAEnum(Weekday, name="weekday"), nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
