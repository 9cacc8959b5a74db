import uuid
from datetime import datetime, time
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.lesson import Weekday


class ScheduleChangeType(str, Enum):
    time_change = "time_change"
    swap = "swap"


class RequestStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    canceled = "canceled"


TERMINAL_STATUSES = frozenset({RequestStatus.approved, RequestStatus.rejected, RequestStatus.canceled})


class ScheduleChangeRequest(Base):
    __tablename__ = "schedule_change_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(ForeignKey("schools.id", ondelete="CASCADE"), index=True, nullable=False)
    lesson_id: Mapped[str] = mapped_column(ForeignKey("lessons.id", ondelete="CASCADE"), index=True, nullable=False)
    requesting_teacher_id: Mapped[str] = mapped_column(
        ForeignKey("teachers.id", ondelete="CASCADE"), index=True, nullable=False
    )
    requested_change_type: Mapped[ScheduleChangeType] = mapped_column(
        SAEnum(ScheduleChangeType, name="schedule_change_type"), nullable=False
    )
    proposed_day: Mapped[Weekday | None] = mapped_column(SAEnum(Weekday, name="weekday"), nullable=True)
    proposed_start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    proposed_end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    proposed_swap_teacher_id: Mapped[str | None] = mapped_column(
        ForeignKey("teachers.id", ondelete="NO ACTION"), index=True, nullable=True
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[RequestStatus] = mapped_column(
        SAEnum(RequestStatus, name="request_status"),
        index=True,
        nullable=False,
        default=RequestStatus.pending,
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
