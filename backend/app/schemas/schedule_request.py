from datetime import datetime, time

from pydantic import BaseModel, Field, field_serializer, field_validator

from app.models.lesson import Weekday
from app.models.schedule_change_request import RequestStatus, ScheduleChangeType
from app.schemas.common import coerce_clock, render_clock


class ScheduleRequestCreate(BaseModel):
    lesson_id: str = Field(min_length=1, max_length=36)
    requested_change_type: ScheduleChangeType
    proposed_day: Weekday | None = None
    proposed_start_time: time | None = None
    proposed_end_time: time | None = None
    proposed_swap_teacher_id: str | None = Field(default=None, max_length=36)
    reason: str = Field(min_length=1, max_length=1000)

    @field_validator("proposed_day", mode="before")
    @classmethod
    def normalize_day(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("proposed_start_time", "proposed_end_time", mode="before")
    @classmethod
    def validate_clock(cls, value):
        return coerce_clock(value)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Reason is required")
        return value


class ScheduleRequestReject(BaseModel):
    admin_notes: str = Field(max_length=500)


class ScheduleRequestOut(BaseModel):
    id: str
    school_id: str
    lesson_id: str
    requesting_teacher_id: str
    requested_change_type: ScheduleChangeType
    proposed_day: Weekday | None = None
    proposed_start_time: time | None = None
    proposed_end_time: time | None = None
    proposed_swap_teacher_id: str | None = None
    reason: str
    status: RequestStatus
    admin_notes: str | None = None
    reviewed_by_id: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_serializer("proposed_start_time", "proposed_end_time")
    def serialize_clock(self, value: time | None) -> str | None:
        return render_clock(value)
