from datetime import datetime, time

from pydantic import BaseModel, Field, field_serializer, field_validator

from app.core.exceptions import ReasonCode
from app.models.lesson import Weekday
from app.schemas.common import coerce_clock, render_clock

WEEKEND = {Weekday.saturday, Weekday.sunday}


class PlacementWindow(BaseModel):
    day: Weekday
    start_time: time
    end_time: time

    @field_validator("day", mode="before")
    @classmethod
    def normalize_day(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def validate_clock(cls, value):
        return coerce_clock(value)


class LessonCreate(PlacementWindow):
    name: str = Field(min_length=1, max_length=200)
    subject_id: str = Field(min_length=1, max_length=36)
    class_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    room_id: str | None = Field(default=None, max_length=36)


class LessonUpdate(LessonCreate):
    version: int | None = Field(default=None, ge=1)


class LessonReschedule(PlacementWindow):
    version: int | None = Field(default=None, ge=1)

    @field_validator("day")
    @classmethod
    def reject_weekend(cls, value: Weekday) -> Weekday:
        if value in WEEKEND:
            raise ValueError("Lessons can only be moved to a weekday (Monday to Friday)")
        return value


class PlacementCheck(PlacementWindow):
    teacher_id: str = Field(min_length=1, max_length=36)
    class_id: str = Field(min_length=1, max_length=36)
    room_id: str | None = Field(default=None, max_length=36)
    exclude_lesson_id: str | None = Field(default=None, max_length=36)


class ConflictResultOut(BaseModel):
    ok: bool
    code: ReasonCode | None = None
    reason: str | None = None
    conflicting_id: str | None = None
    warnings: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class LessonOut(BaseModel):
    id: str
    school_id: str
    name: str
    subject_id: str
    class_id: str
    teacher_id: str
    room_id: str | None = None
    day: Weekday
    start_time: time
    end_time: time
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_serializer("start_time", "end_time")
    def serialize_clock(self, value: time) -> str:
        return render_clock(value)
