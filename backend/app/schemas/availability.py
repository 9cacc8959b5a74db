from datetime import datetime, time

from pydantic import BaseModel, Field, field_serializer

from app.models.lesson import Weekday
from app.schemas.common import render_clock
from app.schemas.lesson import PlacementWindow


class UnavailabilityCreate(PlacementWindow):
    notes: str | None = Field(default=None, max_length=500)


class UnavailabilityUpdate(UnavailabilityCreate):
    pass


class UnavailabilityOut(BaseModel):
    id: str
    school_id: str
    teacher_id: str
    day_of_week: Weekday
    start_time: time
    end_time: time
    is_available: bool
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_serializer("start_time", "end_time")
    def serialize_clock(self, value: time) -> str:
        return render_clock(value)
