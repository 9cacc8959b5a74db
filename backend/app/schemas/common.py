from __future__ import annotations

from datetime import time
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from app.core.exceptions import ReasonCode
from app.services.time_window import format_clock, parse_clock

T = TypeVar("T")


def coerce_clock(value: Any) -> Any:
    if isinstance(value, str):
        return parse_clock(value)
    return value


def render_clock(value: time | None) -> str | None:
    return format_clock(value) if value is not None else None


class ActionResult(BaseModel, Generic[T]):
    success: bool = True
    message: str
    code: ReasonCode | None = None
    data: T | None = None
    warnings: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    code: ReasonCode
    details: dict = Field(default_factory=dict)
