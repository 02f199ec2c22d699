# app/schemas/class_.py
# Pydantic request/response models for class endpoints

from datetime import date, datetime, time
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


# ── Requests (input) ──────────────────────────────────────────────────────────

class ClassSchedule(BaseModel):
    days: List[str]                         # mon | tue | ... | sun
    start_time: time
    end_time: time
    start_date: date
    end_date: Optional[date] = None         # open-ended when omitted
    mode: Literal["online", "offline"] = "online"
    subject: Optional[str] = None           # defaults to the requirement's first subject

    @field_validator("days")
    @classmethod
    def valid_days(cls, v: List[str]) -> List[str]:
        days = [d.strip().lower()[:3] for d in v]
        if not days:
            raise ValueError("Pick at least one class day.")
        unknown = [d for d in days if d not in WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown day(s): {', '.join(unknown)}")
        return sorted(set(days), key=WEEKDAYS.index)

    @model_validator(mode="after")
    def valid_window(self) -> "ClassSchedule":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time.")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date.")
        return self


class ClassCreate(BaseModel):
    expected_version: Optional[int] = None  # requirement version the parent last saw
    requirement_id: UUID
    tutor_id: UUID
    tutor_name: Optional[str] = None
    schedule: ClassSchedule


class ClassCancel(BaseModel):
    expected_version: Optional[int] = None
    reason: Optional[str] = None


# ── Responses (output) ────────────────────────────────────────────────────────

class ClassResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    requirement_id: UUID
    tutor_id: UUID
    tutor_name: Optional[str] = None
    subject: str
    mode: str
    days: List[str]
    start_time: time
    end_time: time
    start_date: date
    end_date: Optional[date] = None
    next_session: Optional[date] = None
    status: str                             # upcoming | ongoing | past | cancelled
    cancel_reason: Optional[str] = None
    created_at: datetime
    version: int


class ClassStatusRefresh(BaseModel):
    updated: int
