# app/schemas/demo.py
# Pydantic request/response models for demo session endpoints

from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ── Requests (input) ──────────────────────────────────────────────────────────

class DemoSlot(BaseModel):
    """Wall-clock slot in the platform timezone."""
    date: date
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def end_after_start(self) -> "DemoSlot":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time.")
        return self

    @property
    def duration_minutes(self) -> int:
        start = self.start_time.hour * 60 + self.start_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        return end - start


class DemoSchedule(BaseModel):
    """Admin schedules a demo directly."""
    requirement_id: UUID
    tutor_id: UUID
    slot: DemoSlot
    mode: Literal["online", "offline"] = "online"
    subjects: Optional[List[str]] = None    # defaults to the requirement's subjects
    join_link: Optional[str] = None
    location: Optional[str] = None
    fee: Optional[Decimal] = Field(default=None, ge=0)


class DemoRequestCreate(BaseModel):
    """Parent or tutor asks for a demo; admin or tutor confirms it later."""
    requirement_id: UUID
    tutor_id: Optional[UUID] = None         # required for parents, implied for tutors
    slot: DemoSlot
    mode: Literal["online", "offline"] = "online"
    subjects: Optional[List[str]] = None


class DemoConfirm(BaseModel):
    expected_version: Optional[int] = None
    join_link: Optional[str] = None


class RescheduleRequest(BaseModel):
    expected_version: Optional[int] = None
    slot: DemoSlot
    reason: Optional[str] = None


class RescheduleResolve(BaseModel):
    expected_version: Optional[int] = None
    accept: bool


class DemoCancel(BaseModel):
    expected_version: Optional[int] = None
    reason: str = Field(min_length=1, max_length=500)


class DemoComplete(BaseModel):
    expected_version: Optional[int] = None


class DemoFeedback(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=500)
    next_step_decision: Optional[Literal["start_classes", "another_demo", "not_interested"]] = None


# ── Responses (output) ────────────────────────────────────────────────────────

class DemoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    requirement_id: UUID
    tutor_id: UUID
    subjects: List[str]
    mode: str
    join_link: Optional[str] = None
    location: Optional[str] = None
    date: date
    start_time: time
    end_time: time
    duration_minutes: int
    status: str                              # requested | scheduled | completed | cancelled
    requested_by: Optional[str] = None
    reschedule_status: str                   # none | pending
    proposed_date: Optional[date] = None
    proposed_start_time: Optional[time] = None
    proposed_end_time: Optional[time] = None
    reschedule_reason: Optional[str] = None
    reschedule_requested_by: Optional[str] = None
    is_paid: bool
    fee: Optional[Decimal] = None
    cancel_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    feedback_submitted: bool
    feedback_rating: Optional[int] = None
    feedback_comment: Optional[str] = None
    next_step_decision: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    version: int
