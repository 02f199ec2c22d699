# app/schemas/requirement.py
# Pydantic request/response models for requirement endpoints

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.schemas.class_ import ClassSchedule

TeachingMode = Literal["online", "offline"]


class LocationDetails(BaseModel):
    name: Optional[str] = None
    address: str
    area: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None
    google_maps_url: Optional[str] = None


# ── Requests (input) ──────────────────────────────────────────────────────────

class RequirementCreate(BaseModel):
    """Parent posts this; admin may post on a parent's behalf with parent_id."""
    parent_id: Optional[UUID] = None           # admin only -- parents post for themselves
    student_name: Optional[str] = None
    subjects: List[str]
    grade_level: str
    board: Optional[str] = None
    teaching_modes: List[TeachingMode]
    location: Optional[LocationDetails] = None
    preferred_days: Optional[List[str]] = None
    preferred_time_slots: Optional[List[str]] = None
    gender_preference: Literal["male", "female", "no_preference"] = "no_preference"
    start_preference: Literal["immediately", "within_a_month", "just_exploring"] = "immediately"
    additional_notes: Optional[str] = None

    @field_validator("subjects")
    @classmethod
    def subjects_not_empty(cls, v: List[str]) -> List[str]:
        cleaned = []
        for s in v:
            s = s.strip()
            if s and s not in cleaned:
                cleaned.append(s)
        if not cleaned:
            raise ValueError("At least one subject is required.")
        return cleaned

    @field_validator("teaching_modes")
    @classmethod
    def modes_not_empty(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("Select at least one teaching mode.")
        return sorted(set(v))

    @model_validator(mode="after")
    def location_for_offline(self) -> "RequirementCreate":
        if "offline" in self.teaching_modes and self.location is None:
            raise ValueError("Location is required for offline tuition.")
        return self


class RequirementUpdate(BaseModel):
    """Parent edits a requirement while it is open or matched. Omitted fields stay."""
    expected_version: Optional[int] = None
    student_name: Optional[str] = None
    subjects: Optional[List[str]] = None
    grade_level: Optional[str] = None
    board: Optional[str] = None
    teaching_modes: Optional[List[TeachingMode]] = None
    location: Optional[LocationDetails] = None
    preferred_days: Optional[List[str]] = None
    preferred_time_slots: Optional[List[str]] = None
    gender_preference: Optional[Literal["male", "female", "no_preference"]] = None
    start_preference: Optional[Literal["immediately", "within_a_month", "just_exploring"]] = None
    additional_notes: Optional[str] = None


class CloseOutcome(BaseModel):
    """
    The whole "close enquiry" dialog in one payload:
    found a tutor? → tutor name → start classes now?
    """
    expected_version: Optional[int] = None
    found_tutor: bool
    tutor_name: Optional[str] = None
    start_classes: bool = False
    tutor_id: Optional[UUID] = None            # defaults to the assigned tutor
    schedule: Optional[ClassSchedule] = None   # required when start_classes
    reason: Optional[str] = None

    @model_validator(mode="after")
    def classes_need_schedule(self) -> "CloseOutcome":
        if self.start_classes and not self.found_tutor:
            raise ValueError("Classes can only start once a tutor is found.")
        if self.start_classes and self.schedule is None:
            raise ValueError("A class schedule is required to start classes.")
        return self


class VersionedRequest(BaseModel):
    expected_version: Optional[int] = None


class RequirementStatusUpdate(BaseModel):
    """Admin forces a status, with a remark kept as a note."""
    expected_version: Optional[int] = None
    status: Literal["open", "matched", "closed"]
    remark: Optional[str] = None


class NoteCreate(BaseModel):
    message: str = Field(min_length=1, max_length=2000)


# ── Responses (output) ────────────────────────────────────────────────────────

class RequirementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    enquiry_code: str
    parent_id: UUID
    student_name: Optional[str] = None
    subjects: List[str]
    grade_level: str
    board: Optional[str] = None
    teaching_modes: List[str]
    location: Optional[dict] = None
    preferred_days: Optional[List[str]] = None
    preferred_time_slots: Optional[List[str]] = None
    gender_preference: str
    start_preference: str
    additional_notes: Optional[str] = None
    created_by: str
    status: str                                # open | matched | closed
    found_tutor: Optional[bool] = None
    found_tutor_name: Optional[str] = None
    close_reason: Optional[str] = None
    closed_at: Optional[datetime] = None
    posted_at: datetime
    version: int


class RequirementListItem(BaseModel):
    """Compact card for dashboards and the tutor lead board."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    enquiry_code: str
    subjects: List[str]
    grade_level: str
    board: Optional[str] = None
    teaching_modes: List[str]
    status: str
    posted_at: datetime
    applicants_count: int = 0
    version: int


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    author_id: UUID
    message: str
    created_at: datetime


class MessageResponse(BaseModel):
    message: str
