# app/schemas/association.py
# Pydantic request/response models for requirement ↔ tutor association endpoints

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class RecommendRequest(BaseModel):
    """Admin / recommendation feed surfaces a tutor for a requirement."""
    tutor_id: UUID


class PromoteRequest(BaseModel):
    expected_version: Optional[int] = None
    target: Literal["shortlisted", "assigned"]


class AssociationStatusChange(BaseModel):
    """Reject (admin), withdraw or confirm interest (tutor)."""
    expected_version: Optional[int] = None


class AssociationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    requirement_id: UUID
    tutor_id: UUID
    status: str       # recommended | applied | shortlisted | assigned | rejected | withdrawn
    recommended_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None
    shortlisted_at: Optional[datetime] = None
    assigned_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    withdrawn_at: Optional[datetime] = None
    version: int
