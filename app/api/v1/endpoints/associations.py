# app/api/v1/endpoints/associations.py
# Requirement ↔ tutor association endpoints (mounted under /requirements/{id}/tutors)
#
#   POST /apply                   → tutor applies (status=applied)
#   POST /recommend               → admin / recommendation feed (status=recommended)
#   GET  /                        → candidates (parent owner, admin; tutors see their own row)
#   POST /{tutor_id}/confirm      → tutor takes up a recommendation
#   POST /{tutor_id}/promote      → admin shortlists or assigns
#   POST /{tutor_id}/reject       → admin rejects
#   POST /{tutor_id}/withdraw     → tutor withdraws

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.dependencies import get_actor, get_workflow
from app.db.session import get_db
from app.models.tutor_association import TutorAssociation
from app.schemas.association import (
    AssociationResponse,
    AssociationStatusChange,
    PromoteRequest,
    RecommendRequest,
)
from app.services.concurrency import Actor
from app.services.workflow_service import WorkflowService
from app.api.v1.endpoints.requirements import get_visible_requirement

router = APIRouter()


@router.post(
    "/apply",
    response_model=AssociationResponse,
    status_code=201,
    summary="Tutor applies to a requirement",
)
def apply(
    requirement_id: UUID,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.record_tutor_interest(actor, requirement_id, actor.id, "applied")


@router.post(
    "/recommend",
    response_model=AssociationResponse,
    status_code=201,
    summary="Recommend a tutor for a requirement",
)
def recommend(
    requirement_id: UUID,
    payload: RecommendRequest,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.record_tutor_interest(actor, requirement_id, payload.tutor_id, "recommended")


@router.get(
    "/",
    response_model=List[AssociationResponse],
    summary="Tutors linked to a requirement",
)
def list_associations(
    requirement_id: UUID,
    status: Optional[str] = Query(None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    get_visible_requirement(db, requirement_id, actor)
    query = db.query(TutorAssociation).filter(TutorAssociation.requirement_id == requirement_id)
    if actor.role == "tutor":
        query = query.filter(TutorAssociation.tutor_id == actor.id)
    if status:
        query = query.filter(TutorAssociation.status == status)
    return query.order_by(TutorAssociation.created_at).all()


@router.post(
    "/{tutor_id}/confirm",
    response_model=AssociationResponse,
    summary="Tutor confirms interest in a recommendation",
)
def confirm_interest(
    requirement_id: UUID,
    tutor_id: UUID,
    payload: AssociationStatusChange,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.confirm_interest(actor, requirement_id, tutor_id, payload.expected_version)


@router.post(
    "/{tutor_id}/promote",
    response_model=AssociationResponse,
    summary="Shortlist or assign a tutor (admin)",
)
def promote(
    requirement_id: UUID,
    tutor_id: UUID,
    payload: PromoteRequest,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    """Assigning moves an open requirement to matched."""
    return workflow.promote_association(
        actor, requirement_id, tutor_id, payload.target, payload.expected_version
    )


@router.post(
    "/{tutor_id}/reject",
    response_model=AssociationResponse,
    summary="Reject a tutor (admin)",
)
def reject(
    requirement_id: UUID,
    tutor_id: UUID,
    payload: AssociationStatusChange,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.reject_association(actor, requirement_id, tutor_id, payload.expected_version)


@router.post(
    "/{tutor_id}/withdraw",
    response_model=AssociationResponse,
    summary="Tutor withdraws",
)
def withdraw(
    requirement_id: UUID,
    tutor_id: UUID,
    payload: AssociationStatusChange,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.withdraw_association(actor, requirement_id, tutor_id, payload.expected_version)
