# app/api/v1/endpoints/demos.py
# Demo session endpoints
#
#   POST /demos/                          → admin schedules a demo (status=scheduled)
#   POST /demos/request                   → parent / tutor asks for one (status=requested)
#   GET  /demos/                          → role-scoped list, filter by status / requirement
#   GET  /demos/{id}                      → detail
#   POST /demos/{id}/confirm              → requested → scheduled (tutor / admin)
#   POST /demos/{id}/reschedule           → propose a new slot (status unchanged)
#   POST /demos/{id}/reschedule/resolve   → counterpart accepts or rejects the proposal
#   POST /demos/{id}/complete             → scheduled → completed, after the slot ends
#   POST /demos/{id}/cancel               → requested / scheduled → cancelled
#   POST /demos/{id}/feedback             → parent rates a completed demo

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.dependencies import get_actor, get_workflow
from app.core.exceptions import NotFound
from app.db.session import get_db
from app.models.demo_session import DemoSession
from app.models.requirement import Requirement
from app.schemas.demo import (
    DemoCancel,
    DemoComplete,
    DemoConfirm,
    DemoFeedback,
    DemoRequestCreate,
    DemoResponse,
    DemoSchedule,
    RescheduleRequest,
    RescheduleResolve,
)
from app.services.concurrency import Actor
from app.services.workflow_service import WorkflowService

router = APIRouter()


def _scoped(query, actor: Actor):
    """Parents see demos on their requirements, tutors their own, admins all."""
    if actor.role == "parent":
        return query.join(Requirement, DemoSession.requirement_id == Requirement.id).filter(
            Requirement.parent_id == actor.id
        )
    if actor.role == "tutor":
        return query.filter(DemoSession.tutor_id == actor.id)
    return query


@router.post(
    "/",
    response_model=DemoResponse,
    status_code=201,
    summary="Schedule a demo (admin)",
)
def schedule_demo(
    payload: DemoSchedule,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.schedule_demo(actor, payload)


@router.post(
    "/request",
    response_model=DemoResponse,
    status_code=201,
    summary="Request a demo (parent / tutor)",
)
def request_demo(
    payload: DemoRequestCreate,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.request_demo(actor, payload)


@router.get(
    "/",
    response_model=List[DemoResponse],
    summary="List demos",
)
def list_demos(
    status: Optional[str] = Query(None, pattern="^(requested|scheduled|completed|cancelled)$"),
    requirement_id: Optional[UUID] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    query = _scoped(db.query(DemoSession), actor)
    if status:
        query = query.filter(DemoSession.status == status)
    if requirement_id:
        query = query.filter(DemoSession.requirement_id == requirement_id)
    return query.order_by(
        DemoSession.date, DemoSession.start_time
    ).offset(skip).limit(limit).all()


@router.get(
    "/{demo_id}",
    response_model=DemoResponse,
    summary="Demo detail",
)
def get_demo(
    demo_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    demo = _scoped(db.query(DemoSession), actor).filter(DemoSession.id == demo_id).first()
    if demo is None:
        raise NotFound("demo", demo_id)
    return demo


@router.post(
    "/{demo_id}/confirm",
    response_model=DemoResponse,
    summary="Confirm a requested demo",
)
def confirm_demo(
    demo_id: UUID,
    payload: DemoConfirm,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.confirm_demo(actor, demo_id, payload.join_link, payload.expected_version)


@router.post(
    "/{demo_id}/reschedule",
    response_model=DemoResponse,
    summary="Propose a new demo slot",
)
def request_reschedule(
    demo_id: UUID,
    payload: RescheduleRequest,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.request_reschedule(
        actor, demo_id, payload.slot, payload.reason, payload.expected_version
    )


@router.post(
    "/{demo_id}/reschedule/resolve",
    response_model=DemoResponse,
    summary="Accept or reject a proposed slot",
)
def resolve_reschedule(
    demo_id: UUID,
    payload: RescheduleResolve,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.resolve_reschedule(actor, demo_id, payload.accept, payload.expected_version)


@router.post(
    "/{demo_id}/complete",
    response_model=DemoResponse,
    summary="Mark a demo completed",
)
def complete_demo(
    demo_id: UUID,
    payload: DemoComplete,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.complete_demo(actor, demo_id, payload.expected_version)


@router.post(
    "/{demo_id}/cancel",
    response_model=DemoResponse,
    summary="Cancel a demo",
)
def cancel_demo(
    demo_id: UUID,
    payload: DemoCancel,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.cancel_demo(actor, demo_id, payload.reason, payload.expected_version)


@router.post(
    "/{demo_id}/feedback",
    response_model=DemoResponse,
    summary="Rate a completed demo",
)
def submit_feedback(
    demo_id: UUID,
    payload: DemoFeedback,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.submit_demo_feedback(actor, demo_id, payload)
