# app/api/v1/endpoints/classes.py
# Class endpoints
#
#   POST /classes/                  → start classes with the assigned tutor (closes the requirement)
#   GET  /classes/                  → role-scoped list, filter by status
#   GET  /classes/{id}              → detail
#   POST /classes/{id}/cancel       → upcoming / ongoing → cancelled
#   POST /classes/refresh-statuses  → admin: roll statuses forward by today's date

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.dependencies import get_actor, get_workflow, require_admin
from app.core.exceptions import NotFound
from app.db.session import get_db
from app.models.class_ import Class
from app.models.requirement import Requirement
from app.schemas.class_ import ClassCancel, ClassCreate, ClassResponse, ClassStatusRefresh
from app.services.concurrency import Actor
from app.services.workflow_service import WorkflowService

router = APIRouter()


def _scoped(query, actor: Actor):
    if actor.role == "parent":
        return query.join(Requirement, Class.requirement_id == Requirement.id).filter(
            Requirement.parent_id == actor.id
        )
    if actor.role == "tutor":
        return query.filter(Class.tutor_id == actor.id)
    return query


@router.post(
    "/",
    response_model=ClassResponse,
    status_code=201,
    summary="Start classes with the assigned tutor",
)
def create_class(
    payload: ClassCreate,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.create_class(actor, payload)


@router.get(
    "/",
    response_model=List[ClassResponse],
    summary="List classes",
)
def list_classes(
    status: Optional[str] = Query(None, pattern="^(upcoming|ongoing|past|cancelled)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    query = _scoped(db.query(Class), actor)
    if status:
        query = query.filter(Class.status == status)
    return query.order_by(Class.start_date.desc()).offset(skip).limit(limit).all()


@router.post(
    "/refresh-statuses",
    response_model=ClassStatusRefresh,
    summary="Roll class statuses forward by date (admin)",
)
def refresh_statuses(
    actor: Actor = Depends(require_admin),
    workflow: WorkflowService = Depends(get_workflow),
):
    return ClassStatusRefresh(updated=workflow.refresh_class_statuses(actor))


@router.get(
    "/{class_id}",
    response_model=ClassResponse,
    summary="Class detail",
)
def get_class(
    class_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    cls = _scoped(db.query(Class), actor).filter(Class.id == class_id).first()
    if cls is None:
        raise NotFound("class", class_id)
    return cls


@router.post(
    "/{class_id}/cancel",
    response_model=ClassResponse,
    summary="Cancel classes",
)
def cancel_class(
    class_id: UUID,
    payload: ClassCancel,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.cancel_class(actor, class_id, payload.reason, payload.expected_version)
