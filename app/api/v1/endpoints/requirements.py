# app/api/v1/endpoints/requirements.py
# Tuition requirement endpoints
#
# Parent flow:
#   POST   /requirements/                → post a requirement (status=open)
#   GET    /requirements/mine            → own requirements with applicant counts
#   PATCH  /requirements/{id}            → edit while open or matched
#   DELETE /requirements/{id}            → delete (blocked once a tutor is assigned)
#   POST   /requirements/{id}/close      → close dialog (may start classes)
#   POST   /requirements/{id}/reopen     → closed → open
#
# Tutor flow:
#   GET    /requirements/open            → lead board of open requirements
#
# Admin flow:
#   GET    /requirements/                → everything, filterable by status
#   PATCH  /requirements/{id}/status     → forced status with remark
#   POST   /requirements/{id}/notes      → internal note
#
# Reads go straight to the session; every write goes through WorkflowService.

from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import and_, func
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.dependencies import get_actor, get_workflow, require_admin
from app.core.exceptions import NotFound, PermissionDenied
from app.db.session import get_db
from app.models.requirement import Requirement, RequirementNote
from app.models.tutor_association import TutorAssociation
from app.models.workflow_event import WorkflowEvent
from app.schemas.event import WorkflowEventResponse
from app.schemas.requirement import (
    CloseOutcome,
    MessageResponse,
    NoteCreate,
    NoteResponse,
    RequirementCreate,
    RequirementListItem,
    RequirementResponse,
    RequirementStatusUpdate,
    RequirementUpdate,
    VersionedRequest,
)
from app.services.concurrency import Actor
from app.services.workflow_service import WorkflowService

router = APIRouter()

# Associations that count as "applicants" on a requirement card
APPLICANT_STATUSES = ("applied", "shortlisted", "assigned")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _applicant_counts(db: Session, requirement_ids: List[UUID]) -> Dict[UUID, int]:
    if not requirement_ids:
        return {}
    rows = db.query(
        TutorAssociation.requirement_id, func.count(TutorAssociation.id)
    ).filter(
        and_(
            TutorAssociation.requirement_id.in_(requirement_ids),
            TutorAssociation.status.in_(APPLICANT_STATUSES),
        )
    ).group_by(TutorAssociation.requirement_id).all()
    return {req_id: count for req_id, count in rows}


def _list_items(db: Session, requirements: List[Requirement]) -> List[RequirementListItem]:
    counts = _applicant_counts(db, [r.id for r in requirements])
    items = []
    for req in requirements:
        item = RequirementListItem.model_validate(req)
        item.applicants_count = counts.get(req.id, 0)
        items.append(item)
    return items


def get_visible_requirement(db: Session, requirement_id: UUID, actor: Actor) -> Requirement:
    """
    Load a requirement the actor may see.
    Parents see their own; tutors see open ones and those they are linked to.
    """
    req = db.get(Requirement, requirement_id)
    if req is None:
        raise NotFound("requirement", requirement_id)
    if actor.role == "parent" and req.parent_id != actor.id:
        raise NotFound("requirement", requirement_id)
    if actor.role == "tutor" and req.status != "open":
        linked = db.query(TutorAssociation.id).filter(
            and_(
                TutorAssociation.requirement_id == req.id,
                TutorAssociation.tutor_id == actor.id,
            )
        ).first()
        if not linked:
            raise NotFound("requirement", requirement_id)
    return req


# ── Parent Endpoints ──────────────────────────────────────────────────────────

@router.post(
    "/",
    response_model=RequirementResponse,
    status_code=201,
    summary="Post a tuition requirement",
)
def post_requirement(
    payload: RequirementCreate,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    """Parents post for themselves; admins post on a parent's behalf with parent_id."""
    return workflow.post_requirement(actor, payload)


@router.get(
    "/mine",
    response_model=List[RequirementListItem],
    summary="Parent's own requirements",
)
def list_my_requirements(
    status: Optional[str] = Query(None, pattern="^(open|matched|closed)$"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    if actor.role != "parent":
        raise PermissionDenied(actor.role, "list_own_requirements")
    query = db.query(Requirement).filter(Requirement.parent_id == actor.id)
    if status:
        query = query.filter(Requirement.status == status)
    return _list_items(db, query.order_by(Requirement.posted_at.desc()).all())


@router.get(
    "/open",
    response_model=List[RequirementListItem],
    summary="Tutor lead board",
)
def list_open_requirements(
    subject: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Open requirements, newest first. Subject filter is a case-insensitive match."""
    if actor.role not in ("tutor", "admin"):
        raise PermissionDenied(actor.role, "browse_open_requirements")
    requirements = db.query(Requirement).filter(
        Requirement.status == "open"
    ).order_by(Requirement.posted_at.desc()).all()
    if subject:
        wanted = subject.strip().lower()
        requirements = [r for r in requirements if wanted in (s.lower() for s in r.subjects)]
    return _list_items(db, requirements[skip:skip + limit])


@router.get(
    "/{requirement_id}",
    response_model=RequirementResponse,
    summary="Requirement detail",
)
def get_requirement(
    requirement_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_visible_requirement(db, requirement_id, actor)


@router.patch(
    "/{requirement_id}",
    response_model=RequirementResponse,
    summary="Edit a requirement while open or matched",
)
def update_requirement(
    requirement_id: UUID,
    payload: RequirementUpdate,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.update_requirement(actor, requirement_id, payload)


@router.delete(
    "/{requirement_id}",
    response_model=MessageResponse,
    summary="Delete a requirement",
)
def delete_requirement(
    requirement_id: UUID,
    expected_version: Optional[int] = Query(None),
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    workflow.delete_requirement(actor, requirement_id, expected_version)
    return MessageResponse(message="Requirement deleted.")


@router.post(
    "/{requirement_id}/close",
    response_model=RequirementResponse,
    summary="Close a requirement (optionally starting classes)",
)
def close_requirement(
    requirement_id: UUID,
    payload: CloseOutcome,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    """
    Cancels active demos. With start_classes=true, creates the class with
    the assigned (or given) tutor in the same transaction.
    """
    return workflow.close_requirement(actor, requirement_id, payload)


@router.post(
    "/{requirement_id}/reopen",
    response_model=RequirementResponse,
    summary="Reopen a closed requirement",
)
def reopen_requirement(
    requirement_id: UUID,
    payload: VersionedRequest,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.reopen_requirement(actor, requirement_id, payload.expected_version)


# ── Admin Endpoints ───────────────────────────────────────────────────────────

@router.get(
    "/",
    response_model=List[RequirementListItem],
    summary="All requirements (admin)",
)
def list_requirements(
    status: Optional[str] = Query(None, pattern="^(open|matched|closed)$"),
    parent_id: Optional[UUID] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Requirement)
    if status:
        query = query.filter(Requirement.status == status)
    if parent_id:
        query = query.filter(Requirement.parent_id == parent_id)
    requirements = query.order_by(Requirement.posted_at.desc()).offset(skip).limit(limit).all()
    return _list_items(db, requirements)


@router.patch(
    "/{requirement_id}/status",
    response_model=RequirementResponse,
    summary="Force a requirement status (admin)",
)
def force_requirement_status(
    requirement_id: UUID,
    payload: RequirementStatusUpdate,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.force_requirement_status(
        actor, requirement_id, payload.status, payload.remark, payload.expected_version
    )


@router.post(
    "/{requirement_id}/notes",
    response_model=NoteResponse,
    status_code=201,
    summary="Add an internal note (admin)",
)
def add_note(
    requirement_id: UUID,
    payload: NoteCreate,
    actor: Actor = Depends(get_actor),
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.add_note(actor, requirement_id, payload.message)


@router.get(
    "/{requirement_id}/notes",
    response_model=List[NoteResponse],
    summary="Internal notes (admin)",
)
def list_notes(
    requirement_id: UUID,
    actor: Actor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if db.get(Requirement, requirement_id) is None:
        raise NotFound("requirement", requirement_id)
    return db.query(RequirementNote).filter(
        RequirementNote.requirement_id == requirement_id
    ).order_by(RequirementNote.created_at).all()


@router.get(
    "/{requirement_id}/events",
    response_model=List[WorkflowEventResponse],
    summary="Status history of a requirement and everything under it",
)
def list_events(
    requirement_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    if actor.role not in ("parent", "admin"):
        raise PermissionDenied(actor.role, "read_requirement_history")
    get_visible_requirement(db, requirement_id, actor)
    return db.query(WorkflowEvent).filter(
        WorkflowEvent.requirement_id == requirement_id
    ).order_by(WorkflowEvent.occurred_at, WorkflowEvent.created_at).all()
