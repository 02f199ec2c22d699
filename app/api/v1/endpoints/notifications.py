# app/api/v1/endpoints/notifications.py
# In-app notification feed
#
# Rows are written only by the outbox relay (services/notification_service.py),
# one per party of a workflow event. Clients poll:
#   GET    /notifications/               → own feed, optional ?kind=demo&unread_only=true
#   GET    /notifications/unread-count   → badge counts, overall and per kind
#   PATCH  /notifications/read-all       → mark every (or every ?kind=) unread as read
#   PATCH  /notifications/{id}/read
#   DELETE /notifications/{id}

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Query as OrmQuery
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.dependencies import get_actor
from app.core.exceptions import NotFound
from app.db.session import get_db
from app.models.notification import Notification
from app.schemas.notification import (
    MessageResponse,
    NotificationFeed,
    NotificationResponse,
    UnreadCounts,
)
from app.services.concurrency import Actor

router = APIRouter()

KIND_PATTERN = "^(requirement|association|demo|class)$"


def _to_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        type=n.notification_type,
        title=n.title,
        body=n.body or "",
        action_url=n.action_url,
        event_id=n.event_id,
        extra_data=n.extra_data,
        is_read=n.is_read,
        read_at=n.read_at,
        created_at=n.created_at,
    )


def _inbox(db: Session, actor: Actor, kind: Optional[str] = None, unread_only: bool = False) -> OrmQuery:
    query = db.query(Notification).filter(Notification.recipient_id == actor.id)
    if kind:
        query = query.filter(Notification.notification_type.like(f"{kind}.%"))
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query


def _own(db: Session, notification_id: UUID, actor: Actor) -> Notification:
    n = _inbox(db, actor).filter(Notification.id == notification_id).first()
    if n is None:
        raise NotFound("notification", notification_id)
    return n


@router.get(
    "/",
    response_model=NotificationFeed,
    summary="Own notification feed",
)
def list_notifications(
    kind: Optional[str] = Query(None, pattern=KIND_PATTERN),
    unread_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    query = _inbox(db, actor, kind, unread_only)
    rows = query.order_by(Notification.created_at.desc()).offset(skip).limit(limit).all()
    return NotificationFeed(
        notifications=[_to_response(n) for n in rows],
        unread_count=_inbox(db, actor, kind, unread_only=True).count(),
        total=query.count(),
    )


@router.get(
    "/unread-count",
    response_model=UnreadCounts,
    summary="Unread badge counts",
)
def get_unread_count(
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    rows = _inbox(db, actor, unread_only=True).with_entities(
        Notification.notification_type, func.count(Notification.id)
    ).group_by(Notification.notification_type).all()

    by_kind = {}
    for notification_type, count in rows:
        kind = notification_type.split(".", 1)[0]
        by_kind[kind] = by_kind.get(kind, 0) + count
    return UnreadCounts(count=sum(by_kind.values()), by_kind=by_kind)


@router.patch(
    "/read-all",
    response_model=MessageResponse,
    summary="Mark all (or one kind of) notifications as read",
)
def mark_all_read(
    kind: Optional[str] = Query(None, pattern=KIND_PATTERN),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    marked = _inbox(db, actor, kind, unread_only=True).update(
        {"is_read": True, "read_at": datetime.now(timezone.utc)},
        synchronize_session=False,
    )
    return MessageResponse(message=f"{marked} notification(s) marked as read.")


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
)
def mark_read(
    notification_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    n = _own(db, notification_id, actor)
    if not n.is_read:
        n.is_read = True
        n.read_at = datetime.now(timezone.utc)
        db.flush()
    return _to_response(n)


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    summary="Delete a notification",
)
def delete_notification(
    notification_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    db.delete(_own(db, notification_id, actor))
    return MessageResponse(message="Notification deleted.")
