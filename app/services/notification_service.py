# app/services/notification_service.py
# Turns workflow events into in-app notifications for the people involved
#
# Usage (as an outbox relay subscriber):
#   from app.services.notification_service import notify_parties
#   relay_pending(db, subscribers=[notify_parties])
#
# Or directly:
#   notify(db, recipient_id=parent_id, notification_type="demo.scheduled",
#          title="Demo scheduled", body="Your Maths demo is on 12 Oct at 5 PM")

from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.notification import Notification
from app.models.workflow_event import WorkflowEvent


# ── Templates ─────────────────────────────────────────────────────────────────
# (entity_type, to_status) → (title, body, who is told)
# who: "parent", "tutor" or "both"

TEMPLATES: Dict[Tuple[str, str], Tuple[str, str, str]] = {
    ("requirement", "open"): ("Requirement posted", "Your tuition requirement {code} is live.", "parent"),
    ("requirement", "matched"): ("Tutor assigned", "A tutor has been assigned to {code}.", "parent"),
    ("requirement", "closed"): ("Requirement closed", "Requirement {code} has been closed.", "parent"),
    ("association", "recommended"): ("New tuition lead", "You have been recommended for {code}.", "tutor"),
    ("association", "applied"): ("Tutor applied", "A tutor applied to {code}.", "parent"),
    ("association", "shortlisted"): ("Shortlisted", "You have been shortlisted for {code}.", "tutor"),
    ("association", "assigned"): ("You're assigned", "You have been assigned to {code}.", "tutor"),
    ("association", "rejected"): ("Application update", "You were not selected for {code}.", "tutor"),
    ("association", "withdrawn"): ("Tutor withdrew", "A tutor withdrew from {code}.", "parent"),
    ("demo", "requested"): ("Demo requested", "A demo was requested for {code}.", "both"),
    ("demo", "scheduled"): ("Demo scheduled", "A demo for {code} is scheduled on {date} at {start_time}.", "both"),
    ("demo", "reschedule_requested"): ("Reschedule requested", "A new demo slot was proposed for {code}.", "both"),
    ("demo", "reschedule_accepted"): ("Demo rescheduled", "The demo for {code} moved to {date} at {start_time}.", "both"),
    ("demo", "reschedule_rejected"): ("Reschedule declined", "The proposed demo slot for {code} was declined.", "both"),
    ("demo", "completed"): ("Demo completed", "How did the demo for {code} go? Share your feedback.", "parent"),
    ("demo", "cancelled"): ("Demo cancelled", "The demo for {code} was cancelled.", "both"),
    ("class", "upcoming"): ("Classes confirmed", "Classes for {code} start on {start_date}.", "both"),
    ("class", "cancelled"): ("Classes cancelled", "Classes for {code} were cancelled.", "both"),
}


def notify(
    db: Session,
    recipient_id: UUID,
    notification_type: str,
    title: str,
    body: str,
    action_url: Optional[str] = None,
    event_id: Optional[UUID] = None,
    extra_data: Optional[Dict[str, Any]] = None,
) -> Notification:
    """
    Create an in-app notification.

    Args:
        db: Database session
        recipient_id: Parent, tutor or admin receiving it
        notification_type: "<entity>.<status>" key, e.g. "demo.scheduled"
        title: Short notification title
        body: Full notification body
        action_url: Deep link for the client
        event_id: Outbox event this came from (deduplication)
        extra_data: Optional dict stored as JSON

    Returns:
        Created Notification instance
    """
    notification = Notification(
        recipient_id=recipient_id,
        notification_type=notification_type,
        title=title,
        body=body,
        action_url=action_url,
        event_id=event_id,
        extra_data=extra_data or {},
        is_read=False,
    )
    db.add(notification)
    db.flush()
    return notification


def _recipients(event: WorkflowEvent, who: str) -> List[UUID]:
    payload = event.payload or {}
    ids = []
    if who in ("parent", "both") and payload.get("parent_id"):
        ids.append(UUID(payload["parent_id"]))
    if who in ("tutor", "both") and payload.get("tutor_id"):
        ids.append(UUID(payload["tutor_id"]))
    # The actor already knows what they just did
    return [i for i in ids if i != event.actor_id]


def _action_url(event: WorkflowEvent, recipient_id: UUID) -> Optional[str]:
    if not event.requirement_id:
        return None
    payload = event.payload or {}
    if payload.get("parent_id") == str(recipient_id):
        return f"/parent/my-enquiries/{event.requirement_id}"
    return f"/tutor/enquiries/{event.requirement_id}"


def notify_parties(db: Session, event: WorkflowEvent) -> List[Notification]:
    """
    Outbox subscriber. Skips events that have no template and events
    already turned into notifications (relay retries).
    """
    if event.from_status == event.to_status:
        return []  # edits, notes, feedback: nothing moved
    template = TEMPLATES.get((event.entity_type, event.to_status))
    if template is None:
        return []

    already = db.query(Notification.id).filter(Notification.event_id == event.id).first()
    if already:
        return []

    title, body, who = template
    payload = event.payload or {}
    context = {
        "code": payload.get("enquiry_code", "your requirement"),
        "date": payload.get("date", ""),
        "start_time": payload.get("start_time", ""),
        "start_date": payload.get("start_date", ""),
    }
    return [
        notify(
            db,
            recipient_id=recipient_id,
            notification_type=f"{event.entity_type}.{event.to_status}",
            title=title,
            body=body.format(**context),
            action_url=_action_url(event, recipient_id),
            event_id=event.id,
            extra_data={"entity_id": str(event.entity_id), "operation": event.operation},
        )
        for recipient_id in _recipients(event, who)
    ]
