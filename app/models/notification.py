# app/models/notification.py
# In-app notification queue fed by the workflow outbox relay

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text, Uuid

from app.db.base_class import Base


class Notification(Base):
    """
    In-app notification for a parent, tutor or admin.
    Created by notification_service.py when the outbox relay delivers an event.
    Delivered via GET /api/v1/notifications (polled by the client).
    """
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_id = Column(Uuid, nullable=False, index=True)

    # ── Type ──────────────────────────────────────────────────────────────────
    # e.g. "association.assigned", "demo.scheduled", "requirement.closed"
    notification_type = Column(String(60), nullable=False, index=True)

    # ── Content ───────────────────────────────────────────────────────────────
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=True)

    # ── Deep Link ─────────────────────────────────────────────────────────────
    # Frontend uses this to navigate on click
    action_url = Column(String(512), nullable=True)           # e.g. "/parent/my-enquiries/<id>"

    # ── Source Event (deduplication) ──────────────────────────────────────────
    event_id = Column(
        Uuid,
        ForeignKey("workflow_events.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    extra_data = Column(JSON, nullable=True)

    # ── Read Status ───────────────────────────────────────────────────────────
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Notification recipient={self.recipient_id} "
            f"type={self.notification_type} read={self.is_read}>"
        )
